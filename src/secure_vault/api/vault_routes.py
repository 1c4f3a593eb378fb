# Vault API - REST endpoints for the encrypted vault
#
# - Choose vault directory, unlock / lock, status
# - Add text items, upload files, reveal, delete
# - Export / import the catalog, manage categories
#
# Every route requires the X-Session-Token header. Engine errors are mapped
# to HTTP status codes by their ErrorKind.

import base64
import binascii
from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from pydantic import BaseModel, Field

from ..vault import ErrorKind, ItemKind, VaultError, VaultManager, password_policy_errors
from .security import verify_session_token

router = APIRouter(
    prefix="/api/vault",
    tags=["vault"],
    dependencies=[Depends(verify_session_token)],
)

_vault_manager: Optional[VaultManager] = None


def get_vault_manager() -> VaultManager:
    """Lazy singleton, created on first use."""
    global _vault_manager
    if _vault_manager is None:
        _vault_manager = VaultManager()
    return _vault_manager


_STATUS_BY_KIND = {
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DECRYPTION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.IMPORT_VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.INITIALIZATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.LOCKED: status.HTTP_403_FORBIDDEN,
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.NOT_INITIALIZED: status.HTTP_409_CONFLICT,
    ErrorKind.STATE: status.HTTP_409_CONFLICT,
    ErrorKind.IO: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def _http_error(error: VaultError) -> HTTPException:
    return HTTPException(
        status_code=_STATUS_BY_KIND.get(error.kind, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail={"message": error.message, "kind": error.kind.value},
    )


# Request Models
class InitializeRequest(BaseModel):
    location: str = Field(..., min_length=1)


class UnlockRequest(BaseModel):
    password: str
    confirm_password: Optional[str] = None


class PasswordCheckRequest(BaseModel):
    password: str


class AddItemRequest(BaseModel):
    data: str = Field(..., min_length=1)
    category: str = Field(..., min_length=1, max_length=200)


class FilePayload(BaseModel):
    file_name: str = Field(..., min_length=1, max_length=255)
    content_b64: str


class UploadFilesRequest(BaseModel):
    category: str = Field(..., min_length=1, max_length=200)
    files: List[FilePayload] = Field(..., min_length=1)


class CategoriesRequest(BaseModel):
    categories: List[str] = Field(..., min_length=1)


# Endpoints

@router.get("/status")
def get_vault_status():
    """Lock state and whether a vault directory is configured."""
    return get_vault_manager().get_lock_state()


@router.post("/initialize")
def initialize_vault(request: InitializeRequest):
    """Choose (or replace) the directory that holds encrypted files."""
    try:
        handle = get_vault_manager().initialize_backing(request.location)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "location": str(handle.root)}


@router.post("/unlock")
def unlock_vault(request: UnlockRequest):
    """
    Unlock the vault.

    The password is only checked against the password policy here; a wrong
    password shows up when an item fails to decrypt.
    """
    try:
        get_vault_manager().unlock(request.password, request.confirm_password)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Vault unlocked"}


@router.post("/lock")
def lock_vault():
    """Lock the vault and forget the session password."""
    try:
        get_vault_manager().lock()
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Vault locked"}


@router.post("/password/validate")
def check_password(request: PasswordCheckRequest):
    """Report which password rules are not met (the password is not stored)."""
    errors = password_policy_errors(request.password)
    return {"valid": not errors, "errors": errors}


@router.get("/items")
def list_items(category: Optional[str] = None):
    """Catalog records, newest first. Payloads stay encrypted."""
    try:
        items = get_vault_manager().list_items(category=category)
    except VaultError as e:
        raise _http_error(e)
    return {"items": [item.to_dict() for item in items], "total": len(items)}


@router.post("/items")
def add_item(request: AddItemRequest):
    """Encrypt and store a text item. Requires the vault to be unlocked."""
    try:
        item = get_vault_manager().add_text_item(request.data, request.category)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "item": item.to_dict()}


@router.post("/files")
def upload_files(request: UploadFilesRequest):
    """Encrypt and store files (base64 content). Requires the vault to be unlocked."""
    files = []
    for payload in request.files:
        try:
            content = base64.b64decode(payload.content_b64, validate=True)
        except (ValueError, binascii.Error):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail={"message": f"Invalid base64 content for {payload.file_name}", "kind": "validation"},
            )
        files.append((payload.file_name, content))

    try:
        items = get_vault_manager().add_files(files, request.category)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "items": [item.to_dict() for item in items]}


@router.get("/items/{item_id}/reveal")
def reveal_item(item_id: str):
    """
    Decrypt an item with the session password.

    Text items come back as JSON; file items as a download.
    """
    manager = get_vault_manager()
    try:
        item = manager.get_item(item_id)
        data = manager.reveal_item(item_id)
    except VaultError as e:
        raise _http_error(e)

    if item.kind is ItemKind.FILE:
        return Response(
            content=data,
            media_type="application/octet-stream",
            headers={"Content-Disposition": f"attachment; filename*=UTF-8''{quote(item.file_name)}"},
        )
    return {"id": item.id, "kind": item.kind.value, "data": data.decode("utf-8", errors="replace")}


@router.delete("/items/{item_id}")
def delete_item(item_id: str):
    """Delete an item (and its encrypted file, for file items)."""
    try:
        get_vault_manager().delete_item(item_id)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "message": "Item deleted"}


@router.get("/export")
def export_vault():
    """Download the catalog as vault-backup.json (items stay encrypted)."""
    try:
        document = get_vault_manager().export_catalog()
    except VaultError as e:
        raise _http_error(e)
    return Response(
        content=document,
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="vault-backup.json"'},
    )


@router.post("/import")
async def import_vault(request: Request):
    """Replace the catalog with an uploaded export document (raw body)."""
    body = await request.body()
    try:
        items = await run_in_threadpool(get_vault_manager().import_catalog, body)
    except VaultError as e:
        raise _http_error(e)
    return {"success": True, "total": len(items)}


@router.get("/categories")
def get_categories():
    try:
        return {"categories": get_vault_manager().get_categories()}
    except VaultError as e:
        raise _http_error(e)


@router.put("/categories")
def set_categories(request: CategoriesRequest):
    try:
        categories = get_vault_manager().set_categories(request.categories)
    except VaultError as e:
        raise _http_error(e)
    return {"categories": categories}
