# Vault - Encrypted File Storage
#
# File payloads live on disk, outside the catalog:
#
#   <backing>/<category>/<file_name>.encrypted
#
# Each blob is the raw encrypt_bytes() layout (salt ‖ nonce ‖ tag ‖ ciphertext).
# The catalog record only holds the back-reference (category + file name) and
# an encrypted manifest (size + SHA-256) used to detect a blob that no longer
# belongs to its record.
#
# Design:
#   - Backing location passed explicitly as a BackingHandle (no module state)
#   - Atomic writes: temp file in the partition, fsync, os.replace
#   - Engine code: raises, never logs

import hashlib
import json
import os
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Union
from uuid import uuid4

from .encryption import EncryptionService, decrypt, encrypt
from .exceptions import (
    DecryptionError,
    InitializationError,
    NotFoundError,
    NotInitializedError,
    ValidationError,
    VaultIOError,
)
from .models import ItemKind, VaultItem, now_ms


ENCRYPTED_SUFFIX = ".encrypted"
_TEMP_PREFIX = ".tmp-"


@dataclass(frozen=True)
class BackingHandle:
    """An established backing location."""
    root: Path

    def partition(self, category: str) -> Path:
        return self.root / _check_segment(category, "category")


def open_backing(location: Union[str, Path]) -> BackingHandle:
    """
    Establish a backing location, creating the directory if needed.

    Raises:
        InitializationError: Location cannot be created or is not writable
    """
    try:
        root = Path(location).expanduser().resolve()
        root.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise InitializationError(f"Cannot create vault directory: {location}", cause=e) from e

    if not root.is_dir():
        raise InitializationError(f"Vault location is not a directory: {location}")
    if not os.access(root, os.W_OK | os.X_OK):
        raise InitializationError(f"Vault directory is not writable: {location}")
    return BackingHandle(root=root)


def encrypted_file_name(file_name: str) -> str:
    """Blob name for a stored file."""
    return _check_segment(file_name, "file name") + ENCRYPTED_SUFFIX


def _check_segment(name: str, what: str) -> str:
    """Reject names that would escape their partition."""
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"The {what} must not be empty")
    if name in (".", "..") or any(sep in name for sep in ("/", "\\", "\x00")):
        raise ValidationError(f"Invalid {what}: {name!r}")
    return name


def _require_handle(handle: Optional[BackingHandle]) -> BackingHandle:
    if handle is None:
        raise NotInitializedError()
    return handle


def _atomic_write(path: Path, data: bytes) -> None:
    """Write data to path so readers see either the old or the new file."""
    tmp_path = None
    try:
        with tempfile.NamedTemporaryFile(
            dir=path.parent, prefix=_TEMP_PREFIX, delete=False
        ) as tmp_file:
            tmp_path = Path(tmp_file.name)
            tmp_file.write(data)
            tmp_file.flush()
            os.fsync(tmp_file.fileno())
        os.replace(tmp_path, path)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise VaultIOError(f"Failed to write {path.name}", cause=e) from e


def put_file(
    handle: Optional[BackingHandle],
    category: str,
    file_name: str,
    password: str,
    data: bytes,
) -> VaultItem:
    """
    Encrypt a file into its category partition.

    Args:
        handle: Backing location from initialize
        category: Partition (created if absent)
        file_name: Original file name, kept in the catalog record
        password: Unlock password
        data: Raw file bytes

    Returns:
        A new file VaultItem, not yet saved to the catalog

    Raises:
        NotInitializedError, ValidationError, VaultIOError
    """
    handle = _require_handle(handle)
    partition = handle.partition(category)
    blob_name = encrypted_file_name(file_name)

    manifest = {
        "blob": blob_name,
        "size": len(data),
        "sha256": hashlib.sha256(data).hexdigest(),
    }
    sealed = EncryptionService.encrypt_bytes(data, password)
    payload = encrypt(json.dumps(manifest, sort_keys=True), password)

    try:
        partition.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise VaultIOError(f"Cannot create category folder: {category}", cause=e) from e
    _atomic_write(partition / blob_name, sealed)

    return VaultItem(
        id=str(uuid4()),
        encrypted_payload=payload,
        category=category,
        kind=ItemKind.FILE,
        created_at=now_ms(),
        file_name=file_name,
    )


def get_file(handle: Optional[BackingHandle], item: VaultItem, password: str) -> bytes:
    """
    Read and decrypt the blob a file item points at.

    Raises:
        NotInitializedError: No backing location
        ValidationError: Item is not a file item, or password fails policy
        NotFoundError: Category folder or blob missing
        DecryptionError: Wrong password, corrupted blob, or blob/record mismatch
        VaultIOError: Any other read failure
    """
    handle = _require_handle(handle)
    if item.kind is not ItemKind.FILE:
        raise ValidationError("Only file items have a stored blob")

    partition = handle.partition(item.category)
    if not partition.is_dir():
        raise NotFoundError(
            f"Category folder not found: {item.category}",
            category=item.category, file_name=item.file_name,
        )

    blob_path = partition / encrypted_file_name(item.file_name)
    try:
        sealed = blob_path.read_bytes()
    except FileNotFoundError as e:
        raise NotFoundError(
            f"File not found: {item.file_name}",
            cause=e, category=item.category, file_name=item.file_name,
        ) from e
    except OSError as e:
        raise VaultIOError(f"Failed to read {item.file_name}", cause=e) from e

    data = EncryptionService.decrypt_bytes(sealed, password)

    try:
        manifest = json.loads(decrypt(item.encrypted_payload, password))
        expected = (manifest["blob"], manifest["size"], manifest["sha256"])
    except (ValueError, KeyError, TypeError) as e:
        raise DecryptionError(cause=e) from e
    actual = (blob_path.name, len(data), hashlib.sha256(data).hexdigest())
    if actual != expected:
        raise DecryptionError()
    return data


def delete_file(handle: Optional[BackingHandle], item: VaultItem) -> bool:
    """Remove a file item's blob. Returns False if it was already gone."""
    handle = _require_handle(handle)
    if item.kind is not ItemKind.FILE:
        return False
    blob_path = handle.partition(item.category) / encrypted_file_name(item.file_name)
    try:
        blob_path.unlink()
    except FileNotFoundError:
        return False
    except OSError as e:
        raise VaultIOError(f"Failed to delete {item.file_name}", cause=e) from e
    return True


def set_aside(handle: Optional[BackingHandle], category: str, file_name: str) -> Optional[Path]:
    """
    Move an existing blob to a backup name in its partition.

    Returns:
        The backup path, or None when there was no blob to move
    """
    handle = _require_handle(handle)
    blob_path = handle.partition(category) / encrypted_file_name(file_name)
    backup = blob_path.with_name(f"{_TEMP_PREFIX}{uuid4().hex}-{blob_path.name}")
    try:
        os.replace(blob_path, backup)
    except FileNotFoundError:
        return None
    except OSError as e:
        raise VaultIOError(f"Failed to back up {file_name}", cause=e) from e
    return backup


def restore(handle: Optional[BackingHandle], category: str, file_name: str, backup: Path) -> None:
    """Put a blob moved by set_aside() back in place, replacing any newer one."""
    handle = _require_handle(handle)
    blob_path = handle.partition(category) / encrypted_file_name(file_name)
    try:
        os.replace(backup, blob_path)
    except OSError as e:
        raise VaultIOError(f"Failed to restore {file_name}", cause=e) from e


def discard_backup(backup: Path) -> None:
    try:
        backup.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        raise VaultIOError(f"Failed to remove backup {backup.name}", cause=e) from e


def list_partitions(handle: Optional[BackingHandle]) -> List[str]:
    """Names of the category folders present under the backing location."""
    handle = _require_handle(handle)
    try:
        return sorted(p.name for p in handle.root.iterdir() if p.is_dir())
    except OSError as e:
        raise VaultIOError("Failed to list category folders", cause=e) from e
