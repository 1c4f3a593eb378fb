# Vault Manager - Encrypted Item Vault
#
# Composes the engine into the operations the UI works with:
#   - Choose a vault directory, unlock / lock
#   - Add text items and upload files (encrypted with the session password)
#   - Reveal, delete, list (newest first)
#   - Export / import the catalog, manage categories
#
# Every state change and every failure is written to the audit log; failures
# are then re-raised unchanged so callers can branch on the error kind.

import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union
from uuid import uuid4

from ..core import EventSeverity, EventType, get_audit_logger, load_settings
from . import blob_store
from .blob_store import BackingHandle
from .catalog_io import export_catalog, import_catalog
from .encryption import decrypt, encrypt, validate_password
from .exceptions import (
    ErrorKind,
    NotFoundError,
    ValidationError,
    VaultError,
    VaultIOError,
)
from .item_store import ItemStore
from .lock_state import LockListener, VaultLockStateMachine, VaultStatus
from .models import ItemKind, VaultConfig, VaultItem, now_ms, sort_newest_first
from .storage import CONFIG_KEY, DB_FILENAME, VaultStorage


_FAILURE_EVENTS = {
    ErrorKind.DECRYPTION: (EventType.VAULT_DECRYPT_FAILED, EventSeverity.INVESTIGATE),
    ErrorKind.IMPORT_VALIDATION: (EventType.VAULT_IMPORT_REJECTED, EventSeverity.INVESTIGATE),
    ErrorKind.NOT_FOUND: (EventType.VAULT_ERROR, EventSeverity.ALERT),
    ErrorKind.INITIALIZATION: (EventType.VAULT_ERROR, EventSeverity.ALERT),
    ErrorKind.IO: (EventType.VAULT_ERROR, EventSeverity.CRITICAL),
}


class VaultManager:
    """
    Manages the encrypted item vault.

    Security:
    - Each item encrypted on its own (scrypt + AES-256-GCM, fresh salt/nonce)
    - Password held only by the in-memory session, dropped on lock
    - Unlock does not verify the password; the first failed decrypt does
    - Audit logging for all vault access (never secrets or plaintext)

    Mutating calls are serialized by one re-entrant lock.
    """

    def __init__(self, data_dir: Optional[Path] = None):
        """
        Initialize vault manager.

        Args:
            data_dir: Directory holding the catalog database.
                      If None, uses SECURE_VAULT_HOME (default: ~/.secure-vault)
        """
        if data_dir is None:
            data_dir = load_settings().data_dir

        self.data_dir = Path(data_dir)
        self.storage = VaultStorage(self.data_dir / DB_FILENAME)
        self.items = ItemStore(self.storage)
        self.lock_state = VaultLockStateMachine(self.storage)
        self._write_lock = threading.RLock()

        self.logger = get_audit_logger()

    # ── Audit helpers ────────────────────────────────────────────────

    @contextmanager
    def _audited(self, action: str, **details):
        """Record a failed action in the audit log, then re-raise it."""
        try:
            yield
        except VaultError as e:
            event_type, severity = _FAILURE_EVENTS.get(
                e.kind, (EventType.VAULT_ERROR, EventSeverity.INVESTIGATE)
            )
            self.logger.log_vault_event(
                event_type,
                f"{action} failed: {e.message}",
                details={**details, "error_kind": e.kind.value},
                severity=severity,
            )
            raise

    # ── Lifecycle ────────────────────────────────────────────────────

    @property
    def is_unlocked(self) -> bool:
        return self.lock_state.status is VaultStatus.UNLOCKED

    @property
    def handle(self) -> Optional[BackingHandle]:
        return self.lock_state.handle

    @staticmethod
    def validate_password(password: str) -> bool:
        return validate_password(password)

    def initialize_backing(self, location: Union[str, Path]) -> BackingHandle:
        """
        Choose the directory that holds encrypted files.

        Calling it again replaces the location; files are not moved.
        """
        with self._write_lock, self._audited("Initialize", location=str(location)):
            handle = self.lock_state.initialize(location)

        self.logger.log_vault_event(
            EventType.VAULT_INITIALIZED,
            "Vault directory configured",
            details={"location": str(handle.root)},
        )
        return handle

    def unlock(self, password: str, confirm_password: Optional[str] = None):
        """
        Unlock the vault for this process.

        Args:
            password: Vault password (must satisfy the password policy)
            confirm_password: Optional repeat of the password; must match
        """
        with self._write_lock, self._audited("Unlock"):
            if confirm_password is not None and confirm_password != password:
                raise ValidationError("Passwords do not match")
            self.lock_state.unlock(password)

        self.logger.log_vault_event(EventType.VAULT_UNLOCKED, "Vault unlocked")

    def lock(self):
        """Lock the vault and drop the session password."""
        with self._write_lock, self._audited("Lock"):
            was_unlocked = self.is_unlocked
            self.lock_state.lock()

        if was_unlocked:
            self.logger.log_vault_event(EventType.VAULT_LOCKED, "Vault locked")

    def get_lock_state(self) -> Dict[str, Any]:
        return self.lock_state.get_lock_state()

    def add_lock_listener(self, listener: LockListener):
        self.lock_state.add_lock_listener(listener)

    # ── Catalog ──────────────────────────────────────────────────────

    def list_items(self, category: Optional[str] = None) -> List[VaultItem]:
        """List catalog records (never decrypted), newest first."""
        with self._audited("List items"):
            items = self.items.list()
        if category:
            items = [item for item in items if item.category == category]
        return sort_newest_first(items)

    def save_items(self, items: Iterable[VaultItem]):
        """Replace the whole catalog."""
        with self._write_lock, self._audited("Save items"):
            self.items.save(items)

    def get_item(self, item_id: str) -> VaultItem:
        for item in self.items.list():
            if item.id == item_id:
                return item
        raise NotFoundError(f"Item not found: {item_id}")

    def add_text_item(self, data: str, category: str) -> VaultItem:
        """
        Encrypt a text secret and append it to the catalog.

        Requires the vault to be unlocked.
        """
        with self._audited("Add item", category=category):
            password = self.lock_state.session.password
            if not data:
                raise ValidationError("Please enter data to encrypt")
            item = VaultItem(
                id=str(uuid4()),
                encrypted_payload=encrypt(data, password),
                category=category,
                kind=ItemKind.TEXT,
                created_at=now_ms(),
            )
            with self._write_lock:
                self.items.save(self.items.list() + [item])

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_ADDED,
            "Text item added",
            details={"item_id": item.id, "category": category},
        )
        return item

    def add_files(self, files: Iterable[Tuple[str, bytes]], category: str) -> List[VaultItem]:
        """
        Encrypt files into the category folder and add them to the catalog.

        The catalog only changes once every file has been stored. On failure
        the blobs written by this call for new names are removed again and
        any blob that was about to be replaced is put back. An upload with
        the same category and file name as an existing item replaces that
        item.

        Args:
            files: (file_name, content) pairs
            category: Category for every file

        Returns:
            The new catalog records
        """
        with self._write_lock, self._audited("Upload files", category=category):
            password = self.lock_state.session.password
            handle = self.handle

            existing = self.items.list()
            taken = {
                (item.category, item.file_name)
                for item in existing if item.kind is ItemKind.FILE
            }

            stored: Dict[Tuple[str, str], VaultItem] = {}
            backups: Dict[Tuple[str, str], Path] = {}
            try:
                for file_name, content in files:
                    key = (category, file_name)
                    if key in taken and key not in backups:
                        backup = blob_store.set_aside(handle, category, file_name)
                        if backup is not None:
                            backups[key] = backup
                    item = blob_store.put_file(handle, category, file_name, password, content)
                    stored[key] = item
                kept = [
                    item for item in existing
                    if not (item.kind is ItemKind.FILE and (item.category, item.file_name) in stored)
                ]
                self.items.save(kept + list(stored.values()))
            except VaultError:
                self._discard_blobs(
                    item for key, item in stored.items() if key not in backups
                )
                self._restore_blobs(backups)
                raise

            self._drop_backups(backups.values())

        for item in stored.values():
            self.logger.log_vault_event(
                EventType.VAULT_FILE_STORED,
                "File stored",
                details={"item_id": item.id, "category": category},
            )
        return list(stored.values())

    def _discard_blobs(self, items: Iterable[VaultItem]):
        for item in items:
            try:
                blob_store.delete_file(self.handle, item)
            except VaultIOError as e:
                self.logger.log_vault_event(
                    EventType.VAULT_ERROR,
                    f"Could not remove blob after failed upload: {e.message}",
                    details={"item_id": item.id, "category": item.category},
                    severity=EventSeverity.CRITICAL,
                )

    def _restore_blobs(self, backups: Dict[Tuple[str, str], Path]):
        for (category, file_name), backup in backups.items():
            try:
                blob_store.restore(self.handle, category, file_name, backup)
            except VaultIOError as e:
                self.logger.log_vault_event(
                    EventType.VAULT_ERROR,
                    f"Could not restore blob after failed upload: {e.message}",
                    details={"category": category, "backup": backup.name},
                    severity=EventSeverity.CRITICAL,
                )

    def _drop_backups(self, backups: Iterable[Path]):
        for backup in backups:
            try:
                blob_store.discard_backup(backup)
            except VaultIOError as e:
                self.logger.log_vault_event(
                    EventType.VAULT_ERROR,
                    f"Could not remove blob backup: {e.message}",
                    details={"backup": backup.name},
                    severity=EventSeverity.ALERT,
                )

    def reveal_item(self, item_id: str) -> bytes:
        """
        Decrypt an item with the session password.

        Returns:
            Text items: the UTF-8 bytes of the text; file items: the file
        """
        with self._audited("Reveal item", item_id=item_id):
            password = self.lock_state.session.password
            item = self.get_item(item_id)
            if item.kind is ItemKind.FILE:
                data = blob_store.get_file(self.handle, item, password)
            else:
                data = decrypt(item.encrypted_payload, password)

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_ACCESSED,
            "Item decrypted",
            details={"item_id": item_id, "kind": item.kind.value},
        )
        return data

    def delete_item(self, item_id: str):
        """Remove an item from the catalog, then its blob if it has one."""
        with self._write_lock, self._audited("Delete item", item_id=item_id):
            items = self.items.list()
            target = next((item for item in items if item.id == item_id), None)
            if target is None:
                raise NotFoundError(f"Item not found: {item_id}")
            self.items.save([item for item in items if item.id != item_id])
            if target.kind is ItemKind.FILE and self.handle is not None:
                blob_store.delete_file(self.handle, target)

        self.logger.log_vault_event(
            EventType.VAULT_ITEM_DELETED,
            "Item deleted",
            details={"item_id": item_id},
        )

    # ── Export / Import ──────────────────────────────────────────────

    def export_catalog(self) -> str:
        """Export document for the current catalog (payloads stay encrypted)."""
        with self._audited("Export"):
            items = self.items.list()
        document = export_catalog(items)
        self.logger.log_vault_event(
            EventType.VAULT_EXPORTED,
            "Catalog exported",
            details={"item_count": len(items)},
        )
        return document

    def import_catalog(self, document: Union[str, bytes]) -> List[VaultItem]:
        """
        Replace the catalog with the items of an export document.

        Nothing is decrypted. On any validation error the current catalog
        is left as it was.
        """
        with self._write_lock, self._audited("Import"):
            items = import_catalog(document)
            self.items.save(items)

        self.logger.log_vault_event(
            EventType.VAULT_IMPORTED,
            "Catalog imported",
            details={"item_count": len(items)},
        )
        return items

    # ── Categories ───────────────────────────────────────────────────

    def get_categories(self) -> List[str]:
        record = self.storage.get(CONFIG_KEY)
        config = VaultConfig.from_dict(record) if record else VaultConfig()
        return config.categories

    def set_categories(self, categories: Iterable[str]) -> List[str]:
        """Replace the category list (at least one, no duplicates)."""
        cleaned = []
        for category in categories:
            name = category.strip() if isinstance(category, str) else ""
            if not name:
                raise ValidationError("Category names must not be empty")
            if name in cleaned:
                raise ValidationError(f"Duplicate category: {name}")
            cleaned.append(name)
        if not cleaned:
            raise ValidationError("Please add at least one category")

        with self._write_lock, self._audited("Set categories"):
            self.storage.set(CONFIG_KEY, VaultConfig(categories=cleaned).to_dict())

        self.logger.log_vault_event(
            EventType.VAULT_CATEGORIES_CHANGED,
            "Categories updated",
            details={"categories": cleaned},
        )
        return cleaned
