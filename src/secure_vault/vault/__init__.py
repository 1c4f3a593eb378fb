# Vault Module - Encrypted Item Vault
#
# Per-item encryption (scrypt key derivation + AES-256-GCM)
# Catalog of items in SQLite, encrypted files in per-category folders

from .blob_store import BackingHandle, delete_file, get_file, list_partitions, open_backing, put_file
from .catalog_io import export_catalog, import_catalog
from .encryption import EncryptionService, decrypt, encrypt, password_policy_errors, validate_password
from .exceptions import (
    DecryptionError,
    ErrorKind,
    ImportValidationError,
    InitializationError,
    NotFoundError,
    NotInitializedError,
    ValidationError,
    VaultError,
    VaultIOError,
    VaultLockedError,
    VaultStateError,
)
from .item_store import ItemStore
from .lock_state import VaultLockStateMachine, VaultSession, VaultStatus
from .models import ItemKind, VaultConfig, VaultItem, VaultLockState, sort_newest_first
from .storage import VaultStorage
from .vault_manager import VaultManager

__all__ = [
    "VaultManager",
    "EncryptionService",
    "encrypt",
    "decrypt",
    "validate_password",
    "password_policy_errors",
    "ItemStore",
    "VaultStorage",
    "BackingHandle",
    "open_backing",
    "put_file",
    "get_file",
    "delete_file",
    "list_partitions",
    "VaultLockStateMachine",
    "VaultSession",
    "VaultStatus",
    "export_catalog",
    "import_catalog",
    "ItemKind",
    "VaultItem",
    "VaultLockState",
    "VaultConfig",
    "sort_newest_first",
    "VaultError",
    "ErrorKind",
    "ValidationError",
    "DecryptionError",
    "NotInitializedError",
    "InitializationError",
    "NotFoundError",
    "ImportValidationError",
    "VaultIOError",
    "VaultStateError",
    "VaultLockedError",
]
