"""
Vault Exception Classes

Every failure raised by the vault engine derives from VaultError and carries
an ErrorKind, so callers can branch on ``exc.kind`` instead of matching
message strings.
"""

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    DECRYPTION = "decryption"
    NOT_INITIALIZED = "not_initialized"
    INITIALIZATION = "initialization"
    NOT_FOUND = "not_found"
    IMPORT_VALIDATION = "import_validation"
    IO = "io"
    STATE = "state"
    LOCKED = "locked"


class VaultError(Exception):
    """Base exception for vault operations"""

    kind: ErrorKind = ErrorKind.IO
    default_message = "Vault operation failed."

    def __init__(self, message: Optional[str] = None, cause: Optional[BaseException] = None):
        super().__init__(message or self.default_message)
        self.message = message or self.default_message
        self.cause = cause


class ValidationError(VaultError):
    """Raised when a password fails policy or an argument is malformed"""

    kind = ErrorKind.VALIDATION
    default_message = "Invalid input."


class DecryptionError(VaultError):
    """Raised when a blob cannot be decrypted.

    Wrong password and corrupted data produce the same message on purpose.
    """

    kind = ErrorKind.DECRYPTION
    default_message = "Decryption failed. Please check your password."


class NotInitializedError(VaultError):
    """Raised when no backing location has been chosen"""

    kind = ErrorKind.NOT_INITIALIZED
    default_message = "Vault backing location is not initialized."


class InitializationError(VaultError):
    """Raised when a backing location cannot be established"""

    kind = ErrorKind.INITIALIZATION
    default_message = "Failed to initialize vault directory."


class NotFoundError(VaultError):
    """Raised when a referenced item, category or file is missing"""

    kind = ErrorKind.NOT_FOUND
    default_message = "Item not found."

    def __init__(
        self,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        category: Optional[str] = None,
        file_name: Optional[str] = None,
    ):
        super().__init__(message, cause)
        self.category = category
        self.file_name = file_name


class ImportValidationError(VaultError):
    """Raised when an import document is malformed.

    ``reason`` tells which check failed; ``index`` and ``field`` point at the
    offending record when there is one.
    """

    kind = ErrorKind.IMPORT_VALIDATION
    default_message = "Invalid import data format."

    NOT_JSON = "not_json"
    NOT_AN_OBJECT = "not_an_object"
    ITEMS_MISSING = "items_missing"
    ITEMS_NOT_ARRAY = "items_not_array"
    ITEM_NOT_AN_OBJECT = "item_not_an_object"
    MISSING_FIELD = "missing_field"
    INVALID_FIELD = "invalid_field"
    DUPLICATE_ID = "duplicate_id"

    def __init__(
        self,
        reason: str,
        message: Optional[str] = None,
        cause: Optional[BaseException] = None,
        index: Optional[int] = None,
        field: Optional[str] = None,
    ):
        super().__init__(message, cause)
        self.reason = reason
        self.index = index
        self.field = field


class VaultIOError(VaultError):
    """Raised when the underlying storage fails"""

    kind = ErrorKind.IO
    default_message = "Vault storage error."


class VaultStateError(VaultError):
    """Raised on an illegal lock-state transition"""

    kind = ErrorKind.STATE
    default_message = "Operation not allowed in the current vault state."


class VaultLockedError(VaultStateError):
    """Raised when an operation needs an unlocked vault"""

    kind = ErrorKind.LOCKED
    default_message = "Please unlock the vault first."
