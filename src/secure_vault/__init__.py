# Secure Vault - Main Package
#
# Secure Vault: password-encrypted storage for text secrets and files.
# Every item is encrypted on its own under the password given at unlock.

__version__ = "1.0.0"
__author__ = "Secure Vault Team"
__description__ = "Password-encrypted vault for text secrets and files"

from .core import (
    EventType,
    EventSeverity,
    get_audit_logger,
    load_settings,
)
from .vault import VaultManager

__all__ = [
    "__version__",
    "VaultManager",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    "load_settings",
]
