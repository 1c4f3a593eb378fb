# Core Module - Shared Utilities
#
# Core module provides functionality shared by the vault engine, the API
# and the command line:
# - Audit logging
# - Settings
# - SQLite connection helper

from .audit_log import (
    AuditLogger,
    EventSeverity,
    EventType,
    get_audit_logger,
)
from .config import VaultSettings, load_settings

__all__ = [
    # Audit Logging
    "AuditLogger",
    "EventType",
    "EventSeverity",
    "get_audit_logger",
    # Settings
    "VaultSettings",
    "load_settings",
]
