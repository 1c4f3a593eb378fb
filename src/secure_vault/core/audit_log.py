# Core - Audit Logging
#
# Append-only audit log for every vault state change and failure.
# Structured JSON lines (structlog) written to a daily file.
# Never receives passwords, plaintext or file contents.

import logging
import os
import socket
import sys
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional
from uuid import uuid4

import structlog


class EventType(str, Enum):
    """Types of events that can be logged."""
    # Vault lifecycle
    VAULT_INITIALIZED = "vault.initialized"
    VAULT_UNLOCKED = "vault.unlocked"
    VAULT_LOCKED = "vault.locked"

    # Vault items
    VAULT_ITEM_ADDED = "vault.item.added"
    VAULT_FILE_STORED = "vault.file.stored"
    VAULT_ITEM_ACCESSED = "vault.item.accessed"
    VAULT_ITEM_DELETED = "vault.item.deleted"
    VAULT_CATEGORIES_CHANGED = "vault.categories.changed"

    # Catalog transfer
    VAULT_EXPORTED = "vault.exported"
    VAULT_IMPORTED = "vault.imported"
    VAULT_IMPORT_REJECTED = "vault.import.rejected"

    # Failures
    VAULT_DECRYPT_FAILED = "vault.decrypt.failed"
    VAULT_ERROR = "vault.error"

    # System Events
    SYSTEM_START = "system.start"
    SYSTEM_STOP = "system.stop"


class EventSeverity(str, Enum):
    """
    Severity levels for audit events.

    - INFO: Normal activity
    - INVESTIGATE: Something unusual (wrong password, rejected import)
    - ALERT: Data could not be read or written
    - CRITICAL: Storage failure
    """
    INFO = "info"
    INVESTIGATE = "investigate"
    ALERT = "alert"
    CRITICAL = "critical"


class AuditLogger:
    """
    Append-only audit logger for vault events.

    Features:
    - Structured JSON logging
    - Automatic timestamp and event ID
    - OS user / host context capture
    """

    def __init__(self, log_dir: Optional[Path] = None):
        """
        Initialize audit logger.

        Args:
            log_dir: Directory for audit logs (default: from settings)
        """
        if log_dir is None:
            from .config import load_settings
            log_dir = load_settings().audit_dir

        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

        structlog.configure(
            processors=[
                structlog.stdlib.add_log_level,
                structlog.stdlib.add_logger_name,
                structlog.processors.TimeStamper(fmt="iso"),
                structlog.processors.StackInfoRenderer(),
                structlog.processors.format_exc_info,
                structlog.processors.JSONRenderer()
            ],
            wrapper_class=structlog.stdlib.BoundLogger,
            context_class=dict,
            logger_factory=structlog.stdlib.LoggerFactory(),
            cache_logger_on_first_use=True,
        )

        self._setup_file_handler()

        self.logger = structlog.get_logger("secure_vault.audit")

    def _setup_file_handler(self):
        """Attach a daily log file handler to the audit logger."""
        today = datetime.now().strftime("%Y-%m-%d")
        self.log_file = self.log_dir / f"audit_{today}.log"

        # One audit file per process: replace a handler left by an earlier instance
        audit_logger = logging.getLogger("secure_vault.audit")
        for handler in list(audit_logger.handlers):
            if not isinstance(handler, logging.FileHandler):
                continue
            if handler.baseFilename == str(self.log_file.resolve()):
                return
            audit_logger.removeHandler(handler)
            handler.close()

        file_handler = logging.FileHandler(self.log_file, mode='a', encoding='utf-8')
        file_handler.setLevel(logging.INFO)
        file_handler.setFormatter(logging.Formatter('%(message)s'))  # structlog handles formatting

        audit_logger.addHandler(file_handler)
        audit_logger.setLevel(logging.INFO)

    def log_event(
        self,
        event_type: EventType,
        severity: EventSeverity,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        user_context: Optional[Dict[str, Any]] = None
    ) -> str:
        """
        Log an audit event.

        Args:
            event_type: Type of event (from EventType enum)
            severity: Severity level (from EventSeverity enum)
            message: Human-readable event description
            details: Additional event details (never secrets)
            user_context: User context (defaults to OS user and host)

        Returns:
            str: Event ID (UUID) for reference
        """
        event_id = str(uuid4())
        event_data = {
            "event_id": event_id,
            "event_type": event_type.value,
            "severity": severity.value,
            "message": message,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details or {},
            "user_context": user_context or self._get_default_user_context(),
        }

        self.logger.info("vault_event", **event_data)
        return event_id

    def log_vault_event(
        self,
        event_type: EventType,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        severity: EventSeverity = EventSeverity.INFO,
    ) -> str:
        """Log a vault event with a "Vault: " message prefix."""
        return self.log_event(
            event_type=event_type,
            severity=severity,
            message=f"Vault: {message}",
            details=details
        )

    def _get_default_user_context(self) -> Dict[str, Any]:
        """Get default user context (OS user, hostname, etc.)."""
        return {
            "os_user": os.getenv("USERNAME") or os.getenv("USER"),
            "hostname": socket.gethostname(),
            "platform": sys.platform,
        }


# Global logger instance
_audit_logger: Optional[AuditLogger] = None


def get_audit_logger() -> AuditLogger:
    """Get global audit logger (singleton pattern)."""
    global _audit_logger
    if _audit_logger is None:
        _audit_logger = AuditLogger()
    return _audit_logger
