# Vault - Data Model
#
# Catalog records, the persisted lock-state record and the vault config.
# JSON field names match the export document format (camelCase).

import threading
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from .exceptions import ValidationError


DEFAULT_CATEGORIES = ["General", "Personal", "Work", "Financial"]


class ItemKind(str, Enum):
    """What an item's payload holds."""
    TEXT = "text"
    FILE = "file"


@dataclass(frozen=True)
class VaultItem:
    """A catalog record. Never holds plaintext or file bytes."""
    id: str
    encrypted_payload: str
    category: str
    kind: ItemKind
    created_at: int                  # ms since epoch
    file_name: Optional[str] = None  # set iff kind is FILE

    def __post_init__(self):
        if not isinstance(self.kind, ItemKind):
            object.__setattr__(self, "kind", ItemKind(self.kind))
        if not isinstance(self.id, str) or not self.id:
            raise ValidationError("Item id must be a non-empty string")
        if not isinstance(self.encrypted_payload, str) or not self.encrypted_payload:
            raise ValidationError("Item payload must be a non-empty string")
        if isinstance(self.created_at, bool) or not isinstance(self.created_at, int) or self.created_at <= 0:
            raise ValidationError("Item createdAt must be a positive integer")
        if not isinstance(self.category, str) or not self.category:
            raise ValidationError("Item category must not be empty")
        if self.kind is ItemKind.FILE and not (isinstance(self.file_name, str) and self.file_name):
            raise ValidationError("File items require a fileName")
        if self.kind is ItemKind.TEXT and self.file_name is not None:
            raise ValidationError("Text items must not carry a fileName")

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "id": self.id,
            "encryptedPayload": self.encrypted_payload,
            "category": self.category,
            "kind": self.kind.value,
            "createdAt": self.created_at,
        }
        if self.file_name is not None:
            data["fileName"] = self.file_name
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultItem":
        return cls(
            id=data["id"],
            encrypted_payload=data["encryptedPayload"],
            category=data["category"],
            kind=ItemKind(data["kind"]),
            created_at=int(data["createdAt"]),
            file_name=data.get("fileName"),
        )


def sort_newest_first(items: Iterable[VaultItem]) -> List[VaultItem]:
    """Presentation order for every user-facing listing."""
    return sorted(items, key=lambda item: item.created_at, reverse=True)


_clock_lock = threading.Lock()
_last_timestamp = 0


def now_ms() -> int:
    """Wall-clock milliseconds, strictly increasing within this process."""
    global _last_timestamp
    with _clock_lock:
        current = max(int(time.time() * 1000), _last_timestamp + 1)
        _last_timestamp = current
        return current


@dataclass
class VaultLockState:
    """Persisted lock-state record (the password is never part of it)."""
    locked: bool = True
    last_modified: int = field(default_factory=now_ms)
    backing_location_configured: bool = False
    backing_location: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "locked": self.locked,
            "lastModified": self.last_modified,
            "backingLocationConfigured": self.backing_location_configured,
            "backingLocation": self.backing_location,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultLockState":
        return cls(
            locked=bool(data.get("locked", True)),
            last_modified=int(data.get("lastModified") or now_ms()),
            backing_location_configured=bool(data.get("backingLocationConfigured", False)),
            backing_location=data.get("backingLocation"),
        )


@dataclass
class VaultConfig:
    """Categories offered when adding items."""
    categories: List[str] = field(default_factory=lambda: list(DEFAULT_CATEGORIES))

    def to_dict(self) -> Dict[str, Any]:
        return {"categories": list(self.categories)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "VaultConfig":
        return cls(categories=list(data.get("categories") or DEFAULT_CATEGORIES))
