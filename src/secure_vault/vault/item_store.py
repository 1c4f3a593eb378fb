"""Item catalog persistence.

The catalog is stored as one record, so ``save`` is a full-collection
overwrite: callers compute the new set (append, delete, ...) and hand it over
whole. A save either replaces every record or none of them.
"""

from typing import Iterable, List

from .exceptions import ValidationError, VaultIOError
from .models import VaultItem
from .storage import ITEMS_KEY, VaultStorage


class ItemStore:
    """Durable catalog of VaultItem records, independent of lock state."""

    def __init__(self, storage: VaultStorage):
        self.storage = storage

    def save(self, items: Iterable[VaultItem]) -> None:
        """Replace the whole catalog.

        Raises:
            ValidationError: Two records share an id (nothing is written).
            VaultIOError: Storage failure (previous catalog is kept).
        """
        items = list(items)
        seen = set()
        for item in items:
            if item.id in seen:
                raise ValidationError(f"Duplicate item id in catalog: {item.id}")
            seen.add(item.id)
        self.storage.set(ITEMS_KEY, [item.to_dict() for item in items])

    def list(self) -> List[VaultItem]:
        """Return every record, in no particular order."""
        records = self.storage.get(ITEMS_KEY, default=[])
        try:
            return [VaultItem.from_dict(record) for record in records]
        except (KeyError, TypeError, ValueError, ValidationError) as e:
            raise VaultIOError("Stored catalog is corrupted", cause=e) from e
