"""Catalog export/import.

The export document is UTF-8 JSON::

    {"exportDate": "<ISO-8601>", "items": [<VaultItem>, ...]}

Payloads are copied verbatim in both directions; nothing here needs or
checks a password. Import only validates structure, and every failure is an
ImportValidationError whose ``reason`` says which check failed.
"""

import json
from datetime import datetime, timezone
from typing import Iterable, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as SchemaError

from .exceptions import ImportValidationError
from .models import ItemKind, VaultItem


class VaultItemRecord(BaseModel):
    """Schema of one item in an import document."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True, strict=True)

    id: str = Field(min_length=1)
    encrypted_payload: str = Field(alias="encryptedPayload", min_length=1)
    category: str = Field(min_length=1)
    kind: Literal["text", "file"]
    created_at: int = Field(alias="createdAt", gt=0)
    file_name: Optional[str] = Field(default=None, alias="fileName", min_length=1)


def export_catalog(items: Iterable[VaultItem], now: Optional[datetime] = None) -> str:
    """Serialize the catalog to the export document (keys sorted)."""
    document = {
        "items": [item.to_dict() for item in items],
        "exportDate": (now or datetime.now(timezone.utc)).isoformat(),
    }
    return json.dumps(document, sort_keys=True, indent=2)


def _schema_failure(index: int, error: SchemaError) -> ImportValidationError:
    problems = error.errors()
    missing = [p for p in problems if p["type"] == "missing"]
    first = (missing or problems)[0]
    field = str(first["loc"][0]) if first["loc"] else None
    if missing:
        return ImportValidationError(
            ImportValidationError.MISSING_FIELD,
            f"Item {index} is missing required field '{field}'",
            cause=error, index=index, field=field,
        )
    return ImportValidationError(
        ImportValidationError.INVALID_FIELD,
        f"Item {index} has an invalid '{field}': {first['msg']}",
        cause=error, index=index, field=field,
    )


def _parse_item(index: int, raw) -> VaultItem:
    if not isinstance(raw, dict):
        raise ImportValidationError(
            ImportValidationError.ITEM_NOT_AN_OBJECT,
            f"Item {index} is not an object", index=index,
        )
    try:
        record = VaultItemRecord.model_validate(raw)
    except SchemaError as e:
        raise _schema_failure(index, e) from e

    if record.kind == ItemKind.FILE.value and record.file_name is None:
        raise ImportValidationError(
            ImportValidationError.MISSING_FIELD,
            f"File item {index} is missing required field 'fileName'",
            index=index, field="fileName",
        )
    if record.kind == ItemKind.TEXT.value and record.file_name is not None:
        raise ImportValidationError(
            ImportValidationError.INVALID_FIELD,
            f"Text item {index} must not have a 'fileName'",
            index=index, field="fileName",
        )

    return VaultItem(
        id=record.id,
        encrypted_payload=record.encrypted_payload,
        category=record.category,
        kind=ItemKind(record.kind),
        created_at=record.created_at,
        file_name=record.file_name,
    )


def import_catalog(document: Union[str, bytes]) -> List[VaultItem]:
    """
    Parse and validate an export document.

    Returns:
        The catalog it describes, in document order

    Raises:
        ImportValidationError: Malformed JSON, wrong top-level shape, or an
            invalid / duplicated item
    """
    try:
        parsed = json.loads(document)
    except (TypeError, ValueError) as e:
        raise ImportValidationError(
            ImportValidationError.NOT_JSON, "Import data is not valid JSON", cause=e,
        ) from e

    if not isinstance(parsed, dict):
        raise ImportValidationError(
            ImportValidationError.NOT_AN_OBJECT, "Invalid import data format",
        )
    if "items" not in parsed:
        raise ImportValidationError(
            ImportValidationError.ITEMS_MISSING, "Invalid import data format: no 'items'",
        )
    if not isinstance(parsed["items"], list):
        raise ImportValidationError(
            ImportValidationError.ITEMS_NOT_ARRAY, "Invalid import data format: 'items' is not an array",
        )

    items = []
    seen = set()
    for index, raw in enumerate(parsed["items"]):
        item = _parse_item(index, raw)
        if item.id in seen:
            raise ImportValidationError(
                ImportValidationError.DUPLICATE_ID,
                f"Duplicate item id '{item.id}'", index=index, field="id",
            )
        seen.add(item.id)
        items.append(item)
    return items
