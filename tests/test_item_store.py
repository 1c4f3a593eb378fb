"""Tests for the SQLite key/value storage, the item catalog and the data model."""

import sqlite3

import pytest

from secure_vault.vault.exceptions import ValidationError, VaultIOError
from secure_vault.vault.item_store import ItemStore
from secure_vault.vault.models import (
    DEFAULT_CATEGORIES,
    ItemKind,
    VaultConfig,
    VaultItem,
    VaultLockState,
    now_ms,
    sort_newest_first,
)
from secure_vault.vault.storage import ITEMS_KEY, VaultStorage


def make_item(item_id, created_at=1000, kind=ItemKind.TEXT, category="General", file_name=None):
    return VaultItem(
        id=item_id,
        encrypted_payload=f"payload-{item_id}",
        category=category,
        kind=kind,
        created_at=created_at,
        file_name=file_name,
    )


# ── Storage ──────────────────────────────────────────────────────────


class TestVaultStorage:

    def test_get_missing_key_returns_default(self, storage):
        assert storage.get("nothing") is None
        assert storage.get("nothing", default=[]) == []

    def test_set_then_get(self, storage):
        storage.set("vault_config", {"categories": ["A"]})
        assert storage.get("vault_config") == {"categories": ["A"]}

    def test_set_replaces_value(self, storage):
        storage.set("key", [1, 2, 3])
        storage.set("key", [4])
        assert storage.get("key") == [4]

    def test_values_survive_reopen(self, tmp_path):
        db_path = tmp_path / "db" / "secure_vault.db"
        VaultStorage(db_path).set("key", {"a": 1})
        assert VaultStorage(db_path).get("key") == {"a": 1}

    def test_uses_wal_journal(self, storage):
        conn = sqlite3.connect(str(storage.db_path))
        try:
            mode = conn.execute("PRAGMA journal_mode").fetchone()[0]
        finally:
            conn.close()
        assert mode.lower() == "wal"

    def test_corrupted_value_raises_io_error(self, storage):
        conn = sqlite3.connect(str(storage.db_path))
        try:
            conn.execute(
                "INSERT INTO vault_store (key, value, updated_at) VALUES (?, ?, ?)",
                ("broken", "{not json", "now"),
            )
            conn.commit()
        finally:
            conn.close()
        with pytest.raises(VaultIOError):
            storage.get("broken")

    def test_unopenable_location_raises_io_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")
        with pytest.raises(VaultIOError):
            VaultStorage(blocker / "secure_vault.db")


# ── Item Store ───────────────────────────────────────────────────────


class TestItemStore:

    def test_empty_catalog(self, storage):
        assert ItemStore(storage).list() == []

    def test_save_and_list(self, storage):
        store = ItemStore(storage)
        items = [make_item("a"), make_item("b", kind=ItemKind.FILE, file_name="doc.pdf")]
        store.save(items)
        assert store.list() == items

    def test_save_overwrites_whole_catalog(self, storage):
        store = ItemStore(storage)
        store.save([make_item("a"), make_item("b")])
        store.save([make_item("c")])
        assert [item.id for item in store.list()] == ["c"]

    def test_save_empty_list_clears_catalog(self, storage):
        store = ItemStore(storage)
        store.save([make_item("a")])
        store.save([])
        assert store.list() == []

    def test_duplicate_ids_rejected_without_writing(self, storage):
        store = ItemStore(storage)
        store.save([make_item("a")])
        with pytest.raises(ValidationError):
            store.save([make_item("x"), make_item("x", created_at=2000)])
        assert [item.id for item in store.list()] == ["a"]

    def test_catalog_shared_between_instances(self, storage):
        ItemStore(storage).save([make_item("a")])
        assert [item.id for item in ItemStore(storage).list()] == ["a"]

    def test_corrupted_catalog_raises_io_error(self, storage):
        storage.set(ITEMS_KEY, [{"id": "a", "category": "General"}])
        with pytest.raises(VaultIOError, match="corrupted"):
            ItemStore(storage).list()


# ── Data Model ───────────────────────────────────────────────────────


class TestVaultItem:

    def test_to_dict_uses_export_field_names(self):
        item = make_item("f", kind=ItemKind.FILE, file_name="photo.png")
        assert item.to_dict() == {
            "id": "f",
            "encryptedPayload": "payload-f",
            "category": "General",
            "kind": "file",
            "createdAt": 1000,
            "fileName": "photo.png",
        }

    def test_text_item_has_no_file_name_key(self):
        assert "fileName" not in make_item("t").to_dict()

    def test_from_dict_restores_item(self):
        item = make_item("f", kind=ItemKind.FILE, file_name="photo.png")
        assert VaultItem.from_dict(item.to_dict()) == item

    def test_kind_string_is_coerced(self):
        item = VaultItem(id="t", encrypted_payload="p", category="Work", kind="text", created_at=1)
        assert item.kind is ItemKind.TEXT

    def test_file_item_requires_file_name(self):
        with pytest.raises(ValidationError):
            make_item("f", kind=ItemKind.FILE)

    def test_text_item_rejects_file_name(self):
        with pytest.raises(ValidationError):
            make_item("t", file_name="notes.txt")

    def test_empty_category_rejected(self):
        with pytest.raises(ValidationError):
            make_item("t", category="")

    def test_empty_id_rejected(self):
        with pytest.raises(ValidationError):
            make_item("")

    def test_empty_payload_rejected(self):
        with pytest.raises(ValidationError):
            VaultItem(id="t", encrypted_payload="", category="General", kind=ItemKind.TEXT, created_at=1)

    @pytest.mark.parametrize("created_at", [0, -5, True, 1.5])
    def test_created_at_must_be_positive_integer(self, created_at):
        with pytest.raises(ValidationError):
            make_item("t", created_at=created_at)

    def test_sort_newest_first(self):
        items = [make_item("old", 1), make_item("new", 3), make_item("mid", 2)]
        assert [item.id for item in sort_newest_first(items)] == ["new", "mid", "old"]

    def test_now_ms_strictly_increasing(self):
        stamps = [now_ms() for _ in range(50)]
        assert all(b > a for a, b in zip(stamps, stamps[1:]))


class TestRecords:

    def test_lock_state_defaults_to_locked(self):
        state = VaultLockState()
        assert state.locked is True
        assert state.backing_location_configured is False
        assert state.backing_location is None

    def test_lock_state_dict_roundtrip(self):
        state = VaultLockState(
            locked=False, last_modified=42,
            backing_location_configured=True, backing_location="/tmp/vault",
        )
        data = state.to_dict()
        assert data["lastModified"] == 42
        assert data["backingLocationConfigured"] is True
        assert VaultLockState.from_dict(data) == state

    def test_config_defaults(self):
        assert VaultConfig().categories == DEFAULT_CATEGORIES
        assert VaultConfig.from_dict({}).categories == DEFAULT_CATEGORIES

    def test_config_categories_are_copied(self):
        config = VaultConfig()
        config.categories.append("Extra")
        assert "Extra" not in DEFAULT_CATEGORIES
