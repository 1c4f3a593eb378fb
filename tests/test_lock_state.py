"""Tests for the vault lock state machine and sessions."""

import pytest

from secure_vault.vault.exceptions import (
    InitializationError,
    NotInitializedError,
    ValidationError,
    VaultLockedError,
    VaultStateError,
)
from secure_vault.vault.lock_state import VaultLockStateMachine, VaultSession, VaultStatus
from secure_vault.vault.models import VaultLockState
from secure_vault.vault.storage import STATE_KEY

PASSWORD = "Secure42$#@"


class TestVaultSession:

    def test_holds_password_until_closed(self):
        session = VaultSession(PASSWORD)
        assert session.active
        assert session.password == PASSWORD
        session.close()
        assert not session.active
        with pytest.raises(VaultLockedError):
            session.password

    def test_context_manager_closes(self):
        with VaultSession(PASSWORD) as session:
            assert session.active
        assert not session.active


class TestLockStateMachine:

    def test_fresh_vault_is_uninitialized(self, storage):
        machine = VaultLockStateMachine(storage)
        assert machine.status is VaultStatus.UNINITIALIZED
        assert machine.handle is None
        assert storage.get(STATE_KEY)["locked"] is True

    def test_unlock_requires_initialization(self, storage):
        machine = VaultLockStateMachine(storage)
        with pytest.raises(NotInitializedError):
            machine.unlock(PASSWORD)

    def test_initialize_then_locked(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        handle = machine.initialize(tmp_path / "files")
        assert machine.status is VaultStatus.LOCKED
        assert machine.handle == handle
        record = storage.get(STATE_KEY)
        assert record["backingLocationConfigured"] is True
        assert record["backingLocation"] == str(handle.root)

    def test_initialize_bad_location(self, storage, tmp_path):
        target = tmp_path / "plain-file"
        target.write_text("x")
        machine = VaultLockStateMachine(storage)
        with pytest.raises(InitializationError):
            machine.initialize(target)
        assert machine.status is VaultStatus.UNINITIALIZED

    def test_unlock_and_lock(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")

        session = machine.unlock(PASSWORD)
        assert machine.status is VaultStatus.UNLOCKED
        assert machine.session.password == PASSWORD
        assert storage.get(STATE_KEY)["locked"] is False

        machine.lock()
        assert machine.status is VaultStatus.LOCKED
        assert not session.active
        assert storage.get(STATE_KEY)["locked"] is True
        with pytest.raises(VaultLockedError):
            machine.session

    def test_unlock_rejects_weak_password(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        with pytest.raises(ValidationError):
            machine.unlock("short")
        assert machine.status is VaultStatus.LOCKED

    def test_double_unlock_rejected(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        machine.unlock(PASSWORD)
        with pytest.raises(VaultStateError):
            machine.unlock(PASSWORD)

    def test_lock_when_locked_is_noop(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        before = storage.get(STATE_KEY)
        machine.lock()
        assert storage.get(STATE_KEY) == before

    def test_lock_listeners_called(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        calls = []
        listener = lambda: calls.append("locked")  # noqa: E731
        machine.add_lock_listener(listener)

        machine.unlock(PASSWORD)
        machine.lock()
        assert calls == ["locked"]

        machine.remove_lock_listener(listener)
        machine.unlock(PASSWORD)
        machine.lock()
        assert calls == ["locked"]

    def test_failing_listener_does_not_skip_others(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        calls = []

        def broken():
            calls.append("broken")
            raise RuntimeError("listener failed")

        machine.add_lock_listener(broken)
        machine.add_lock_listener(lambda: calls.append("after"))

        machine.unlock(PASSWORD)
        with pytest.raises(RuntimeError, match="listener failed"):
            machine.lock()
        assert calls == ["broken", "after"]
        assert machine.status is VaultStatus.LOCKED
        assert storage.get(STATE_KEY)["locked"] is True

    def test_unlocked_context_locks_on_error(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        with pytest.raises(RuntimeError):
            with machine.unlocked(PASSWORD):
                assert machine.status is VaultStatus.UNLOCKED
                raise RuntimeError("boom")
        assert machine.status is VaultStatus.LOCKED

    def test_restart_comes_back_locked(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        machine.initialize(tmp_path / "files")
        machine.unlock(PASSWORD)

        restarted = VaultLockStateMachine(storage)
        assert restarted.status is VaultStatus.LOCKED
        assert restarted.handle == machine.handle
        assert storage.get(STATE_KEY)["locked"] is True

    def test_missing_backing_directory_is_uninitialized(self, storage, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")
        storage.set(STATE_KEY, VaultLockState(
            locked=True,
            backing_location_configured=True,
            backing_location=str(blocker / "files"),
        ).to_dict())

        machine = VaultLockStateMachine(storage)
        assert machine.status is VaultStatus.UNINITIALIZED

    def test_get_lock_state(self, storage, tmp_path):
        machine = VaultLockStateMachine(storage)
        assert machine.get_lock_state()["status"] == "uninitialized"

        handle = machine.initialize(tmp_path / "files")
        machine.unlock(PASSWORD)
        state = machine.get_lock_state()
        assert state["status"] == "unlocked"
        assert state["locked"] is False
        assert state["backing_configured"] is True
        assert state["backing_location"] == str(handle.root)
        assert PASSWORD not in str(state)
