# Vault - Lock State Machine
#
#   Uninitialized --initialize--> Locked --unlock--> Unlocked --lock--> Locked ...
#
# The persisted record keeps locked / lastModified / backing location; the
# password only ever lives in the in-memory VaultSession and is dropped on
# lock, on every exit path.

from contextlib import contextmanager
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

from .blob_store import BackingHandle, open_backing
from .encryption import require_valid_password
from .exceptions import (
    InitializationError,
    NotInitializedError,
    VaultLockedError,
    VaultStateError,
)
from .models import VaultLockState, now_ms
from .storage import STATE_KEY, VaultStorage


class VaultStatus(str, Enum):
    UNINITIALIZED = "uninitialized"
    LOCKED = "locked"
    UNLOCKED = "unlocked"


class VaultSession:
    """Holds the unlock password until closed."""

    def __init__(self, password: str):
        self._password: Optional[str] = password

    @property
    def active(self) -> bool:
        return self._password is not None

    @property
    def password(self) -> str:
        if self._password is None:
            raise VaultLockedError()
        return self._password

    def close(self):
        self._password = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False


LockListener = Callable[[], None]


class VaultLockStateMachine:
    """
    Tracks whether the vault is initialized and unlocked.

    Unlock only checks the password policy; a wrong password is discovered
    the first time something is decrypted with it.
    """

    def __init__(self, storage: VaultStorage):
        self.storage = storage
        self._session: Optional[VaultSession] = None
        self._listeners: List[LockListener] = []
        self._handle: Optional[BackingHandle] = None

        record = self.storage.get(STATE_KEY)
        self._state = VaultLockState.from_dict(record) if record else VaultLockState()
        if record is None or not self._state.locked:
            # No session survives a restart
            self._state.locked = True
            self._persist()

        if self._state.backing_location_configured and self._state.backing_location:
            try:
                self._handle = open_backing(self._state.backing_location)
            except InitializationError:
                self._handle = None

    # ── Queries ───────────────────────────────────────────────────────

    @property
    def status(self) -> VaultStatus:
        if self._handle is None:
            return VaultStatus.UNINITIALIZED
        if self._session is not None and self._session.active:
            return VaultStatus.UNLOCKED
        return VaultStatus.LOCKED

    @property
    def handle(self) -> Optional[BackingHandle]:
        return self._handle

    @property
    def session(self) -> VaultSession:
        """The live session; raises VaultLockedError when locked."""
        if self.status is not VaultStatus.UNLOCKED:
            raise VaultLockedError()
        return self._session

    def get_lock_state(self) -> Dict[str, Any]:
        return {
            "status": self.status.value,
            "locked": self.status is not VaultStatus.UNLOCKED,
            "backing_configured": self._handle is not None,
            "backing_location": str(self._handle.root) if self._handle else None,
            "last_modified": self._state.last_modified,
        }

    # ── Transitions ───────────────────────────────────────────────────

    def initialize(self, location: Union[str, Path]) -> BackingHandle:
        """
        Choose (or replace) the backing location.

        Old and new locations are not merged.

        Raises:
            InitializationError: Location cannot be established
        """
        handle = open_backing(location)
        self._handle = handle
        self._state.backing_location_configured = True
        self._state.backing_location = str(handle.root)
        self._state.last_modified = now_ms()
        self._persist()
        return handle

    def unlock(self, password: str) -> VaultSession:
        """
        Open a session with the given password.

        Raises:
            NotInitializedError: No backing location yet
            VaultStateError: Already unlocked
            ValidationError: Password fails policy
        """
        status = self.status
        if status is VaultStatus.UNINITIALIZED:
            raise NotInitializedError()
        if status is VaultStatus.UNLOCKED:
            raise VaultStateError("Vault is already unlocked")
        require_valid_password(password)

        session = VaultSession(password)
        self._session = session
        self._state.locked = False
        self._state.last_modified = now_ms()
        try:
            self._persist()
        except Exception:
            self._state.locked = True
            self._drop_session()
            raise
        return session

    def lock(self):
        """Close the session and notify listeners. No-op when not unlocked."""
        if self._session is None:
            return
        try:
            self._state.locked = True
            self._state.last_modified = now_ms()
            self._persist()
        finally:
            self._drop_session()
            self._notify_listeners()

    @contextmanager
    def unlocked(self, password: str) -> Iterator[VaultSession]:
        """Unlock for the duration of a with-block, locking again on exit."""
        session = self.unlock(password)
        try:
            yield session
        finally:
            self.lock()

    # ── Listeners ─────────────────────────────────────────────────────

    def add_lock_listener(self, listener: LockListener):
        """Register a callback run after every lock (e.g. clear decrypted views)."""
        self._listeners.append(listener)

    def remove_lock_listener(self, listener: LockListener):
        if listener in self._listeners:
            self._listeners.remove(listener)

    # ── Internals ─────────────────────────────────────────────────────

    def _drop_session(self):
        if self._session is not None:
            self._session.close()
        self._session = None

    def _notify_listeners(self):
        """Run every listener; the first failure is re-raised after the rest ran."""
        first_error = None
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    def _persist(self):
        self.storage.set(STATE_KEY, self._state.to_dict())
