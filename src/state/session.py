from __future__ import annotations

import time
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from common.log import get_logger

from .local_store import LocalStore, WriteMode
from .models import AdminUser, Session, StorageKey


logger = get_logger("state.session")


def _to_identity(identity: Union[AdminUser, Dict[str, Any]]) -> AdminUser:
    if isinstance(identity, AdminUser):
        return identity
    return AdminUser.model_validate(identity)


class SessionManager:
    """
    Owns the signed-in admin and bearer token, mirrored into the local store.

    - The persisted entries are read once at construction (simulating app start).
    - `set_auth_details` is the only way in; `clear` is the only way out. Both
      touch identity and token together.
    """

    def __init__(self, store: LocalStore) -> None:
        self._store = store
        self._session = self.load_from_store()

    @property
    def store(self) -> LocalStore:
        return self._store

    def load_from_store(self) -> Session:
        """Rebuild the session from storage; anything missing or unreadable means signed out."""
        token = self._store.read(StorageKey.USER_TOKEN.value)
        details = self._store.read_json(StorageKey.USER_DETAILS.value)
        if not token or not isinstance(details, dict):
            return Session.empty()
        try:
            identity = AdminUser.model_validate(details)
        except ValidationError:
            logger.warning("Stored user details failed validation; starting signed out")
            return Session.empty()
        return Session(identity=identity, token=token)

    # -------- Accessors --------
    @property
    def identity(self) -> Optional[AdminUser]:
        return self._session.identity

    @property
    def token(self) -> Optional[str]:
        return self._session.token

    @property
    def is_authenticated(self) -> bool:
        return self._session.is_authenticated

    def snapshot(self) -> Session:
        return self._session.model_copy()

    # -------- Transitions --------
    def set_auth_details(self, identity: Union[AdminUser, Dict[str, Any]], token: str) -> None:
        if not token:
            raise ValueError("token is required")
        user = _to_identity(identity)
        self._store.write(StorageKey.USER_DETAILS.value, user, mode=WriteMode.SINGLE)
        self._store.write(StorageKey.USER_TOKEN.value, token, mode=WriteMode.SINGLE)
        self._session = Session(identity=user, token=token)
        logger.info("Session established for %s", user.email or user.id or "unknown user")

    def replace_token(self, token: str) -> None:
        """Swap in a refreshed token, keeping the identity."""
        if not token:
            raise ValueError("token is required")
        if self._session.identity is None:
            raise RuntimeError("Cannot replace token on a signed-out session")
        self.set_auth_details(self._session.identity, token)

    def clear(self) -> None:
        # In-memory state goes first so a storage failure cannot leave the client signed in
        self._session = Session.empty()
        self._store.erase(StorageKey.USER_DETAILS.value)
        self._store.erase(StorageKey.USER_TOKEN.value)

    def logout(self) -> None:
        self.clear()
        logger.info("Signed out")

    # -------- Activity bookkeeping --------
    def record_activity(self, now: Optional[float] = None) -> None:
        ts = time.time() if now is None else now
        self._store.write(StorageKey.SESSION_TIME.value, str(int(ts * 1000)), mode=WriteMode.SINGLE)

    def last_activity(self) -> Optional[float]:
        """Epoch seconds of the last dispatched request, or None."""
        raw = self._store.read(StorageKey.SESSION_TIME.value)
        if raw is None:
            return None
        try:
            return int(raw) / 1000.0
        except ValueError:
            return None

    def idle_seconds(self, now: Optional[float] = None) -> Optional[float]:
        last = self.last_activity()
        if last is None:
            return None
        return (time.time() if now is None else now) - last


__all__ = ["SessionManager"]
