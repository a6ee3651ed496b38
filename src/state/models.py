from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class StorageKey(str, Enum):
    """Names of the entries the session layer keeps in the local store."""

    USER_TOKEN = "USER_TOKEN"
    USER_DETAILS = "USER_DETAILS"
    SESSION_TIME = "SESSION_TIME"


class AdminUser(BaseModel):
    """
    Identity record returned by the login endpoint.

    Only the commonly used fields are typed; whatever else the server sends
    (permissions, avatar, ...) is kept as extra fields and round-trips through
    the store unchanged.
    """

    model_config = ConfigDict(extra="allow")

    id: Optional[str] = None
    email: Optional[str] = None
    name: Optional[str] = None
    role: Optional[str] = None


class Session(BaseModel):
    """
    Current authentication state.

    Fields
    - identity: the logged-in admin, None when signed out.
    - token: bearer token sent with authenticated requests.

    Notes
    - identity and token are set and cleared together by SessionManager.
    """

    identity: Optional[AdminUser] = Field(default=None)
    token: Optional[str] = Field(default=None)

    @property
    def is_authenticated(self) -> bool:
        return self.identity is not None

    @classmethod
    def empty(cls) -> "Session":
        """Convenience constructor for a signed-out session."""
        return cls()


__all__ = ["AdminUser", "Session", "StorageKey"]
