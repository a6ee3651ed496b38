"""
Session state and its encrypted local persistence.

`LocalStore` wraps a raw key/value backend (memory, JSON file or S3) and passes
every value through `common.cipher`; `SessionManager` keeps the signed-in admin
and token in that store.
"""

from .backends import JsonFileBackend, MemoryBackend, S3Backend
from .local_store import LocalStore, StoreCorruptionError, WriteMode
from .models import AdminUser, Session, StorageKey
from .session import SessionManager

__all__ = [
    "AdminUser",
    "JsonFileBackend",
    "LocalStore",
    "MemoryBackend",
    "S3Backend",
    "Session",
    "SessionManager",
    "StorageKey",
    "StoreCorruptionError",
    "WriteMode",
]
