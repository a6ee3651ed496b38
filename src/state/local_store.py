from __future__ import annotations

import json
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel

from common.cipher import DecryptionFailure, StorageCipher
from common.log import get_logger

from .backends import StorageBackend


logger = get_logger("state.store")


class WriteMode(str, Enum):
    SINGLE = "single"
    MULTIPLE = "multiple"
    REMOVE = "remove"


class StoreCorruptionError(ValueError):
    """A stored list entry could not be decrypted or is not a JSON array."""


def _serialize(value: Any) -> str:
    # JSON for structured values and scalars ("true", "null", "3"); strings pass through untouched
    if isinstance(value, str):
        return value
    if isinstance(value, BaseModel):
        value = value.model_dump(mode="json")
    if value is None or isinstance(value, (bool, int, float, dict, list, tuple)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


def _to_record(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


class LocalStore:
    """
    Named entries kept in a `StorageBackend`, each passed through a cipher.

    Usage
    - `write(name, value)` replaces the entry (single mode).
    - `write(name, record, mode=WriteMode.MULTIPLE)` appends to a JSON array entry.
    - `write(name, record, mode=WriteMode.REMOVE)` drops array records whose `id`
      matches `record["id"]`.
    - `read(name)` returns the decrypted text or None.

    Notes
    - The cipher key is a client-side constant: this hides values from casual
      inspection of the backend and nothing more.
    - A corrupt entry reads as None, but list mutations on a corrupt entry raise
      StoreCorruptionError instead of overwriting it with a fresh list.
    """

    def __init__(self, backend: StorageBackend, cipher: StorageCipher) -> None:
        self._backend = backend
        self._cipher = cipher

    @property
    def backend(self) -> StorageBackend:
        return self._backend

    # -------- Core operations --------
    def write(self, name: str, value: Any, mode: WriteMode = WriteMode.SINGLE) -> None:
        mode = WriteMode(mode)
        if mode is WriteMode.SINGLE:
            self._put(name, _serialize(value))
        elif mode is WriteMode.MULTIPLE:
            records = self._load_records(name) or []
            records.append(_to_record(value))
            self._put(name, _serialize(records))
        else:
            self._remove_record(name, value)

    def read(self, name: str) -> Optional[str]:
        """Decrypted value under `name`; None when absent or undecryptable."""
        raw = self._backend.get_item(name)
        if not raw:
            return None
        try:
            return self._cipher.decrypt(raw)
        except DecryptionFailure:
            logger.warning("Discarding undecryptable entry %s", name)
            return None

    def erase(self, name: str) -> None:
        self._backend.remove_item(name)

    def clear(self) -> None:
        """Remove every entry in the backend, including ones this store did not write."""
        self._backend.clear()

    # -------- Convenience readers --------
    def read_json(self, name: str) -> Any:
        """Parsed JSON under `name`; None when absent, undecryptable or not JSON."""
        text = self.read(name)
        if text is None:
            return None
        try:
            return json.loads(text)
        except ValueError:
            logger.warning("Entry %s is not valid JSON", name)
            return None

    def read_records(self, name: str) -> List[Any]:
        """Records of a list entry; raises StoreCorruptionError for a damaged entry."""
        return self._load_records(name) or []

    # -------- Internal --------
    def _put(self, name: str, plaintext: str) -> None:
        self._backend.set_item(name, self._cipher.encrypt(plaintext))

    def _load_records(self, name: str) -> Optional[List[Any]]:
        raw = self._backend.get_item(name)
        if raw is None:
            return None
        try:
            text = self._cipher.decrypt(raw)
        except DecryptionFailure as ex:
            raise StoreCorruptionError(f"Failed to decrypt list entry {name}") from ex
        try:
            parsed = json.loads(text)
        except ValueError as ex:
            raise StoreCorruptionError(f"List entry {name} is not valid JSON") from ex
        if not isinstance(parsed, list):
            raise StoreCorruptionError(f"List entry {name} holds {type(parsed).__name__}, not a list")
        return parsed

    def _remove_record(self, name: str, value: Any) -> None:
        records = self._load_records(name)
        if records is None:
            self.erase(name)
            return
        target = _to_record(value)
        target_id = target.get("id") if isinstance(target, dict) else None
        kept = [r for r in records if not (isinstance(r, dict) and r.get("id") == target_id)]
        self._put(name, _serialize(kept))


__all__ = ["LocalStore", "StoreCorruptionError", "WriteMode"]
