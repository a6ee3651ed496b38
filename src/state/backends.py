from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Dict, List, Optional, Protocol

import boto3
from botocore.exceptions import ClientError

from common.log import get_logger


logger = get_logger("state.backends")

DEFAULT_STORE_DIR_ENV = "ADMIN_STORE_DIR"
STORE_FILENAME = "admin_store.json"


class StorageBackend(Protocol):
    """Raw string key/value persistence, shaped like the browser's localStorage."""

    def get_item(self, name: str) -> Optional[str]: ...

    def set_item(self, name: str, value: str) -> None: ...

    def remove_item(self, name: str) -> None: ...

    def clear(self) -> None: ...

    def keys(self) -> List[str]: ...


class MemoryBackend:
    """Process-local backend; state is gone when the object is."""

    def __init__(self, initial: Optional[Dict[str, str]] = None) -> None:
        self._data: Dict[str, str] = dict(initial or {})

    def get_item(self, name: str) -> Optional[str]:
        return self._data.get(name)

    def set_item(self, name: str, value: str) -> None:
        self._data[name] = value

    def remove_item(self, name: str) -> None:
        self._data.pop(name, None)

    def clear(self) -> None:
        self._data.clear()

    def keys(self) -> List[str]:
        return list(self._data.keys())


def default_store_file(store_dir: Optional[str] = None) -> Path:
    # Prefer explicit dir, then env var, else project-local .cache folder
    base = store_dir or os.environ.get(DEFAULT_STORE_DIR_ENV)
    if base:
        return Path(base) / STORE_FILENAME
    return Path(".cache") / STORE_FILENAME


class JsonFileBackend:
    """
    Single JSON file holding { name: raw_value, ... }.

    - Loaded lazily on first access and kept in memory afterwards.
    - A missing or corrupt file reads as empty; the next write replaces it.
    - Write failures propagate: losing a session write silently would leave the
      on-disk state out of step with memory.
    """

    def __init__(self, path: Optional[os.PathLike[str] | str] = None) -> None:
        self._path = Path(path) if path else default_store_file()
        self._data: Dict[str, str] = {}
        self._loaded = False

    @property
    def path(self) -> Path:
        return self._path

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        self._loaded = True
        if not self._path.exists():
            return
        try:
            with self._path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
        except (OSError, ValueError):
            logger.warning("Ignoring unreadable store file %s", self._path)
            return
        if isinstance(raw, dict):
            self._data = {str(k): v for k, v in raw.items() if isinstance(v, str)}

    def _save(self) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        with self._path.open("w", encoding="utf-8") as f:
            json.dump(self._data, f, indent=2, sort_keys=True)

    def get_item(self, name: str) -> Optional[str]:
        self._ensure_loaded()
        return self._data.get(name)

    def set_item(self, name: str, value: str) -> None:
        self._ensure_loaded()
        self._data[name] = value
        self._save()

    def remove_item(self, name: str) -> None:
        self._ensure_loaded()
        if self._data.pop(name, None) is not None:
            self._save()

    def clear(self) -> None:
        self._loaded = True
        self._data = {}
        if self._path.exists():
            self._save()

    def keys(self) -> List[str]:
        self._ensure_loaded()
        return list(self._data.keys())


class S3Backend:
    """
    One S3 object per name, stored under `prefix`.

    Lets an admin session follow the operator across machines, or survive a
    rebuilt workstation, without anything but ciphertext leaving the client:
    values are encrypted by LocalStore before they get here.
    """

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str = "admin-session/",
        s3: Optional[object] = None,
        region_name: Optional[str] = None,
    ) -> None:
        if not bucket:
            raise ValueError("bucket is required")
        self._s3 = s3 or boto3.client("s3", region_name=region_name)
        self._bucket = bucket
        self._prefix = prefix

    def _key(self, name: str) -> str:
        return f"{self._prefix}{name}"

    def get_item(self, name: str) -> Optional[str]:
        try:
            resp = self._s3.get_object(Bucket=self._bucket, Key=self._key(name))
        except ClientError as e:
            code = e.response.get("Error", {}).get("Code")
            if code in ("NoSuchKey", "404"):
                return None
            raise
        return resp["Body"].read().decode("utf-8")

    def set_item(self, name: str, value: str) -> None:
        self._s3.put_object(
            Bucket=self._bucket,
            Key=self._key(name),
            Body=value.encode("utf-8"),
            ContentType="text/plain",
        )

    def remove_item(self, name: str) -> None:
        # DeleteObject on a missing key succeeds on S3
        self._s3.delete_object(Bucket=self._bucket, Key=self._key(name))

    def keys(self) -> List[str]:
        out: List[str] = []
        token: Optional[str] = None
        while True:
            kwargs = {"Bucket": self._bucket, "Prefix": self._prefix}
            if token:
                kwargs["ContinuationToken"] = token
            resp = self._s3.list_objects_v2(**kwargs)
            for obj in resp.get("Contents", []):
                out.append(obj["Key"][len(self._prefix):])
            if not resp.get("IsTruncated"):
                return out
            token = resp.get("NextContinuationToken")

    def clear(self) -> None:
        for name in self.keys():
            self.remove_item(name)


__all__ = ["JsonFileBackend", "MemoryBackend", "S3Backend", "StorageBackend"]
