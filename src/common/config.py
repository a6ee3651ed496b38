from __future__ import annotations

import os
from typing import Optional

from pydantic import BaseModel, Field


ENV_BASE_URL = "ADMIN_API_BASE_URL"
ENV_API_KEY = "ADMIN_API_KEY"
ENV_LOCAL_SECRET = "ADMIN_LOCAL_SECRET"
ENV_REFRESH_WINDOW = "ADMIN_REFRESH_WINDOW"
ENV_TIMEOUT = "ADMIN_TIMEOUT"
ENV_STORE_DIR = "ADMIN_STORE_DIR"

# Proactive refresh starts five hours before the token's `exp`
DEFAULT_REFRESH_WINDOW_SECONDS = 18000.0
DEFAULT_TIMEOUT = 15.0


def _getenv(name: str, default: Optional[str] = None) -> Optional[str]:
    val = os.environ.get(name)
    return val if val not in (None, "") else default


class GatewaySettings(BaseModel):
    """
    Static configuration for the admin API client.

    Fields
    - base_url: API root every dispatched path is appended to.
    - api_key: sent as `x-api-key` on every gateway request.
    - local_secret: shared secret for the local store cipher (obfuscation only).
    - refresh_window_seconds: a token whose remaining lifetime falls inside this
      window is handed to the token refresher before the request goes out.
    - store_dir: directory for the file-backed local store (None = default).
    """

    base_url: str
    api_key: str
    local_secret: str
    refresh_window_seconds: float = Field(default=DEFAULT_REFRESH_WINDOW_SECONDS, gt=0)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    store_dir: Optional[str] = None

    @classmethod
    def from_env(cls) -> "GatewaySettings":
        base_url = _getenv(ENV_BASE_URL)
        api_key = _getenv(ENV_API_KEY)
        secret = _getenv(ENV_LOCAL_SECRET)
        if not base_url or not api_key or not secret:
            missing = [
                name
                for name, val in [(ENV_BASE_URL, base_url), (ENV_API_KEY, api_key), (ENV_LOCAL_SECRET, secret)]
                if not val
            ]
            raise RuntimeError(
                f"Missing required environment variables for admin client: {', '.join(missing)}"
            )
        return cls(
            base_url=base_url,
            api_key=api_key,
            local_secret=secret,
            refresh_window_seconds=float(_getenv(ENV_REFRESH_WINDOW, str(DEFAULT_REFRESH_WINDOW_SECONDS))),
            timeout=float(_getenv(ENV_TIMEOUT, str(DEFAULT_TIMEOUT))),
            store_dir=_getenv(ENV_STORE_DIR),
        )


__all__ = ["GatewaySettings", "DEFAULT_REFRESH_WINDOW_SECONDS"]
