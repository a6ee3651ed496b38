from __future__ import annotations

from typing import Dict, Optional, Protocol

import httpx

from common.log import get_logger

from .routes import REFRESH_TOKEN


logger = get_logger("gateway.refresh")


class TokenRefreshError(RuntimeError):
    """The refresh endpoint could not be reached or rejected the request."""


class TokenRefresher(Protocol):
    async def refresh(self, headers: Dict[str, str]) -> Optional[str]:
        """Return a replacement bearer token, or None to keep the current one."""
        ...


class NoopTokenRefresher:
    """Default refresher: evaluates nothing, never replaces the token."""

    async def refresh(self, headers: Dict[str, str]) -> Optional[str]:
        return None


class HttpTokenRefresher:
    """
    Calls the API's refresh endpoint with the outgoing request's headers.

    Expects `{"status": "SUCCESS", "data": {"token": "..."}}`. Any other 200
    payload is logged and ignored; transport and HTTP failures raise
    TokenRefreshError.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, *, path: str = REFRESH_TOKEN) -> None:
        self._client = client
        self._url = base_url.rstrip("/") + path

    async def refresh(self, headers: Dict[str, str]) -> Optional[str]:
        try:
            resp = await self._client.get(self._url, headers=headers)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise TokenRefreshError("Token refresh request failed") from exc
        if resp.status_code != 200:
            raise TokenRefreshError(f"HTTP {resp.status_code} from refresh endpoint")
        try:
            payload = resp.json()
        except ValueError as exc:
            raise TokenRefreshError("Refresh endpoint returned non-JSON body") from exc

        if isinstance(payload, dict) and payload.get("status") == "SUCCESS":
            data = payload.get("data")
            token = data.get("token") if isinstance(data, dict) else None
            if isinstance(token, str) and token:
                return token
        logger.error("Unexpected refresh response: %s", str(payload)[:200])
        return None


__all__ = [
    "HttpTokenRefresher",
    "NoopTokenRefresher",
    "TokenRefreshError",
    "TokenRefresher",
]
