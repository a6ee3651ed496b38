from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

import httpx

from common.broadcaster import UIBroadcaster
from common.config import GatewaySettings
from common.log import get_logger
from common.tokens import TokenDecodeError, decode_token, seconds_until_expiry
from state.session import SessionManager

from .refresh import NoopTokenRefresher, TokenRefresher, TokenRefreshError
from .routes import ROOT_ROUTE


logger = get_logger("gateway")

SUCCESS_STATUSES = (200, 201)
BODY_METHODS = ("post", "put", "patch")
DEFAULT_ERROR_MESSAGE = "Something went wrong. Please try again."

Navigator = Callable[[str], None]


class GatewayError(RuntimeError):
    """Base error for requests issued through the gateway."""


class NetworkError(GatewayError):
    """The request never produced a response (connection, DNS, timeout)."""


class HttpError(GatewayError):
    """The server answered with a status outside the success set."""

    def __init__(self, status: int, body: Any = None) -> None:
        self.status = status
        self.body = body
        super().__init__(f"HTTP {status} from admin API: {str(body)[:200]}")

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.body, dict):
            msg = self.body.get("message")
            if isinstance(msg, str) and msg:
                return msg
        return None


class AuthExpiredError(HttpError):
    """401 from the API. The session has already been torn down when this is raised."""


def error_message(exc: BaseException, default: str) -> str:
    """User-facing text for a failed call: the server's `message` when it sent one."""
    if isinstance(exc, HttpError) and exc.message:
        return exc.message
    return default


@dataclass
class RefreshCheck:
    remaining: float  # seconds until `exp`, negative when already expired
    due: bool


def _log_navigation(path: str) -> None:
    logger.warning("Session ended; navigate to %s", path)


def _decode_body(resp: httpx.Response) -> Any:
    if not resp.content:
        return None
    try:
        return resp.json()
    except ValueError:
        return resp.text


class RequestGateway:
    """
    Single entry point for admin API calls.

    Notes
    - Sends `x-api-key` on every call and `authorization: Bearer` when the call
      requires auth and a token exists.
    - Checks the token's `exp` claim before each authenticated call; inside the
      refresh window the configured TokenRefresher gets a chance to swap it.
    - 200/201 return the decoded body as-is. Any 401 clears the session and the
      whole local store, navigates to "/", then raises AuthExpiredError. Other
      failures raise NetworkError / HttpError. Nothing is retried here.
    - The broadcaster's loading counter is held for the duration of the call and
      released whatever the outcome.
    """

    def __init__(
        self,
        settings: GatewaySettings,
        session: SessionManager,
        broadcaster: UIBroadcaster,
        *,
        client: Optional[httpx.AsyncClient] = None,
        refresher: Optional[TokenRefresher] = None,
        navigator: Optional[Navigator] = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._settings = settings
        self._base_url = settings.base_url.rstrip("/")
        self._session = session
        self._broadcaster = broadcaster
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=settings.timeout)
        self._refresher = refresher or NoopTokenRefresher()
        self._navigate = navigator or _log_navigation
        self._clock = clock
        # Outcome of the most recent expiry evaluation; None when it was skipped
        self.last_refresh_check: Optional[RefreshCheck] = None

    @property
    def client(self) -> httpx.AsyncClient:
        return self._client

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "RequestGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.aclose()

    # --------------- Public API ---------------
    async def dispatch(
        self,
        path: str,
        method: str = "get",
        body: Any = None,
        options: Optional[Dict[str, Any]] = None,
        require_auth: bool = True,
    ) -> Any:
        """
        Call `base_url + path` and return the decoded response body.

        `options` may carry `params`, extra `headers`, `timeout` and `files`
        (multipart upload; `body` is then sent as form fields).
        """
        method = method.lower()
        headers: Dict[str, str] = {"x-api-key": self._settings.api_key}
        self.last_refresh_check = None

        token = self._session.token
        if require_auth and token:
            headers["authorization"] = f"Bearer {token}"
            await self._check_expiry(token, headers)

        kwargs = self._request_kwargs(method, headers, body, options)
        url = self._base_url + path
        self._session.record_activity(self._clock())

        with self._broadcaster.request_in_flight():
            resp = await self._send(method, url, kwargs)
            return self._handle_response(method, path, resp)

    async def third_party(
        self,
        url: str,
        method: str = "get",
        headers: Optional[Dict[str, str]] = None,
        body: Any = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Call an absolute URL outside the admin API (no api key, no bearer token).

        A 401 status, or a body reporting `"status": 401`, still ends the session.
        """
        method = method.lower()
        kwargs = self._request_kwargs(method, dict(headers or {}), body, options)
        self._session.record_activity(self._clock())

        with self._broadcaster.request_in_flight():
            resp = await self._send(method, url, kwargs)

        payload = _decode_body(resp)
        if resp.status_code == 401:
            raise AuthExpiredError(resp.status_code, payload) from self._teardown()
        if not resp.is_success:
            raise HttpError(resp.status_code, payload)
        if isinstance(payload, dict) and payload.get("status") == 401:
            error = self._teardown()
            if error is not None:
                raise AuthExpiredError(401, payload) from error
        return payload

    # --------------- Internal ---------------
    async def _check_expiry(self, token: str, headers: Dict[str, str]) -> None:
        try:
            claims = decode_token(token)
        except TokenDecodeError:
            logger.debug("Bearer token is not a decodable JWT; skipping expiry check")
            return

        remaining = seconds_until_expiry(claims, self._clock())
        if remaining is None:
            return
        due = 0 < remaining < self._settings.refresh_window_seconds
        self.last_refresh_check = RefreshCheck(remaining=remaining, due=due)
        if not due:
            return

        try:
            new_token = await self._refresher.refresh(dict(headers))
        except TokenRefreshError:
            logger.warning("Token refresh failed; continuing with current token", exc_info=True)
            return
        if new_token and new_token != token and self._session.is_authenticated:
            self._session.replace_token(new_token)
            headers["authorization"] = f"Bearer {new_token}"
            logger.info("Bearer token refreshed %.0fs before expiry", remaining)

    @staticmethod
    def _request_kwargs(
        method: str,
        headers: Dict[str, str],
        body: Any,
        options: Optional[Dict[str, Any]],
    ) -> Dict[str, Any]:
        opts = options or {}
        extra_headers = opts.get("headers")
        if extra_headers:
            headers.update(extra_headers)
        kwargs: Dict[str, Any] = {"headers": headers}
        if opts.get("params") is not None:
            kwargs["params"] = opts["params"]
        if opts.get("timeout") is not None:
            kwargs["timeout"] = opts["timeout"]

        if method in BODY_METHODS:
            files = opts.get("files")
            if files:
                kwargs["files"] = files
                if body is not None:
                    kwargs["data"] = body
            elif body is not None:
                kwargs["json"] = body
        return kwargs

    async def _send(self, method: str, url: str, kwargs: Dict[str, Any]) -> httpx.Response:
        try:
            return await self._client.request(method.upper(), url, **kwargs)
        except (httpx.TimeoutException, httpx.TransportError) as exc:
            raise NetworkError(f"{method.upper()} {url} failed: {exc}") from exc

    def _handle_response(self, method: str, path: str, resp: httpx.Response) -> Any:
        status = resp.status_code
        if status in SUCCESS_STATUSES:
            return _decode_body(resp)
        if 200 <= status < 300:
            # 202/204 and friends carry nothing the callers know how to use
            return {"data": None, "message": DEFAULT_ERROR_MESSAGE}

        body = _decode_body(resp)
        if status == 401:
            logger.warning("%s %s returned 401", method.upper(), path)
            raise AuthExpiredError(status, body) from self._teardown()
        raise HttpError(status, body)

    def _teardown(self) -> Optional[Exception]:
        """
        End the session: forget it, wipe local storage, navigate to "/".

        Every step runs even when an earlier one fails. The first storage error is
        returned so callers can chain it onto AuthExpiredError.
        """
        error: Optional[Exception] = None
        for step in (self._session.clear, self._session.store.clear):
            try:
                step()
            except Exception as exc:
                logger.error("Local storage wipe failed during session teardown", exc_info=True)
                error = error or exc
        self._navigate(ROOT_ROUTE)
        return error


__all__ = [
    "AuthExpiredError",
    "DEFAULT_ERROR_MESSAGE",
    "GatewayError",
    "HttpError",
    "NetworkError",
    "RefreshCheck",
    "RequestGateway",
    "error_message",
]
