from __future__ import annotations

import asyncio
import json
from typing import List

import httpx

from common.broadcaster import UIBroadcaster
from gateway.auth import AuthService
from gateway.client import RequestGateway
from state.session import SessionManager


USER = {"id": "1", "email": "admin@example.com", "name": "Admin User", "role": "admin"}


def _service(settings, store, scheduler, handler):
    session = SessionManager(store)
    ui = UIBroadcaster(scheduler=scheduler)
    navigations: List[str] = []
    gw = RequestGateway(
        settings,
        session,
        ui,
        client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
        navigator=navigations.append,
    )
    return AuthService(gw, session, ui), session, ui, navigations


def test_login_success_sets_session_and_toast(settings, store, scheduler):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"token": "tok-1", "user": USER})

    auth, session, ui, _ = _service(settings, store, scheduler, handler)
    result = asyncio.run(auth.login("admin@example.com", "pw"))

    assert result.success is True
    assert result.user.email == "admin@example.com"
    assert session.is_authenticated is True
    assert session.token == "tok-1"
    assert (ui.message, ui.message_type) == ("Login successful!", "success")
    assert json.loads(seen[0].content) == {"email": "admin@example.com", "password": "pw"}
    assert str(seen[0].url).endswith("/auth/login")
    assert "authorization" not in seen[0].headers
    # Persisted for the next start
    assert SessionManager(store).token == "tok-1"


def test_login_failure_shows_server_message(settings, store, scheduler):
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"message": "Invalid email or password"})

    auth, session, ui, _ = _service(settings, store, scheduler, handler)
    result = asyncio.run(auth.login("admin@example.com", "wrong"))

    assert result.success is False
    assert result.message == "Invalid email or password"
    assert session.is_authenticated is False
    assert (ui.message, ui.message_type) == ("Invalid email or password", "error")


def test_login_network_failure_uses_default_message(settings, store, scheduler):
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("down", request=request)

    auth, _, ui, _ = _service(settings, store, scheduler, handler)
    result = asyncio.run(auth.login("a@example.com", "pw"))
    assert result.message == "Login failed"
    assert ui.message_type == "error"
    assert ui.loading is False


def test_login_response_without_token_fails(settings, store, scheduler):
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"user": USER})

    auth, session, ui, _ = _service(settings, store, scheduler, handler)
    result = asyncio.run(auth.login("a@example.com", "pw"))
    assert result.success is False
    assert session.is_authenticated is False
    assert ui.message == "Login failed"


def test_change_password_success(settings, store, scheduler):
    seen: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"status": "SUCCESS"})

    auth, session, ui, _ = _service(settings, store, scheduler, handler)
    session.set_auth_details(USER, "tok")
    result = asyncio.run(auth.change_password("old-pw", "New-Password-1"))

    assert result.success is True
    assert ui.message == "Password changed successfully"
    assert seen[0].headers["authorization"] == "Bearer tok"
    assert json.loads(seen[0].content) == {"currentPassword": "old-pw", "newPassword": "New-Password-1"}


def test_change_password_on_expired_session_skips_toast(settings, store, scheduler):
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"message": "jwt expired"})

    auth, session, ui, navigations = _service(settings, store, scheduler, handler)
    session.set_auth_details(USER, "tok")
    result = asyncio.run(auth.change_password("old", "new"))

    assert result.success is False
    assert ui.message is None
    assert session.is_authenticated is False
    assert navigations == ["/"]


def test_change_password_error_toast(settings, store, scheduler):
    def handler(_: httpx.Request) -> httpx.Response:
        return httpx.Response(422, json={"message": "Current password is incorrect"})

    auth, session, ui, _ = _service(settings, store, scheduler, handler)
    session.set_auth_details(USER, "tok")
    result = asyncio.run(auth.change_password("bad", "new"))
    assert result.success is False
    assert (ui.message, ui.message_type) == ("Current password is incorrect", "error")


def test_logout_clears_session(settings, store, scheduler):
    auth, session, _, _ = _service(settings, store, scheduler, lambda r: httpx.Response(200))
    session.set_auth_details(USER, "tok")
    auth.logout()
    assert session.is_authenticated is False
    assert SessionManager(store).is_authenticated is False
