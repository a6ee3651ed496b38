from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from common.broadcaster import UIBroadcaster
from common.log import get_logger
from state.models import AdminUser
from state.session import SessionManager

from .client import AuthExpiredError, GatewayError, RequestGateway, error_message
from .routes import CHANGE_PASSWORD, LOGIN


logger = get_logger("gateway.auth")


@dataclass
class AuthResult:
    success: bool
    message: Optional[str] = None
    user: Optional[AdminUser] = None


class AuthService:
    """Login / password flows; the only caller of `SessionManager.set_auth_details`."""

    def __init__(self, gateway: RequestGateway, session: SessionManager, broadcaster: UIBroadcaster) -> None:
        self._gateway = gateway
        self._session = session
        self._broadcaster = broadcaster

    async def login(self, email: str, password: str) -> AuthResult:
        try:
            data = await self._gateway.dispatch(
                LOGIN, "post", {"email": email, "password": password}, require_auth=False
            )
        except GatewayError as exc:
            # A 401 here means bad credentials; the user is already on the login screen
            message = error_message(exc, "Login failed")
            self._broadcaster.set_message(message, "error")
            return AuthResult(success=False, message=message)

        token = data.get("token") if isinstance(data, dict) else None
        user = data.get("user") if isinstance(data, dict) else None
        if not isinstance(token, str) or not token or not isinstance(user, dict):
            logger.error("Login response missing token or user")
            message = "Login failed"
            self._broadcaster.set_message(message, "error")
            return AuthResult(success=False, message=message)

        self._session.set_auth_details(user, token)
        self._broadcaster.set_message("Login successful!", "success")
        return AuthResult(success=True, user=self._session.identity)

    async def change_password(self, current_password: str, new_password: str) -> AuthResult:
        try:
            await self._gateway.dispatch(
                CHANGE_PASSWORD,
                "post",
                {"currentPassword": current_password, "newPassword": new_password},
            )
        except AuthExpiredError:
            # Session already torn down and redirected; no toast
            return AuthResult(success=False, message="Session expired")
        except GatewayError as exc:
            message = error_message(exc, "Password change failed")
            self._broadcaster.set_message(message, "error")
            return AuthResult(success=False, message=message)

        message = "Password changed successfully"
        self._broadcaster.set_message(message, "success")
        return AuthResult(success=True, message=message)

    def logout(self) -> None:
        self._session.logout()


__all__ = ["AuthResult", "AuthService"]
