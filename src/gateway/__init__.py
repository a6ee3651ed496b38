"""
Request gateway for the marketplace admin API.

Modules:
- client: RequestGateway and its error taxonomy
- refresh: TokenRefresher capability (no-op by default)
- auth: login / change-password flows
- context: build_context() composition root
"""

from .auth import AuthResult, AuthService
from .client import (
    AuthExpiredError,
    GatewayError,
    HttpError,
    NetworkError,
    RequestGateway,
    error_message,
)
from .context import AdminContext, build_context
from .refresh import HttpTokenRefresher, NoopTokenRefresher, TokenRefreshError

__all__ = [
    "AdminContext",
    "AuthExpiredError",
    "AuthResult",
    "AuthService",
    "GatewayError",
    "HttpError",
    "HttpTokenRefresher",
    "NetworkError",
    "NoopTokenRefresher",
    "RequestGateway",
    "TokenRefreshError",
    "build_context",
    "error_message",
]
