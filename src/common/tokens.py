"""
Bearer token claim inspection.

WARNING: nothing here verifies a signature. Claims are read only as a UX hint
(when to refresh a token ahead of expiry). Every trust decision belongs to the
server; never gate access on the output of `decode_token`.
"""

from __future__ import annotations

from typing import Optional

import jwt
from pydantic import BaseModel, ConfigDict, ValidationError


class TokenDecodeError(ValueError):
    """The token is not a decodable JWT or its claims are malformed."""


class TokenClaims(BaseModel):
    model_config = ConfigDict(extra="allow")

    exp: Optional[float] = None
    iat: Optional[float] = None


def decode_token(token: Optional[str]) -> Optional[TokenClaims]:
    """
    Decode the payload of `token` without verifying it.

    Returns None for an empty/absent token. Raises TokenDecodeError for anything
    that is not a well-formed JWT.
    """
    if not token:
        return None
    try:
        payload = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as ex:
        raise TokenDecodeError(f"Failed to decode token: {ex}") from ex
    try:
        return TokenClaims.model_validate(payload)
    except ValidationError as ve:
        raise TokenDecodeError(f"Unexpected claim types: {ve}") from ve


def seconds_until_expiry(claims: Optional[TokenClaims], now: float) -> Optional[float]:
    """Remaining lifetime in seconds (negative when expired); None when `exp` is unknown."""
    if claims is None or claims.exp is None:
        return None
    return claims.exp - now


__all__ = ["TokenClaims", "TokenDecodeError", "decode_token", "seconds_until_expiry"]
