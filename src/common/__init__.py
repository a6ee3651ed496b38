"""
Common utilities for the admin client.

Modules:
- cipher: symmetric string cipher for values kept in the local store
- tokens: unverified JWT claim decoding (expiry hints only)
- broadcaster: loading counter and toast message state
- config: GatewaySettings loaded from the environment
- log: area loggers
"""

__all__ = [
    "broadcaster",
    "cipher",
    "config",
    "log",
    "tokens",
]
