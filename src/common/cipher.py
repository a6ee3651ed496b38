from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class DecryptionFailure(ValueError):
    """Ciphertext could not be decrypted with the configured secret."""


def _derive_fernet_key(secret: str) -> bytes:
    # Fernet wants a urlsafe base64-encoded 32-byte key; the shared secret is free-form text
    digest = hashlib.sha256(secret.encode("utf-8")).digest()
    return base64.urlsafe_b64encode(digest)


class StorageCipher:
    """
    Symmetric string cipher bound to one static shared secret.

    Notes
    - Backed by Fernet. Every `encrypt` uses a fresh IV, so two calls with the same
      plaintext produce different ciphertexts; `decrypt` recovers the exact input.
    - The secret ships with the client, so this is obfuscation for values at rest,
      not confidentiality. Anyone holding the client configuration can decrypt.
    """

    def __init__(self, secret: str) -> None:
        if not secret:
            raise ValueError("secret is required")
        self._fernet = Fernet(_derive_fernet_key(secret))

    def encrypt(self, plaintext: str) -> str:
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("ascii")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt `ciphertext`; raises DecryptionFailure for foreign or corrupted input."""
        try:
            token = ciphertext.encode("ascii")
        except (AttributeError, UnicodeEncodeError) as ex:
            raise DecryptionFailure("ciphertext is not a Fernet token") from ex
        try:
            data = self._fernet.decrypt(token)
        except InvalidToken as ex:
            raise DecryptionFailure("invalid token or wrong secret") from ex
        try:
            return data.decode("utf-8")
        except UnicodeDecodeError as ex:
            raise DecryptionFailure("decrypted payload is not UTF-8 text") from ex


def encrypt(secret: str, plaintext: str) -> str:
    return StorageCipher(secret).encrypt(plaintext)


def decrypt(secret: str, ciphertext: str) -> str:
    return StorageCipher(secret).decrypt(ciphertext)


__all__ = [
    "DecryptionFailure",
    "StorageCipher",
    "decrypt",
    "encrypt",
]
