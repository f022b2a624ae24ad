"""Symmetric encryption for secret values stored in the ``Secrets`` namespace."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken

CIPHERTEXT_PREFIX = "fernet:"


class SecretCipher:
    """Encrypt and decrypt secret values using a Fernet key derived from a passphrase."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError("Secret encryption key must be provided.")
        digest = hashlib.sha256(secret.encode("utf-8")).digest()
        self._fernet = Fernet(base64.urlsafe_b64encode(digest))

    @staticmethod
    def is_ciphertext(value: str) -> bool:
        return value.startswith(CIPHERTEXT_PREFIX)

    def encrypt(self, plaintext: str) -> str:
        token = self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")
        return f"{CIPHERTEXT_PREFIX}{token}"

    def decrypt(self, ciphertext: str) -> str:
        token = ciphertext[len(CIPHERTEXT_PREFIX):] if self.is_ciphertext(ciphertext) else ciphertext
        try:
            plaintext = self._fernet.decrypt(token.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError("Failed to decrypt secret; invalid ciphertext or key.") from exc
        return plaintext.decode("utf-8")


__all__ = ["CIPHERTEXT_PREFIX", "SecretCipher"]
