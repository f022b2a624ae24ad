"""
Typed access to the ``Secrets`` namespace.

Holds raw secret values, the one-time initialization flag and OAuth token
payloads. Values are encrypted at rest when a cipher is configured; values
written before encryption was enabled are still readable as plaintext.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional

from storefront.clients.kv_store import KeyValueNamespace
from storefront.services.secret_cipher import SecretCipher

logger = logging.getLogger(__name__)

SECRET_PREFIX = "secret:"
INITIALIZED_FLAG_KEY = "meta:initialized"


def oauth_token_secret_name(provider: str) -> str:
    return f"oauth:{provider.lower()}:token"


class SecretStore:
    """Read and write secrets by logical name."""

    def __init__(
        self, namespace: KeyValueNamespace, cipher: Optional[SecretCipher] = None
    ) -> None:
        self._namespace = namespace
        self._cipher = cipher

    def get(self, name: str) -> Optional[str]:
        stored = self._namespace.get(f"{SECRET_PREFIX}{name}")
        if stored is None:
            return None
        if SecretCipher.is_ciphertext(stored):
            if self._cipher is None:
                raise ValueError(
                    f"Secret {name!r} is encrypted but no encryption key is configured."
                )
            return self._cipher.decrypt(stored)
        return stored

    def put(self, name: str, value: str) -> None:
        stored = self._cipher.encrypt(value) if self._cipher else value
        self._namespace.put(f"{SECRET_PREFIX}{name}", stored)

    def is_initialized(self) -> bool:
        """Any non-empty flag value is a permanent lock."""
        return bool(self._namespace.get(INITIALIZED_FLAG_KEY))

    def mark_initialized(self) -> bool:
        """Set the initialization flag; ``False`` when another caller set it first."""
        return self._namespace.put_if_absent(INITIALIZED_FLAG_KEY, "true")

    def put_oauth_token(self, provider: str, token_payload: Dict[str, Any]) -> None:
        self.put(oauth_token_secret_name(provider), json.dumps(token_payload))


__all__ = [
    "INITIALIZED_FLAG_KEY",
    "SECRET_PREFIX",
    "SecretStore",
    "oauth_token_secret_name",
]
