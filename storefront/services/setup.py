"""
One-time secret ingestion.

The endpoint accepts a single successful call over the lifetime of the store.
Secrets are written before the initialization flag so a call that fails part
way through can be retried.
"""

from __future__ import annotations

import hmac
import logging
from typing import Mapping, Optional

from storefront.core.config import AppSettings
from storefront.core.errors import (
    AlreadyInitializedError,
    ConfigurationError,
    ForbiddenError,
    UnauthorizedError,
)
from storefront.services.audit import AuditRecorder
from storefront.services.secret_store import SecretStore

logger = logging.getLogger(__name__)


class SetupController:
    """Validates the setup credential and performs the bulk secret write."""

    def __init__(
        self,
        settings: AppSettings,
        secret_store: SecretStore,
        audit: AuditRecorder,
    ) -> None:
        self._setup_token = settings.setup_token
        self._secrets = secret_store
        self._audit = audit

    def authorize(self, provided_token: Optional[str]) -> None:
        """Reject the call before the request body is looked at."""
        if not provided_token:
            raise UnauthorizedError("missing setup token")
        if not self._setup_token:
            raise ConfigurationError("server not configured with SETUP_TOKEN")
        if not hmac.compare_digest(
            provided_token.encode("utf-8"), self._setup_token.encode("utf-8")
        ):
            logger.warning("Rejected secret ingestion with an invalid setup token")
            raise ForbiddenError("invalid setup token")
        if self._secrets.is_initialized():
            raise AlreadyInitializedError("already initialized")

    def initialize_secrets(
        self, provided_token: Optional[str], secrets: Mapping[str, str]
    ) -> list[str]:
        """Store every secret, lock the gate and return the stored names."""
        self.authorize(provided_token)

        stored: list[str] = []
        for name, value in secrets.items():
            self._secrets.put(name, value)
            stored.append(name)

        if not self._secrets.mark_initialized():
            logger.warning("Initialization flag was set concurrently; rejecting call")
            raise AlreadyInitializedError("already initialized")

        self._audit.record("store_secrets", {"stored": stored})
        logger.info("Stored %d secrets and locked secret ingestion", len(stored))
        return stored


__all__ = ["SetupController"]
