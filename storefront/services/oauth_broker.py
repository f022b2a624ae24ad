"""
OAuth authorization-code handshake.

``initiate`` persists a short-lived state token and returns the provider consent
URL; ``complete`` consumes that state, exchanges the code and stores the token
payload in the ``Secrets`` namespace.
"""

from __future__ import annotations

import asyncio
import logging
import re
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storefront.clients.kv_store import KeyValueNamespace
from storefront.clients.oauth import (
    OAuthProviderConfig,
    OAuthTokenClient,
    OAuthTokenExchangeError,
)
from storefront.core.config import OAuthSettings
from storefront.core.errors import (
    BadRequestError,
    ConfigurationError,
    ForbiddenError,
    UpstreamError,
)
from storefront.models.records import OAuthState
from storefront.services.audit import AuditRecorder
from storefront.services.secret_store import SecretStore

logger = logging.getLogger(__name__)

STATE_PREFIX = "oauth_state:"
_PROVIDER_NAME = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


class OAuthProviderRegistry:
    """Resolve provider configuration from settings, falling back to stored secrets."""

    def __init__(self, settings: OAuthSettings, secret_store: SecretStore) -> None:
        self._settings = settings
        self._secrets = secret_store

    @staticmethod
    def normalize(provider: Optional[str]) -> str:
        name = (provider or "").strip()
        if not name:
            raise BadRequestError("missing provider param")
        if not _PROVIDER_NAME.match(name):
            raise BadRequestError("invalid provider name")
        return name.lower()

    def resolve(self, provider: Optional[str]) -> OAuthProviderConfig:
        name = self.normalize(provider)
        configured = self._settings.providers.get(name)
        prefix = f"OAUTH_{name.upper().replace('-', '_')}_"

        def pick(attribute: str, secret_suffix: str) -> Optional[str]:
            value = getattr(configured, attribute) if configured else None
            return value or self._secrets.get(f"{prefix}{secret_suffix}")

        return OAuthProviderConfig(
            name=name,
            client_id=pick("client_id", "CLIENT_ID"),
            client_secret=pick("client_secret", "CLIENT_SECRET"),
            authorize_url=pick("authorize_url", "AUTH_URL"),
            token_url=pick("token_url", "TOKEN_URL"),
            scope=pick("scope", "SCOPE"),
            redirect_uri=self._settings.redirect_uri
            or self._secrets.get("OAUTH_REDIRECT_URI"),
        )


class OAuthBroker:
    """Two-step authorization-code handshake against third-party providers."""

    def __init__(
        self,
        settings: OAuthSettings,
        registry: OAuthProviderRegistry,
        sessions: KeyValueNamespace,
        secret_store: SecretStore,
        audit: AuditRecorder,
        token_client: OAuthTokenClient,
    ) -> None:
        self._settings = settings
        self._registry = registry
        self._sessions = sessions
        self._secrets = secret_store
        self._audit = audit
        self._token_client = token_client

    def initiate(self, provider: Optional[str]) -> str:
        """Persist a fresh state token and return the provider consent URL."""
        config = self._registry.resolve(provider)
        if not config.client_id or not config.authorize_url or not config.redirect_uri:
            raise BadRequestError("OAuth info missing for provider.")

        state = secrets.token_urlsafe(32)
        record = OAuthState(provider=config.name, created_at=datetime.now(timezone.utc))
        self._sessions.put(
            f"{STATE_PREFIX}{state}",
            record.model_dump_json(),
            ttl_seconds=self._settings.state_ttl_seconds,
        )
        logger.info("Issued OAuth state for provider %s", config.name)
        return self._token_client.build_authorization_url(config, state)

    def _consume_state(self, state: str) -> OAuthState:
        key = f"{STATE_PREFIX}{state}"
        raw = self._sessions.get(key)
        if raw is None:
            logger.warning("OAuth callback with unknown or expired state")
            raise ForbiddenError("invalid or expired state")
        self._sessions.delete(key)
        try:
            return OAuthState.model_validate_json(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable OAuth state record")
            raise ForbiddenError("invalid or expired state") from exc

    def _store_token(self, provider: str, token_payload: Dict[str, Any]) -> None:
        self._secrets.put_oauth_token(provider, token_payload)
        self._audit.record("oauth_connected", {"provider": provider})

    async def complete(self, code: Optional[str], state: Optional[str]) -> str:
        """Exchange ``code`` for a token; return the provider that was connected."""
        if not code or not state:
            raise BadRequestError("missing code or state")

        record = await asyncio.to_thread(self._consume_state, state)
        config = await asyncio.to_thread(self._registry.resolve, record.provider)
        if not config.token_url or not config.client_id:
            raise ConfigurationError("token configuration missing for provider")

        try:
            token_payload = await self._token_client.exchange_authorization_code(
                config, code
            )
        except OAuthTokenExchangeError as exc:
            logger.warning(
                "Token exchange for %s failed (status=%s)", config.name, exc.status_code
            )
            detail = exc.payload if self._settings.expose_upstream_errors else None
            raise UpstreamError(str(exc), detail=detail) from exc

        await asyncio.to_thread(self._store_token, config.name, token_payload)
        logger.info("Connected OAuth provider %s", config.name)
        return config.name


__all__ = ["OAuthBroker", "OAuthProviderRegistry", "STATE_PREFIX"]
