"""
OAuth authorization-code helpers.

Builds provider consent URLs and exchanges authorization codes for tokens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

_MAX_ERROR_BODY = 2000
_REDACTED = "[redacted]"


@dataclass(frozen=True)
class OAuthProviderConfig:
    """Fully resolved endpoints and client credentials for one provider."""

    name: str
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    scope: Optional[str] = None
    redirect_uri: Optional[str] = None


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint does not return a usable token payload."""

    def __init__(
        self, message: str, *, status_code: int | None = None, payload: Any = None
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.payload = payload


def _redact(value: Any, secret: Optional[str]) -> Any:
    """Strip every occurrence of ``secret`` from a decoded JSON payload."""
    if not secret:
        return value
    if isinstance(value, str):
        return value.replace(secret, _REDACTED)
    if isinstance(value, dict):
        return {_redact(k, secret): _redact(v, secret) for k, v in value.items()}
    if isinstance(value, list):
        return [_redact(item, secret) for item in value]
    return value


class OAuthTokenClient:
    """Talks to provider token endpoints over HTTP."""

    def __init__(
        self,
        *,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._timeout = timeout
        self._transport = transport

    @staticmethod
    def build_authorization_url(config: OAuthProviderConfig, state: str) -> str:
        """Construct the provider consent URL carrying ``state``."""
        params = {
            "response_type": "code",
            "client_id": config.client_id,
            "redirect_uri": config.redirect_uri,
        }
        if config.scope:
            params["scope"] = config.scope
        params["state"] = state
        separator = "&" if "?" in (config.authorize_url or "") else "?"
        return f"{config.authorize_url}{separator}{urlencode(params)}"

    async def exchange_authorization_code(
        self, config: OAuthProviderConfig, code: str
    ) -> Dict[str, Any]:
        """Exchange an authorization code and return the decoded token payload."""
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "client_id": config.client_id,
        }
        if config.redirect_uri:
            form["redirect_uri"] = config.redirect_uri
        if config.client_secret:
            form["client_secret"] = config.client_secret

        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    config.token_url,
                    data=form,
                    headers={"accept": "application/json"},
                )
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(
                "token endpoint unreachable",
                payload=_redact(str(exc), config.client_secret),
            ) from exc

        try:
            payload: Any = response.json()
        except ValueError:
            payload = response.text[:_MAX_ERROR_BODY]

        if not response.is_success:
            raise OAuthTokenExchangeError(
                "token exchange failed",
                status_code=response.status_code,
                payload=_redact(payload, config.client_secret),
            )
        if not isinstance(payload, dict):
            raise OAuthTokenExchangeError(
                "token endpoint returned a non-JSON payload",
                status_code=response.status_code,
                payload=_redact(payload, config.client_secret),
            )
        return payload


__all__ = [
    "OAuthProviderConfig",
    "OAuthTokenClient",
    "OAuthTokenExchangeError",
]
