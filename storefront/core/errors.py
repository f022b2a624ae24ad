"""
Error taxonomy shared by every service.

Services raise these; the exception handlers registered in ``storefront.main``
translate them into the ``{"error": message}`` envelope.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import Any


class StorefrontError(Exception):
    """Base error carrying the HTTP status it should surface as."""

    status_code: int = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, *, detail: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.detail = detail

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"error": self.message}
        if self.detail is not None:
            payload["detail"] = self.detail
        return payload


class BadRequestError(StorefrontError):
    """Malformed or missing caller input."""

    status_code = HTTPStatus.BAD_REQUEST


class UnauthorizedError(StorefrontError):
    """No credential was supplied."""

    status_code = HTTPStatus.UNAUTHORIZED


class ForbiddenError(StorefrontError):
    """The credential or correlator supplied is not acceptable."""

    status_code = HTTPStatus.FORBIDDEN


class AlreadyInitializedError(ForbiddenError):
    """The one-time secret ingestion gate has already been consumed."""


class NotFoundError(StorefrontError):
    """A referenced record does not exist."""

    status_code = HTTPStatus.NOT_FOUND


class UpstreamError(StorefrontError):
    """A third-party endpoint rejected the request."""


class ConfigurationError(StorefrontError):
    """Required server-side configuration is absent."""


class StoreUnavailableError(StorefrontError):
    """The key-value backend could not complete an operation."""


__all__ = [
    "AlreadyInitializedError",
    "BadRequestError",
    "ConfigurationError",
    "ForbiddenError",
    "NotFoundError",
    "StoreUnavailableError",
    "StorefrontError",
    "UnauthorizedError",
    "UpstreamError",
]
