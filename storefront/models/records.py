"""
Domain records persisted in the key-value namespaces.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class OAuthState(BaseModel):
    """Anti-forgery state issued when an OAuth handshake starts."""

    provider: str
    created_at: datetime


class DeliveryArtifact(BaseModel):
    """Access link handed to the buyer of a checkout session."""

    url: str


class CheckoutSession(BaseModel):
    """A checkout, pending until its delivery artifact is resolved."""

    session_id: str
    item_ref: str
    buyer_ref: Optional[str] = None
    manifest: Dict[str, Any] = Field(default_factory=dict)
    presold: bool = False
    status: Literal["pending", "delivered"] = "pending"
    created_at: datetime
    delivery: Optional[DeliveryArtifact] = None
    delivered_at: Optional[datetime] = None


class InboundMessage(BaseModel):
    """Webhook payload stored verbatim."""

    id: str
    received_at: datetime
    payload: Any


class AuditEntry(BaseModel):
    """Immutable record of an administrative or system action."""

    id: str
    time: datetime
    admin: str
    event: str
    details: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("time")
    @classmethod
    def _normalize_time(cls, value: datetime) -> datetime:
        return _as_utc(value)


__all__ = [
    "AuditEntry",
    "CheckoutSession",
    "DeliveryArtifact",
    "InboundMessage",
    "OAuthState",
]
