"""Small response envelopes for the OAuth callback and webhook receiver."""

from __future__ import annotations

from pydantic import BaseModel


class OAuthCallbackResponse(BaseModel):
    ok: bool = True
    provider: str


class InboundEmailResponse(BaseModel):
    ok: bool = True
    id: str


__all__ = ["InboundEmailResponse", "OAuthCallbackResponse"]
