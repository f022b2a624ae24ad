"""Pydantic models for checkout creation and delivery lookups."""

from __future__ import annotations

from typing import Any, Dict, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.models.records import DeliveryArtifact


class CreateCheckoutRequest(BaseModel):
    """Incoming payload for creating a checkout session."""

    model_config = ConfigDict(populate_by_name=True)

    item_ref: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("itemRef", "item_ref", "sku"),
        description="Catalog identifier of the purchased item (e.g. PWS-0001).",
    )
    buyer_ref: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("buyerRef", "buyer_ref", "user"),
        description="Opaque buyer reference supplied by the storefront.",
    )
    manifest: Dict[str, Any] = Field(
        default_factory=dict,
        description="Free-form item metadata carried on the session record.",
    )
    presold: bool = Field(
        False,
        description="When true, delivery is resolved immediately without payment capture.",
    )


class CheckoutResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    session_id: str = Field(alias="sessionId")
    status: Literal["pending", "delivered"]
    delivery: Optional[DeliveryArtifact] = None


class DeliveryResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    session_id: str = Field(alias="sessionId")
    delivery: DeliveryArtifact


__all__ = ["CheckoutResponse", "CreateCheckoutRequest", "DeliveryResponse"]
