"""Schemas for the one-time secret ingestion endpoint."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator


class StoreSecretsRequest(BaseModel):
    """Bulk secret payload: ``{"secrets": {"NAME": "value", ...}}``."""

    secrets: dict[str, str] = Field(..., description="Secret names mapped to values.")

    @field_validator("secrets", mode="before")
    @classmethod
    def _coerce_scalars(cls, value: Any) -> Any:
        """Accept numbers and booleans as secret values by stringifying them."""
        if not isinstance(value, dict):
            return value
        coerced: dict[str, Any] = {}
        for name, raw in value.items():
            if isinstance(raw, bool):
                coerced[name] = "true" if raw else "false"
            elif isinstance(raw, (int, float)):
                coerced[name] = str(raw)
            else:
                coerced[name] = raw
        return coerced


class StoreSecretsResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    ok: bool = True
    stored_keys: list[str] = Field(alias="storedKeys")


__all__ = ["StoreSecretsRequest", "StoreSecretsResponse"]
