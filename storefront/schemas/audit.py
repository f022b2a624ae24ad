"""Schemas for appending and listing audit entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from storefront.models.records import AuditEntry


class AuditEventRequest(BaseModel):
    """Audit append payload; unknown top-level fields are folded into ``details``."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    event: str = Field(
        "admin_action",
        min_length=1,
        validation_alias=AliasChoices("event", "action"),
    )
    details: Dict[str, Any] = Field(default_factory=dict)
    time: Optional[datetime] = Field(
        None, validation_alias=AliasChoices("time", "timestamp")
    )
    admin: Optional[Any] = Field(
        None,
        description="Accepted for compatibility; always replaced by the configured identity.",
    )

    def merged_details(self) -> Dict[str, Any]:
        extras = dict(self.model_extra or {})
        extras.update(self.details)
        return extras


class AuditEntryResponse(BaseModel):
    ok: bool = True
    entry: AuditEntry


class AuditLogsResponse(BaseModel):
    ok: bool = True
    count: int
    logs: list[AuditEntry]


__all__ = ["AuditEntryResponse", "AuditEventRequest", "AuditLogsResponse"]
