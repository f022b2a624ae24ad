"""
Append-only audit trail.

Every entry is attributed to the configured administrative identity; callers
cannot choose who an entry is attributed to.
"""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import ValidationError

from storefront.clients.kv_store import KeyValueNamespace
from storefront.models.records import AuditEntry

logger = logging.getLogger(__name__)

AUDIT_PREFIX = "audit:"
_SECONDS_PER_DAY = 86400


class AuditRecorder:
    """Writes and lists audit entries in the ``Audit`` namespace."""

    def __init__(
        self,
        namespace: KeyValueNamespace,
        *,
        admin_handle: str,
        retention_days: int = 365,
        list_limit: int = 200,
    ) -> None:
        self._namespace = namespace
        self._admin = admin_handle
        self._retention_seconds = retention_days * _SECONDS_PER_DAY
        self._list_limit = list_limit

    def record(
        self,
        event: str,
        details: Optional[Dict[str, Any]] = None,
        *,
        time: Optional[datetime] = None,
        admin: Any = None,
    ) -> AuditEntry:
        """Append an entry; ``admin`` is ignored and replaced by the configured identity."""
        del admin
        received_at = datetime.now(timezone.utc)
        # Keys sort by write order so listing can cap at the most recent writes.
        entry_id = f"{int(received_at.timestamp() * 1000):013d}-{secrets.token_hex(4)}"
        entry = AuditEntry(
            id=entry_id,
            time=time or received_at,
            admin=self._admin,
            event=event,
            details=dict(details or {}),
        )
        self._namespace.put(
            f"{AUDIT_PREFIX}{entry_id}",
            entry.model_dump_json(),
            ttl_seconds=self._retention_seconds,
        )
        return entry

    def list(self) -> list[AuditEntry]:
        """Return the most recently written entries, newest ``time`` first."""
        entries: list[AuditEntry] = []
        for key, raw in self._namespace.list(
            AUDIT_PREFIX, limit=self._list_limit, newest_first=True
        ):
            try:
                entries.append(AuditEntry.model_validate_json(raw))
            except ValidationError:
                logger.warning("Skipping unreadable audit entry %s", key)
        entries.sort(key=lambda entry: (entry.time, entry.id), reverse=True)
        return entries


__all__ = ["AUDIT_PREFIX", "AuditRecorder"]
