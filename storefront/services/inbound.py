"""Inbound email webhook receiver."""

from __future__ import annotations

import logging
import secrets
from datetime import datetime, timezone
from typing import Any

from storefront.clients.kv_store import KeyValueNamespace
from storefront.models.records import InboundMessage
from storefront.services.audit import AuditRecorder

logger = logging.getLogger(__name__)

MESSAGE_PREFIX = "msg:"


class InboundReceiver:
    """Stores webhook payloads verbatim; authenticity is not verified."""

    def __init__(self, sessions: KeyValueNamespace, audit: AuditRecorder) -> None:
        self._sessions = sessions
        self._audit = audit

    def receive(self, payload: Any) -> InboundMessage:
        received_at = datetime.now(timezone.utc)
        message = InboundMessage(
            id=f"msg_{int(received_at.timestamp() * 1000):x}_{secrets.token_hex(6)}",
            received_at=received_at,
            payload=payload,
        )
        self._sessions.put(f"{MESSAGE_PREFIX}{message.id}", message.model_dump_json())
        self._audit.record("inbound_email", {"id": message.id})
        logger.info("Stored inbound message %s", message.id)
        return message


__all__ = ["InboundReceiver", "MESSAGE_PREFIX"]
