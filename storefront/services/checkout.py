"""
Checkout sessions and delivery resolution for pre-sold digital goods.

A session's delivery artifact is derived from its id and persisted on the
session record the first time it is resolved; later lookups return the stored
artifact unchanged.
"""

from __future__ import annotations

import logging
import secrets
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional
from urllib.parse import quote

from storefront.clients.kv_store import KeyValueNamespace
from storefront.core.errors import BadRequestError, NotFoundError
from storefront.models.records import CheckoutSession, DeliveryArtifact
from storefront.services.audit import AuditRecorder

logger = logging.getLogger(__name__)

SESSION_PREFIX = "session:"
_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def _base36(value: int) -> str:
    digits = []
    while True:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
        if not value:
            return "".join(reversed(digits))


def new_session_id() -> str:
    return f"sess_{_base36(int(time.time() * 1000))}_{secrets.token_hex(8)}"


class CheckoutController:
    """Creates checkout sessions and resolves their delivery artifacts."""

    def __init__(
        self,
        sessions: KeyValueNamespace,
        audit: AuditRecorder,
        *,
        delivery_base_url: str,
    ) -> None:
        self._sessions = sessions
        self._audit = audit
        self._delivery_base_url = delivery_base_url

    def derive_delivery(self, session_id: str) -> DeliveryArtifact:
        return DeliveryArtifact(url=f"{self._delivery_base_url}{quote(session_id, safe='')}")

    def _save(self, session: CheckoutSession) -> None:
        self._sessions.put(f"{SESSION_PREFIX}{session.session_id}", session.model_dump_json())

    def _deliver(self, session: CheckoutSession) -> CheckoutSession:
        delivered = session.model_copy(
            update={
                "delivery": self.derive_delivery(session.session_id),
                "status": "delivered",
                "delivered_at": datetime.now(timezone.utc),
            }
        )
        self._save(delivered)
        return delivered

    def create_checkout(
        self,
        item_ref: Optional[str],
        buyer_ref: Optional[str] = None,
        manifest: Optional[Dict[str, Any]] = None,
        presold: bool = False,
    ) -> CheckoutSession:
        """Persist a pending session, delivering immediately when ``presold``."""
        if not item_ref or not item_ref.strip():
            raise BadRequestError("missing item reference")

        session = CheckoutSession(
            session_id=new_session_id(),
            item_ref=item_ref.strip(),
            buyer_ref=buyer_ref,
            manifest=dict(manifest or {}),
            presold=presold,
            created_at=datetime.now(timezone.utc),
        )
        self._save(session)
        self._audit.record(
            "create_checkout",
            {"session_id": session.session_id, "item_ref": session.item_ref, "presold": presold},
        )
        logger.info("Created checkout session %s for %s", session.session_id, session.item_ref)

        if not presold:
            return session

        session = self._deliver(session)
        self._audit.record("auto_deliver_presold", {"session_id": session.session_id})
        return session

    def resolve_delivery(self, session_id: Optional[str]) -> CheckoutSession:
        """Return the session with its delivery artifact, resolving it on first use."""
        if not session_id:
            raise BadRequestError("missing session_id")

        raw = self._sessions.get(f"{SESSION_PREFIX}{session_id}")
        if raw is None:
            raise NotFoundError("session not found")
        session = CheckoutSession.model_validate_json(raw)
        if session.delivery is not None:
            return session

        session = self._deliver(session)
        self._audit.record("deliver_resolved", {"session_id": session_id})
        logger.info("Resolved delivery for session %s", session_id)
        return session


__all__ = ["CheckoutController", "SESSION_PREFIX", "new_session_id"]
