"""
FastAPI routes for the storefront backend.
"""

from __future__ import annotations

import asyncio
import html
import json
import logging
from http import HTTPStatus
from typing import Annotated, Any, Optional

from fastapi import APIRouter, Depends, Header, Query, Request, Response
from fastapi.exceptions import RequestValidationError
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse
from pydantic import ValidationError

from storefront.core.errors import BadRequestError
from storefront.dependencies import (
    get_audit_recorder,
    get_checkout_controller,
    get_inbound_receiver,
    get_oauth_broker,
    get_setup_controller,
)
from storefront.schemas import (
    AuditEntryResponse,
    AuditEventRequest,
    AuditLogsResponse,
    CheckoutResponse,
    CreateCheckoutRequest,
    DeliveryResponse,
    InboundEmailResponse,
    OAuthCallbackResponse,
    StoreSecretsRequest,
    StoreSecretsResponse,
)
from storefront.services import (
    AuditRecorder,
    CheckoutController,
    InboundReceiver,
    OAuthBroker,
    SetupController,
)

router = APIRouter()
logger = logging.getLogger(__name__)


def describe_validation_error(exc: ValidationError | RequestValidationError) -> str:
    """Flatten pydantic errors into a single readable line."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error.get("loc", ()) if part != "body")
        message = error.get("msg", "invalid value")
        parts.append(f"{location}: {message}" if location else message)
    return "; ".join(parts) or "invalid request"


async def _read_json(request: Request) -> Any:
    raw = await request.body()
    try:
        return json.loads(raw)
    except ValueError as exc:
        raise BadRequestError("invalid json") from exc


def _prefers_json(request: Request) -> bool:
    accept = request.headers.get("accept", "").lower()
    return "application/json" in accept and "text/html" not in accept


@router.api_route("/health", methods=["GET", "HEAD"], status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.post("/store-secrets", response_model=StoreSecretsResponse)
async def store_secrets(
    request: Request,
    controller: Annotated[SetupController, Depends(get_setup_controller)],
    x_setup_token: Annotated[Optional[str], Header()] = None,
) -> StoreSecretsResponse:
    """One-time bulk secret ingestion guarded by the setup credential."""
    # Credential and one-time gate are checked before the body is parsed.
    await asyncio.to_thread(controller.authorize, x_setup_token)
    body = await _read_json(request)
    try:
        payload = StoreSecretsRequest.model_validate(body)
    except ValidationError as exc:
        raise BadRequestError(
            "invalid payload: {secrets:{...}} expected",
            detail=describe_validation_error(exc),
        ) from exc

    stored = await asyncio.to_thread(
        controller.initialize_secrets, x_setup_token, payload.secrets
    )
    return StoreSecretsResponse(stored_keys=stored)


@router.api_route("/oauth/init", methods=["GET", "HEAD"])
async def start_oauth_flow(
    broker: Annotated[OAuthBroker, Depends(get_oauth_broker)],
    provider: Optional[str] = Query(
        default=None, description="Provider identifier, e.g. github."
    ),
) -> RedirectResponse:
    """Redirect the browser to the provider consent screen."""
    authorization_url = await asyncio.to_thread(broker.initiate, provider)
    return RedirectResponse(url=authorization_url, status_code=HTTPStatus.FOUND)


@router.get("/oauth/callback")
async def handle_oauth_callback(
    request: Request,
    broker: Annotated[OAuthBroker, Depends(get_oauth_broker)],
    code: Optional[str] = Query(default=None, description="Authorization code."),
    state: Optional[str] = Query(default=None, description="State issued by /oauth/init."),
) -> Response:
    """Finish the handshake and confirm the connection to the administrator."""
    provider = await broker.complete(code, state)

    if _prefers_json(request):
        return JSONResponse(content=OAuthCallbackResponse(provider=provider).model_dump())

    name = html.escape(provider)
    return HTMLResponse(
        content=(
            f"<html><body><h2>Connected {name}</h2>"
            "<p>Close this window and return to your admin console.</p></body></html>"
        )
    )


@router.post("/inbound-email", response_model=InboundEmailResponse)
async def receive_inbound_email(
    request: Request,
    receiver: Annotated[InboundReceiver, Depends(get_inbound_receiver)],
) -> InboundEmailResponse:
    """Store an inbound email webhook payload verbatim."""
    payload = await _read_json(request)
    message = await asyncio.to_thread(receiver.receive, payload)
    return InboundEmailResponse(id=message.id)


@router.post(
    "/create-checkout",
    response_model=CheckoutResponse,
    response_model_exclude_none=True,
)
async def create_checkout(
    payload: CreateCheckoutRequest,
    controller: Annotated[CheckoutController, Depends(get_checkout_controller)],
) -> CheckoutResponse:
    """Create a checkout session, delivering pre-sold items inline."""
    session = await asyncio.to_thread(
        controller.create_checkout,
        payload.item_ref,
        buyer_ref=payload.buyer_ref,
        manifest=payload.manifest,
        presold=payload.presold,
    )
    return CheckoutResponse(
        session_id=session.session_id,
        status=session.status,
        delivery=session.delivery,
    )


@router.api_route(
    "/deliver", methods=["GET", "HEAD"], response_model=DeliveryResponse
)
async def resolve_delivery(
    controller: Annotated[CheckoutController, Depends(get_checkout_controller)],
    session_id: Optional[str] = Query(default=None),
    session: Optional[str] = Query(
        default=None, description="Alias of session_id kept for older links."
    ),
) -> DeliveryResponse:
    """Return the delivery artifact for a session, resolving it on first lookup."""
    resolved = await asyncio.to_thread(
        controller.resolve_delivery, session_id or session
    )
    return DeliveryResponse(session_id=resolved.session_id, delivery=resolved.delivery)


@router.post("/audit", response_model=AuditEntryResponse)
async def append_audit_entry(
    payload: AuditEventRequest,
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
) -> AuditEntryResponse:
    """Append one audit entry attributed to the administrative identity."""
    entry = await asyncio.to_thread(
        recorder.record,
        payload.event,
        payload.merged_details(),
        time=payload.time,
        admin=payload.admin,
    )
    return AuditEntryResponse(entry=entry)


@router.api_route(
    "/audit/logs", methods=["GET", "HEAD"], response_model=AuditLogsResponse
)
async def list_audit_entries(
    recorder: Annotated[AuditRecorder, Depends(get_audit_recorder)],
) -> AuditLogsResponse:
    """List audit entries, newest first."""
    logs = await asyncio.to_thread(recorder.list)
    return AuditLogsResponse(count=len(logs), logs=logs)


__all__ = ["describe_validation_error", "router"]
