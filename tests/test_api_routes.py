from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from urllib.parse import parse_qs, urlparse

import pytest

from storefront import dependencies
from storefront.clients import KeyValueNamespace
from storefront.core.errors import StoreUnavailableError
from storefront.services import CheckoutController

from conftest import (
    ADMIN_HANDLE,
    SETUP_TOKEN,
    SlowStore,
    gather_with_loop_stall,
    stored_message,
    stored_oauth_token,
)

pytestmark = pytest.mark.anyio


class UnavailableAuditRecorder:
    def record(self, *args, **kwargs):
        raise StoreUnavailableError("key-value store unavailable")

    def list(self):
        raise StoreUnavailableError("key-value store unavailable")


class ExplodingAuditRecorder:
    def list(self):
        raise RuntimeError("boom")


async def test_healthcheck(client) -> None:
    response = await client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
    assert response.headers["access-control-allow-origin"] == "*"


async def test_preflight_is_answered_without_routing(client) -> None:
    response = await client.options("/api/store-secrets")

    assert response.status_code == 204
    assert response.headers["access-control-allow-origin"] == "*"
    assert "x-setup-token" in response.headers["access-control-allow-headers"]
    assert "POST" in response.headers["access-control-allow-methods"]


async def test_unknown_route_is_json_not_found(client) -> None:
    response = await client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "not found"}


async def test_store_secrets_is_one_time(client, services) -> None:
    headers = {"x-setup-token": SETUP_TOKEN}
    body = {"secrets": {"STRIPE_KEY": "sk_live_1", "RETRIES": 3}}

    first = await client.post("/api/store-secrets", json=body, headers=headers)
    assert first.status_code == 200
    assert first.json() == {"ok": True, "storedKeys": ["STRIPE_KEY", "RETRIES"]}
    assert services.secret_store.get("RETRIES") == "3"

    second = await client.post(
        "/api/store-secrets", json={"secrets": {"STRIPE_KEY": "other"}}, headers=headers
    )
    assert second.status_code == 403
    assert second.json() == {"error": "already initialized"}
    assert services.secret_store.get("STRIPE_KEY") == "sk_live_1"


async def test_store_secrets_requires_token_before_body(client) -> None:
    response = await client.post("/api/store-secrets", content=b"{not json")

    assert response.status_code == 401
    assert response.json() == {"error": "missing setup token"}


async def test_store_secrets_rejects_wrong_token(client, services) -> None:
    response = await client.post(
        "/api/store-secrets",
        json={"secrets": {"A": "1"}},
        headers={"x-setup-token": "wrong"},
    )

    assert response.status_code == 403
    assert services.secret_store.get("A") is None


@pytest.mark.parametrize(
    "body",
    [{}, {"secrets": ["A"]}, {"secrets": "A=1"}, {"secrets": {"A": {"nested": 1}}}],
)
async def test_store_secrets_rejects_malformed_payload(client, body) -> None:
    response = await client.post(
        "/api/store-secrets", json=body, headers={"x-setup-token": SETUP_TOKEN}
    )

    assert response.status_code == 400
    assert response.json()["error"] == "invalid payload: {secrets:{...}} expected"
    assert "detail" in response.json()


async def test_store_secrets_rejects_invalid_json(client) -> None:
    response = await client.post(
        "/api/store-secrets", content=b"{oops", headers={"x-setup-token": SETUP_TOKEN}
    )

    assert response.status_code == 400
    assert response.json() == {"error": "invalid json"}


async def test_oauth_handshake_over_http(client, services) -> None:
    init = await client.get("/api/oauth/init", params={"provider": "github"})
    assert init.status_code == 302
    location = init.headers["location"]
    state = parse_qs(urlparse(location).query)["state"][0]

    callback = await client.get(
        "/api/oauth/callback", params={"code": "auth-code", "state": state}
    )

    assert callback.status_code == 200
    assert "text/html" in callback.headers["content-type"]
    assert "Connected github" in callback.text
    assert stored_oauth_token(services, "github")["access_token"] == "gho_token"


async def test_oauth_callback_can_answer_json(client) -> None:
    init = await client.get("/api/oauth/init", params={"provider": "github"})
    state = parse_qs(urlparse(init.headers["location"]).query)["state"][0]

    callback = await client.get(
        "/api/oauth/callback",
        params={"code": "auth-code", "state": state},
        headers={"accept": "application/json"},
    )

    assert callback.json() == {"ok": True, "provider": "github"}


async def test_oauth_init_without_provider(client) -> None:
    response = await client.get("/api/oauth/init")

    assert response.status_code == 400
    assert response.json() == {"error": "missing provider param"}


async def test_oauth_callback_with_forged_state(client) -> None:
    response = await client.get(
        "/api/oauth/callback", params={"code": "auth-code", "state": "forged"}
    )

    assert response.status_code == 403
    assert response.json() == {"error": "invalid or expired state"}


async def test_oauth_callback_surfaces_upstream_failure(client, services) -> None:
    from storefront.clients import OAuthTokenExchangeError

    services.token_client.error = OAuthTokenExchangeError(
        "token exchange failed", status_code=400, payload={"error": "bad_verification_code"}
    )
    init = await client.get("/api/oauth/init", params={"provider": "github"})
    state = parse_qs(urlparse(init.headers["location"]).query)["state"][0]

    response = await client.get(
        "/api/oauth/callback", params={"code": "stale", "state": state}
    )

    assert response.status_code == 500
    assert response.json() == {
        "error": "token exchange failed",
        "detail": {"error": "bad_verification_code"},
    }


async def test_inbound_email_is_stored(client, services) -> None:
    response = await client.post("/api/inbound-email", json={"subject": "Order #1"})

    assert response.status_code == 200
    body = response.json()
    assert body["ok"] is True
    assert stored_message(services, body["id"]).payload == {"subject": "Order #1"}


async def test_inbound_email_rejects_invalid_json(client) -> None:
    response = await client.post("/api/inbound-email", content=b"<xml/>")

    assert response.status_code == 400
    assert response.json() == {"error": "invalid json"}


async def test_presold_checkout_then_deliver_returns_same_artifact(client) -> None:
    created = await client.post(
        "/api/create-checkout",
        json={"itemRef": "PWS-0001", "buyerRef": "buyer-42", "presold": True},
    )
    assert created.status_code == 200
    body = created.json()
    assert body["status"] == "delivered"
    session_id = body["sessionId"]

    delivered = await client.get("/api/deliver", params={"session_id": session_id})
    legacy = await client.get("/api/deliver", params={"session": session_id})

    assert delivered.status_code == 200
    assert delivered.json()["delivery"] == body["delivery"]
    assert legacy.json()["delivery"] == body["delivery"]
    assert body["delivery"]["url"] == f"https://proton.me/s/{session_id}"


async def test_pending_checkout_omits_delivery(client) -> None:
    created = await client.post("/api/create-checkout", json={"sku": "PWS-0002"})

    assert created.status_code == 200
    assert created.json()["status"] == "pending"
    assert "delivery" not in created.json()


async def test_create_checkout_requires_item(client) -> None:
    response = await client.post("/api/create-checkout", json={"presold": True})

    assert response.status_code == 400
    assert response.json() == {"error": "missing item reference"}


async def test_create_checkout_rejects_non_object_body(client) -> None:
    response = await client.post("/api/create-checkout", content=b"not json")

    assert response.status_code == 400
    assert "error" in response.json()


async def test_deliver_requires_session(client) -> None:
    response = await client.get("/api/deliver")

    assert response.status_code == 400
    assert response.json() == {"error": "missing session_id"}


async def test_deliver_unknown_session(client) -> None:
    response = await client.get("/api/deliver", params={"session_id": "sess_missing"})

    assert response.status_code == 404
    assert response.json() == {"error": "session not found"}


async def test_audit_append_ignores_caller_admin(client) -> None:
    response = await client.post(
        "/api/audit",
        json={"action": "price_change", "admin": "mallory", "sku": "PWS-0001"},
    )

    assert response.status_code == 200
    entry = response.json()["entry"]
    assert entry["admin"] == ADMIN_HANDLE
    assert entry["event"] == "price_change"
    assert entry["details"] == {"sku": "PWS-0001"}


async def test_audit_logs_are_newest_first(client) -> None:
    for stamp in ("2024-01-01T00:00:00Z", "2024-03-01T00:00:00Z", "2024-02-01T00:00:00Z"):
        await client.post("/api/audit", json={"event": stamp, "time": stamp})

    response = await client.get("/api/audit/logs")

    body = response.json()
    assert body["ok"] is True
    assert body["count"] == 3
    assert [entry["event"] for entry in body["logs"]] == [
        "2024-03-01T00:00:00Z",
        "2024-02-01T00:00:00Z",
        "2024-01-01T00:00:00Z",
    ]


async def test_audit_logs_report_store_failure(client, app_overrides) -> None:
    app_overrides.dependency_overrides[dependencies.get_audit_recorder] = (
        UnavailableAuditRecorder
    )

    response = await client.get("/api/audit/logs")

    assert response.status_code == 500
    assert response.json() == {"error": "key-value store unavailable"}
    assert response.headers["access-control-allow-origin"] == "*"


async def test_unexpected_errors_become_json(client, app_overrides) -> None:
    app_overrides.dependency_overrides[dependencies.get_audit_recorder] = (
        ExplodingAuditRecorder
    )

    response = await client.get("/api/audit/logs")

    assert response.status_code == 500
    assert response.json() == {"error": "boom"}
    assert response.headers["access-control-allow-origin"] == "*"


async def test_wrong_method_uses_error_envelope(client) -> None:
    response = await client.delete("/api/health")

    assert response.status_code == 405
    assert response.json() == {"error": "method not allowed"}


@pytest.mark.parametrize(
    "secrets",
    [
        {"stripe key": "sk_live_1"},
        {"clé secrète": "valeur", "名前": "値"},
        {"N" * 500: "long"},
        {},
    ],
)
async def test_store_secrets_accepts_any_secret_map(client, services, secrets) -> None:
    headers = {"x-setup-token": SETUP_TOKEN}

    first = await client.post("/api/store-secrets", json={"secrets": secrets}, headers=headers)

    assert first.status_code == 200
    assert first.json()["storedKeys"] == list(secrets)
    assert [key for key, _ in services.secrets_ns.list("secret:")] == sorted(
        f"secret:{name}" for name in secrets
    )
    for name, value in secrets.items():
        assert services.secret_store.get(name) == value

    second = await client.post("/api/store-secrets", json={"secrets": {}}, headers=headers)
    assert second.status_code == 403
    assert second.json() == {"error": "already initialized"}


async def test_head_is_served_on_read_routes(client, services) -> None:
    session = services.checkout.create_checkout("PWS-0001", presold=True)

    health = await client.head("/api/health")
    deliver = await client.head("/api/deliver", params={"session_id": session.session_id})
    logs = await client.head("/api/audit/logs")

    assert [health.status_code, deliver.status_code, logs.status_code] == [200, 200, 200]
    assert "HEAD" in health.headers["access-control-allow-methods"]


async def test_store_io_runs_off_the_event_loop(client, services, app_overrides) -> None:
    session = services.checkout.create_checkout("PWS-0001", presold=True)
    slow_sessions = KeyValueNamespace(
        SlowStore(services.store, delay=0.3), "sessions", clock=services.clock
    )
    controller = CheckoutController(
        slow_sessions,
        services.audit,
        delivery_base_url=services.settings.delivery_base_url,
    )
    app_overrides.dependency_overrides[dependencies.get_checkout_controller] = (
        lambda: controller
    )

    responses, stall = await gather_with_loop_stall(
        client.get("/api/deliver", params={"session_id": session.session_id}),
        client.get("/api/deliver", params={"session_id": session.session_id}),
    )

    assert [response.status_code for response in responses] == [200, 200]
    assert stall < 0.2
