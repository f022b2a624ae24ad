"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except ImportError:  # pragma: no cover - tests/ is not a package
    import _bootstrap  # type: ignore # noqa: F401

import asyncio
import json
import time
from dataclasses import dataclass
from typing import Any, Awaitable

import httpx
import pytest

from storefront.clients import KeyValueNamespace, OAuthTokenClient, SQLiteKeyValueStore
from storefront.core.config import AppSettings, OAuthSettings, StorageSettings
from storefront.models.records import InboundMessage
from storefront.services import (
    AuditRecorder,
    CheckoutController,
    InboundReceiver,
    OAuthBroker,
    OAuthProviderRegistry,
    SecretStore,
    SetupController,
)
from storefront.services.inbound import MESSAGE_PREFIX
from storefront.services.secret_store import oauth_token_secret_name

SETUP_TOKEN = "setup-token-123"
ADMIN_HANDLE = "storefront-admin"
REDIRECT_URI = "https://shop.example.com/api/oauth/callback"
GITHUB_SECRET = "gh-client-secret"


class FakeClock:
    """Controllable replacement for ``time.time``."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class DummyTokenClient(OAuthTokenClient):
    """Records exchanges instead of calling a token endpoint."""

    def __init__(self) -> None:
        super().__init__()
        self.exchanges: list[tuple[Any, str]] = []
        self.response: dict[str, Any] = {"access_token": "gho_token", "token_type": "bearer"}
        self.error: Exception | None = None

    async def exchange_authorization_code(self, config, code):
        self.exchanges.append((config, code))
        if self.error is not None:
            raise self.error
        return dict(self.response)


class SlowStore:
    """Delegates to a real store, sleeping before every call like a remote backend."""

    def __init__(self, inner: Any, delay: float) -> None:
        self._inner = inner
        self._delay = delay

    def __getattr__(self, name: str) -> Any:
        operation = getattr(self._inner, name)

        def slowed(*args: Any, **kwargs: Any) -> Any:
            time.sleep(self._delay)
            return operation(*args, **kwargs)

        return slowed


async def gather_with_loop_stall(*awaitables: Awaitable[Any]) -> tuple[list[Any], float]:
    """Run ``awaitables`` concurrently; return results and the longest event-loop stall."""
    loop = asyncio.get_running_loop()
    marks = [loop.time()]

    async def tick() -> None:
        while True:
            await asyncio.sleep(0.01)
            marks.append(loop.time())

    ticker = asyncio.create_task(tick())
    try:
        results = await asyncio.gather(*awaitables)
    finally:
        ticker.cancel()
    marks.append(loop.time())
    return list(results), max(later - earlier for earlier, later in zip(marks, marks[1:]))


@dataclass
class Services:
    settings: AppSettings
    clock: FakeClock
    store: SQLiteKeyValueStore
    secrets_ns: KeyValueNamespace
    sessions_ns: KeyValueNamespace
    audit_ns: KeyValueNamespace
    secret_store: SecretStore
    audit: AuditRecorder
    setup: SetupController
    registry: OAuthProviderRegistry
    token_client: DummyTokenClient
    broker: OAuthBroker
    checkout: CheckoutController
    inbound: InboundReceiver


def stored_oauth_token(services: "Services", provider: str) -> dict[str, Any] | None:
    raw = services.secret_store.get(oauth_token_secret_name(provider))
    return json.loads(raw) if raw is not None else None


def stored_message(services: "Services", message_id: str) -> InboundMessage | None:
    raw = services.sessions_ns.get(f"{MESSAGE_PREFIX}{message_id}")
    return InboundMessage.model_validate_json(raw) if raw else None


def build_settings(**overrides: Any) -> AppSettings:
    values: dict[str, Any] = {
        "SETUP_TOKEN": SETUP_TOKEN,
        "ADMIN_HANDLE": ADMIN_HANDLE,
        "storage": StorageSettings(AUDIT_LIST_LIMIT=200),
        "oauth": OAuthSettings(
            OAUTH_REDIRECT_URI=REDIRECT_URI,
            OAUTH_PROVIDERS={
                "GitHub": {
                    "client_id": "gh-client",
                    "client_secret": GITHUB_SECRET,
                    "authorize_url": "https://github.com/login/oauth/authorize",
                    "token_url": "https://github.com/login/oauth/access_token",
                    "scope": "repo read:user",
                }
            },
        ),
    }
    values.update(overrides)
    return AppSettings(**values)


def build_services(tmp_path, settings: AppSettings | None = None) -> Services:
    settings = settings or build_settings()
    clock = FakeClock()
    store = SQLiteKeyValueStore(str(tmp_path / "kv.db"))
    secrets_ns = KeyValueNamespace(store, "secrets", clock=clock)
    sessions_ns = KeyValueNamespace(store, "sessions", clock=clock)
    audit_ns = KeyValueNamespace(store, "audit", clock=clock)
    secret_store = SecretStore(secrets_ns)
    audit = AuditRecorder(
        audit_ns,
        admin_handle=settings.admin_handle,
        retention_days=settings.storage.audit_retention_days,
        list_limit=settings.storage.audit_list_limit,
    )
    registry = OAuthProviderRegistry(settings.oauth, secret_store)
    token_client = DummyTokenClient()
    return Services(
        settings=settings,
        clock=clock,
        store=store,
        secrets_ns=secrets_ns,
        sessions_ns=sessions_ns,
        audit_ns=audit_ns,
        secret_store=secret_store,
        audit=audit,
        setup=SetupController(settings, secret_store, audit),
        registry=registry,
        token_client=token_client,
        broker=OAuthBroker(
            settings.oauth, registry, sessions_ns, secret_store, audit, token_client
        ),
        checkout=CheckoutController(
            sessions_ns, audit, delivery_base_url=settings.delivery_base_url
        ),
        inbound=InboundReceiver(sessions_ns, audit),
    )


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def services(tmp_path) -> Services:
    return build_services(tmp_path)


@pytest.fixture
def app_overrides(services):
    from storefront import dependencies
    from storefront.main import app

    app.dependency_overrides.update(
        {
            dependencies.get_setup_controller: lambda: services.setup,
            dependencies.get_oauth_broker: lambda: services.broker,
            dependencies.get_checkout_controller: lambda: services.checkout,
            dependencies.get_inbound_receiver: lambda: services.inbound,
            dependencies.get_audit_recorder: lambda: services.audit,
        }
    )
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_overrides):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app_overrides),
        base_url="http://testserver",
    ) as test_client:
        yield test_client
