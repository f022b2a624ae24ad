"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Optional

from storefront.clients import (
    DynamoDBKeyValueStore,
    KeyValueNamespace,
    KeyValueStore,
    OAuthTokenClient,
    SQLiteKeyValueStore,
)
from storefront.services import (
    AuditRecorder,
    CheckoutController,
    InboundReceiver,
    OAuthBroker,
    OAuthProviderRegistry,
    SecretCipher,
    SecretStore,
    SetupController,
)

from .config import get_app_settings, get_clock


@lru_cache()
def get_kv_store() -> KeyValueStore:
    """Provide the configured key-value backend."""
    storage = get_app_settings().storage
    if storage.backend == "dynamodb":
        return DynamoDBKeyValueStore(storage)
    return SQLiteKeyValueStore(storage.sqlite_path)


def _namespace(name: str) -> KeyValueNamespace:
    return KeyValueNamespace(get_kv_store(), name, clock=get_clock())


@lru_cache()
def get_secrets_namespace() -> KeyValueNamespace:
    return _namespace(get_app_settings().storage.secrets_namespace)


@lru_cache()
def get_sessions_namespace() -> KeyValueNamespace:
    return _namespace(get_app_settings().storage.sessions_namespace)


@lru_cache()
def get_audit_namespace() -> KeyValueNamespace:
    return _namespace(get_app_settings().storage.audit_namespace)


@lru_cache()
def get_secret_cipher() -> Optional[SecretCipher]:
    """Provide the at-rest cipher when an encryption key is configured."""
    key = get_app_settings().security.secrets_encryption_key
    if not key:
        return None
    return SecretCipher(secret=key)


@lru_cache()
def get_secret_store() -> SecretStore:
    return SecretStore(get_secrets_namespace(), get_secret_cipher())


@lru_cache()
def get_audit_recorder() -> AuditRecorder:
    storage = get_app_settings().storage
    return AuditRecorder(
        get_audit_namespace(),
        admin_handle=get_app_settings().admin_handle,
        retention_days=storage.audit_retention_days,
        list_limit=storage.audit_list_limit,
    )


@lru_cache()
def get_oauth_token_client() -> OAuthTokenClient:
    return OAuthTokenClient(timeout=get_app_settings().oauth.token_timeout_seconds)


def get_setup_controller() -> SetupController:
    """Build the one-time secret ingestion controller."""
    return SetupController(get_app_settings(), get_secret_store(), get_audit_recorder())


def get_oauth_broker() -> OAuthBroker:
    """Build the OAuth handshake broker."""
    oauth_settings = get_app_settings().oauth
    return OAuthBroker(
        oauth_settings,
        OAuthProviderRegistry(oauth_settings, get_secret_store()),
        get_sessions_namespace(),
        get_secret_store(),
        get_audit_recorder(),
        get_oauth_token_client(),
    )


def get_checkout_controller() -> CheckoutController:
    """Build the checkout/delivery controller."""
    return CheckoutController(
        get_sessions_namespace(),
        get_audit_recorder(),
        delivery_base_url=get_app_settings().delivery_base_url,
    )


def get_inbound_receiver() -> InboundReceiver:
    """Build the inbound webhook receiver."""
    return InboundReceiver(get_sessions_namespace(), get_audit_recorder())


__all__ = [
    "get_audit_namespace",
    "get_audit_recorder",
    "get_checkout_controller",
    "get_inbound_receiver",
    "get_kv_store",
    "get_oauth_broker",
    "get_oauth_token_client",
    "get_secret_cipher",
    "get_secret_store",
    "get_secrets_namespace",
    "get_sessions_namespace",
    "get_setup_controller",
]
