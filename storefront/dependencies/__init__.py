"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_audit_namespace,
    get_audit_recorder,
    get_checkout_controller,
    get_inbound_receiver,
    get_kv_store,
    get_oauth_broker,
    get_oauth_token_client,
    get_secret_cipher,
    get_secret_store,
    get_secrets_namespace,
    get_sessions_namespace,
    get_setup_controller,
)
from .config import get_app_settings, get_clock

__all__ = [
    "get_app_settings",
    "get_audit_namespace",
    "get_audit_recorder",
    "get_checkout_controller",
    "get_clock",
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
