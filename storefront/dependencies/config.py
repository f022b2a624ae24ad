"""
FastAPI dependency utilities for process-wide configuration and time.
"""

import time
from functools import lru_cache

from storefront.clients.kv_store import Clock
from storefront.core.config import AppSettings, get_settings


@lru_cache()
def _settings_singleton() -> AppSettings:
    """Ensure configuration is created once per process."""
    return get_settings()


def get_app_settings() -> AppSettings:
    """FastAPI dependency returning application settings."""
    return _settings_singleton()


def get_clock() -> Clock:
    """Wall clock used for record expiry; tests substitute a controllable one."""
    return time.time


__all__ = ["get_app_settings", "get_clock"]
