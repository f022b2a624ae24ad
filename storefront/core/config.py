"""
Application configuration models and helpers.

Every controller receives the settings object through its constructor; nothing
below the dependency factories reads the process environment directly.
"""

from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file into the environment."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        os.environ[key] = value.strip().strip('"').strip("'")


_load_env_file()

_BASE_CONFIG = SettingsConfigDict(populate_by_name=True, extra="ignore")


class StorageSettings(BaseSettings):
    """Key-value backend selection and namespace bindings."""

    model_config = _BASE_CONFIG

    backend: Literal["sqlite", "dynamodb"] = Field("sqlite", validation_alias="KV_BACKEND")
    sqlite_path: str = Field("data/storefront.db", validation_alias="KV_SQLITE_PATH")
    dynamodb_table_name: Optional[str] = Field(None, validation_alias="DYNAMODB_TABLE_NAME")
    region_name: str = Field("us-east-1", validation_alias="AWS_REGION")
    secrets_namespace: str = Field("secrets", validation_alias="SECRETS_KV")
    sessions_namespace: str = Field("sessions", validation_alias="SESSIONS_KV")
    audit_namespace: str = Field("audit", validation_alias="AUDIT_KV")
    audit_retention_days: int = Field(365, ge=1, validation_alias="AUDIT_RETENTION_DAYS")
    audit_list_limit: int = Field(200, ge=1, validation_alias="AUDIT_LIST_LIMIT")

    @model_validator(mode="after")
    def _require_table_for_dynamodb(self) -> "StorageSettings":
        if self.backend == "dynamodb" and not self.dynamodb_table_name:
            raise ValueError("DYNAMODB_TABLE_NAME is required when KV_BACKEND=dynamodb")
        return self


class OAuthProviderSettings(BaseModel):
    """Static configuration for a single OAuth provider."""

    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    authorize_url: Optional[str] = None
    token_url: Optional[str] = None
    scope: Optional[str] = None


class OAuthSettings(BaseSettings):
    """OAuth handshake configuration shared by every provider."""

    model_config = _BASE_CONFIG

    redirect_uri: Optional[str] = Field(None, validation_alias="OAUTH_REDIRECT_URI")
    state_ttl_seconds: int = Field(600, ge=60, validation_alias="OAUTH_STATE_TTL")
    token_timeout_seconds: float = Field(10.0, gt=0, validation_alias="OAUTH_TOKEN_TIMEOUT")
    expose_upstream_errors: bool = Field(True, validation_alias="OAUTH_EXPOSE_UPSTREAM_ERRORS")
    providers: dict[str, OAuthProviderSettings] = Field(
        default_factory=dict,
        validation_alias="OAUTH_PROVIDERS",
        description="JSON object keyed by provider name.",
    )

    @field_validator("providers", mode="after")
    @classmethod
    def _normalize_provider_names(
        cls, value: dict[str, OAuthProviderSettings]
    ) -> dict[str, OAuthProviderSettings]:
        return {name.strip().lower(): config for name, config in value.items()}


class SecuritySettings(BaseSettings):
    """Security-related configuration."""

    model_config = _BASE_CONFIG

    secrets_encryption_key: Optional[str] = Field(
        None,
        validation_alias="SECRETS_ENCRYPTION_KEY",
        description="When set, secret values are Fernet-encrypted at rest.",
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        populate_by_name=True,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )

    environment: str = Field("development", validation_alias="APP_ENV")
    log_level: str = Field("INFO", validation_alias="APP_LOG_LEVEL")
    setup_token: Optional[str] = Field(
        None,
        validation_alias="SETUP_TOKEN",
        description="Bearer value authorizing the one-time secret ingestion call.",
    )
    admin_handle: str = Field("admin", min_length=1, validation_alias="ADMIN_HANDLE")
    delivery_base_url: str = Field(
        "https://proton.me/s/", validation_alias="DELIVERY_BASE_URL"
    )
    storage: StorageSettings = Field(default_factory=StorageSettings)
    oauth: OAuthSettings = Field(default_factory=OAuthSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "OAuthProviderSettings",
    "OAuthSettings",
    "SecuritySettings",
    "StorageSettings",
    "get_settings",
]
