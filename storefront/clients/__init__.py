"""Expose constructed client wrappers."""

from .dynamodb import DynamoDBKeyValueStore
from .kv_store import KeyValueNamespace, KeyValueStore, SQLiteKeyValueStore
from .oauth import OAuthProviderConfig, OAuthTokenClient, OAuthTokenExchangeError

__all__ = [
    "DynamoDBKeyValueStore",
    "KeyValueNamespace",
    "KeyValueStore",
    "OAuthProviderConfig",
    "OAuthTokenClient",
    "OAuthTokenExchangeError",
    "SQLiteKeyValueStore",
]
