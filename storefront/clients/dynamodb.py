"""
DynamoDB backend for the namespaced key-value store.

Items are ``{pk, sk, value, expires_at?}``; enable DynamoDB TTL on the
``expires_at`` attribute so expired records are eventually deleted. Reads still
filter on ``expires_at`` because TTL deletion lags behind expiry.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from storefront.core.config import StorageSettings
from storefront.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

_CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


def _normalize(item: Dict[str, Any]) -> Dict[str, Any]:
    expires_at = item.get("expires_at")
    return {
        "sk": item["sk"],
        "value": item["value"],
        # boto3 returns numbers as Decimal.
        "expires_at": int(expires_at) if expires_at is not None else None,
    }


class DynamoDBKeyValueStore:
    """Key-value operations against a single (pk, sk) table."""

    def __init__(self, settings: StorageSettings, *, table: Any = None) -> None:
        self._settings = settings
        if table is None:
            resource = boto3.resource("dynamodb", region_name=settings.region_name)
            table = resource.Table(settings.dynamodb_table_name)
        self._table = table

    def _unavailable(self, operation: str, exc: Exception) -> StoreUnavailableError:
        logger.error("DynamoDB %s failed: %s", operation, exc)
        return StoreUnavailableError("key-value store unavailable")

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        try:
            response = self._table.get_item(
                Key={"pk": partition_key, "sk": sort_key}, ConsistentRead=True
            )
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("GetItem", exc) from exc
        item = response.get("Item")
        return _normalize(item) if item else None

    def put_item(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        expires_at: Optional[int] = None,
    ) -> None:
        item: Dict[str, Any] = {"pk": partition_key, "sk": sort_key, "value": value}
        if expires_at is not None:
            item["expires_at"] = expires_at
        try:
            self._table.put_item(Item=item)
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("PutItem", exc) from exc

    def put_item_if_absent(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        now: int,
        expires_at: Optional[int] = None,
    ) -> bool:
        item: Dict[str, Any] = {"pk": partition_key, "sk": sort_key, "value": value}
        if expires_at is not None:
            item["expires_at"] = expires_at
        try:
            self._table.put_item(
                Item=item,
                ConditionExpression="attribute_not_exists(pk) OR expires_at <= :now",
                ExpressionAttributeValues={":now": now},
            )
        except ClientError as exc:
            if exc.response.get("Error", {}).get("Code") == _CONDITIONAL_CHECK_FAILED:
                return False
            raise self._unavailable("PutItem", exc) from exc
        except BotoCoreError as exc:
            raise self._unavailable("PutItem", exc) from exc
        return True

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        try:
            self._table.delete_item(Key={"pk": partition_key, "sk": sort_key})
        except (BotoCoreError, ClientError) as exc:
            raise self._unavailable("DeleteItem", exc) from exc

    def list_items_with_prefix(
        self,
        *,
        partition_key: str,
        sort_key_prefix: str,
        now: int,
        limit: Optional[int] = None,
        descending: bool = False,
    ) -> list[Dict[str, Any]]:
        query_kwargs: Dict[str, Any] = {
            "KeyConditionExpression": "pk = :pk AND begins_with(sk, :prefix)",
            "ExpressionAttributeValues": {":pk": partition_key, ":prefix": sort_key_prefix},
            "ScanIndexForward": not descending,
            "ConsistentRead": True,
        }
        results: list[Dict[str, Any]] = []
        while True:
            try:
                response = self._table.query(**query_kwargs)
            except (BotoCoreError, ClientError) as exc:
                raise self._unavailable("Query", exc) from exc
            for raw in response.get("Items", []):
                item = _normalize(raw)
                if item["expires_at"] is not None and item["expires_at"] <= now:
                    continue
                results.append(item)
                if limit is not None and len(results) >= limit:
                    return results
            last_key = response.get("LastEvaluatedKey")
            if not last_key:
                return results
            query_kwargs["ExclusiveStartKey"] = last_key


__all__ = ["DynamoDBKeyValueStore"]
