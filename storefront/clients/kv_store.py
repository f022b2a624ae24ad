"""Namespaced key-value storage with TTL semantics.

Every backend stores records as ``(pk, sk)`` pairs where ``pk`` is the namespace
binding and ``sk`` the logical key. ``KeyValueNamespace`` is the view handed to
services: string values in, string values out, expired records never returned.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, Optional, Protocol

from storefront.core.errors import StoreUnavailableError

logger = logging.getLogger(__name__)

Clock = Callable[[], float]


class KeyValueStore(Protocol):
    """Operations every physical backend provides."""

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        ...

    def put_item(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        expires_at: Optional[int] = None,
    ) -> None:
        ...

    def put_item_if_absent(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        now: int,
        expires_at: Optional[int] = None,
    ) -> bool:
        ...

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        ...

    def list_items_with_prefix(
        self,
        *,
        partition_key: str,
        sort_key_prefix: str,
        now: int,
        limit: Optional[int] = None,
        descending: bool = False,
    ) -> list[Dict[str, Any]]:
        ...


class SQLiteKeyValueStore:
    """Local backend using a single table keyed by (pk, sk)."""

    def __init__(self, db_path: str) -> None:
        self._db_path = Path(db_path)
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        conn: sqlite3.Connection | None = None
        try:
            conn = sqlite3.connect(self._db_path, check_same_thread=False)
            conn.row_factory = sqlite3.Row
            with conn:
                yield conn
        except sqlite3.Error as exc:
            logger.error("SQLite key-value operation failed: %s", exc)
            raise StoreUnavailableError("key-value store unavailable") from exc
        finally:
            if conn is not None:
                conn.close()

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS kv_records (
                    pk TEXT NOT NULL,
                    sk TEXT NOT NULL,
                    value TEXT NOT NULL,
                    expires_at INTEGER,
                    PRIMARY KEY (pk, sk)
                )
                """
            )

    def get_item(
        self, *, partition_key: str, sort_key: str
    ) -> Optional[Dict[str, Any]]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT sk, value, expires_at FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            ).fetchone()
        if not row:
            return None
        return dict(row)

    def put_item(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        expires_at: Optional[int] = None,
    ) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO kv_records (pk, sk, value, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at
                """,
                (partition_key, sort_key, value, expires_at),
            )

    def put_item_if_absent(
        self,
        *,
        partition_key: str,
        sort_key: str,
        value: str,
        now: int,
        expires_at: Optional[int] = None,
    ) -> bool:
        # An expired row counts as absent and may be replaced.
        with self._connect() as conn:
            cursor = conn.execute(
                """
                INSERT INTO kv_records (pk, sk, value, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(pk, sk) DO UPDATE SET
                    value = excluded.value,
                    expires_at = excluded.expires_at
                WHERE kv_records.expires_at IS NOT NULL
                    AND kv_records.expires_at <= ?
                """,
                (partition_key, sort_key, value, expires_at, now),
            )
            return cursor.rowcount == 1

    def delete_item(self, *, partition_key: str, sort_key: str) -> None:
        with self._connect() as conn:
            conn.execute(
                "DELETE FROM kv_records WHERE pk = ? AND sk = ?",
                (partition_key, sort_key),
            )

    def list_items_with_prefix(
        self,
        *,
        partition_key: str,
        sort_key_prefix: str,
        now: int,
        limit: Optional[int] = None,
        descending: bool = False,
    ) -> list[Dict[str, Any]]:
        order = "DESC" if descending else "ASC"
        query = (
            "SELECT sk, value, expires_at FROM kv_records "
            "WHERE pk = ? AND substr(sk, 1, length(?)) = ? "
            "AND (expires_at IS NULL OR expires_at > ?) "
            f"ORDER BY sk {order}"
        )
        params: list[Any] = [partition_key, sort_key_prefix, sort_key_prefix, now]
        if limit is not None:
            query += " LIMIT ?"
            params.append(limit)
        with self._connect() as conn:
            rows = conn.execute(query, params).fetchall()
        return [dict(row) for row in rows]


class KeyValueNamespace:
    """A single logical namespace (``Secrets``, ``Sessions`` or ``Audit``)."""

    def __init__(self, store: KeyValueStore, name: str, *, clock: Clock = time.time) -> None:
        self._store = store
        self._name = name
        self._clock = clock

    def _now(self) -> int:
        return int(self._clock())

    def _expiry(self, ttl_seconds: Optional[int]) -> Optional[int]:
        if ttl_seconds is None:
            return None
        return self._now() + int(ttl_seconds)

    def get(self, key: str) -> Optional[str]:
        """Return the stored value, or ``None`` when absent or expired."""
        item = self._store.get_item(partition_key=self._name, sort_key=key)
        if not item:
            return None
        expires_at = item.get("expires_at")
        if expires_at is not None and int(expires_at) <= self._now():
            return None
        return item["value"]

    def put(self, key: str, value: str, ttl_seconds: Optional[int] = None) -> None:
        self._store.put_item(
            partition_key=self._name,
            sort_key=key,
            value=value,
            expires_at=self._expiry(ttl_seconds),
        )

    def put_if_absent(
        self, key: str, value: str, ttl_seconds: Optional[int] = None
    ) -> bool:
        """Write only when no live record exists; return whether the write happened."""
        return self._store.put_item_if_absent(
            partition_key=self._name,
            sort_key=key,
            value=value,
            now=self._now(),
            expires_at=self._expiry(ttl_seconds),
        )

    def delete(self, key: str) -> None:
        self._store.delete_item(partition_key=self._name, sort_key=key)

    def list(
        self,
        prefix: str,
        *,
        limit: Optional[int] = None,
        newest_first: bool = False,
    ) -> list[tuple[str, str]]:
        """Return live ``(key, value)`` pairs whose key starts with ``prefix``, in key order."""
        items = self._store.list_items_with_prefix(
            partition_key=self._name,
            sort_key_prefix=prefix,
            now=self._now(),
            limit=limit,
            descending=newest_first,
        )
        return [(item["sk"], item["value"]) for item in items]


__all__ = [
    "Clock",
    "KeyValueNamespace",
    "KeyValueStore",
    "SQLiteKeyValueStore",
]
