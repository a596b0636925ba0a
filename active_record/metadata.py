"""
Schema metadata cache.

Resolves a table name to its ``column name -> declared type`` mapping by
querying ``information_schema.columns``, consulting a pluggable cache backend
first. The default backend is a process-wide in-memory store without expiry.

Concurrent misses for the same table may both query the catalog; the last
cache write wins. Schema metadata is derived data, so that race is harmless.
"""

from __future__ import annotations

import hashlib
import threading
from typing import Any, Dict, Optional, Protocol, runtime_checkable

from active_record.query import equals_criteria, select_query
from active_record.storage.abstract import QueryExecutor
from active_record.storage.helpers import fetch_all, paramstyle
from active_record.utils.logging import get_logger

log = get_logger(__name__)

_CACHE_KEY_SUFFIX = "_metadata_columns"


@runtime_checkable
class CacheAdapter(Protocol):
    """Cache backend contract used by MetadataLoader."""

    async def get(self, key: str) -> Optional[Any]:
        ...

    async def save(self, key: str, value: Any) -> None:
        ...


class InMemoryStorage:
    """
    Process-wide key/value storage shared by every InMemoryCacheAdapter.
    """

    _instance: Optional["InMemoryStorage"] = None
    _lock = threading.Lock()

    def __init__(self) -> None:
        self._data: Dict[str, Any] = {}

    @classmethod
    def instance(cls) -> "InMemoryStorage":
        """Create or return the shared storage."""
        with cls._lock:
            if cls._instance is None:
                cls._instance = cls()
            return cls._instance

    def get(self, key: str) -> Optional[Any]:
        return self._data.get(key)

    def save(self, key: str, value: Any) -> None:
        self._data[key] = value

    def has(self, key: str) -> bool:
        return key in self._data

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def reset(self) -> None:
        self._data.clear()


class InMemoryCacheAdapter:
    """Default CacheAdapter; entries never expire."""

    def __init__(self, storage: Optional[InMemoryStorage] = None) -> None:
        self._storage = storage or InMemoryStorage.instance()

    async def get(self, key: str) -> Optional[Any]:
        return self._storage.get(key)

    async def save(self, key: str, value: Any) -> None:
        self._storage.save(key, value)


def cache_key(table: str) -> str:
    """Stable cache key for the column metadata of ``table``."""
    return hashlib.sha1(f"{table}{_CACHE_KEY_SUFFIX}".encode("utf-8")).hexdigest()


class MetadataLoader:
    """
    Loads and caches column metadata for tables.

    Parameters
    ----------
    query_executor : QueryExecutor
        Executor used for the catalog query on cache misses.
    cache_adapter : CacheAdapter | None
        Cache backend; defaults to the shared in-memory cache.
    """

    def __init__(
        self, query_executor: QueryExecutor, cache_adapter: Optional[CacheAdapter] = None
    ) -> None:
        self._query_executor = query_executor
        if cache_adapter is None:
            cache_adapter = InMemoryCacheAdapter()
        self._cache_adapter = cache_adapter

    async def columns(self, table: str) -> Dict[str, str]:
        """
        Return the columns of ``table``.

        Example result: ``{"id": "uuid", "title": "character varying"}``.
        An unknown table yields an empty mapping, which is not cached.
        """
        if not table:
            raise ValueError("Table name must not be empty")

        key = cache_key(table)
        columns = await self._cache_adapter.get(key)
        if columns is not None:
            log.debug("Column metadata cache hit", extra={"table": table})
            return dict(columns)

        log.debug("Column metadata cache miss", extra={"table": table})
        columns = await self._load_columns(table)

        if columns:
            await self._cache_adapter.save(key, columns)
        else:
            log.warning("No columns found for table", extra={"table": table})

        return dict(columns)

    async def _load_columns(self, table: str) -> Dict[str, str]:
        query = select_query(
            "information_schema.columns",
            [equals_criteria("table_name", table)],
            columns=["column_name", "data_type"],
            paramstyle=paramstyle(self._query_executor),
        )
        result_set = await self._query_executor.execute(query.sql, query.params)
        rows = await fetch_all(result_set)

        return {row["column_name"]: row["data_type"] for row in rows}


__all__ = [
    "CacheAdapter",
    "InMemoryStorage",
    "InMemoryCacheAdapter",
    "MetadataLoader",
    "cache_key",
]
