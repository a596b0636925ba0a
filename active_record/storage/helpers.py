"""
Shared storage helpers used by the Record core and the metadata loader.

They glue the query builder to a QueryExecutor: build the statement in the
executor's placeholder style, run it, and materialize rows.
"""

from __future__ import annotations

from typing import Any, List, Mapping, Optional, Sequence

from active_record.query import Criteria, ParamStyle, delete_query, select_query
from active_record.storage.abstract import BinaryDataDecoder, QueryExecutor, ResultSet, Row


def paramstyle(query_executor: QueryExecutor) -> ParamStyle:
    """Placeholder style declared by the executor ("format" when absent)."""
    return getattr(query_executor, "paramstyle", "format")


async def find(
    query_executor: QueryExecutor,
    table: str,
    criteria: Sequence[Criteria] = (),
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    order_by: Optional[Mapping[str, str]] = None,
) -> ResultSet:
    """Run a filtered SELECT * against ``table``."""
    query = select_query(
        table,
        criteria,
        order_by=order_by,
        limit=limit,
        offset=offset,
        paramstyle=paramstyle(query_executor),
    )
    return await query_executor.execute(query.sql, query.params)


async def remove(
    query_executor: QueryExecutor,
    table: str,
    criteria: Sequence[Criteria] = (),
) -> int:
    """Run a filtered DELETE against ``table`` and return the affected row count."""
    query = delete_query(table, criteria, paramstyle=paramstyle(query_executor))
    result_set = await query_executor.execute(query.sql, query.params)
    return result_set.affected_rows()


async def fetch_one(result_set: ResultSet) -> Optional[Row]:
    return await result_set.fetch_one()


async def fetch_all(result_set: ResultSet) -> List[Row]:
    return await result_set.fetch_all()


def unescape_binary(query_executor: QueryExecutor, row: Mapping[str, Any]) -> dict[str, Any]:
    """
    Decode binary values of a row read back from storage.

    Only applies when the executor implements BinaryDataDecoder, and only to
    non-empty str/bytes/memoryview values.
    """
    decoded = dict(row)
    if not isinstance(query_executor, BinaryDataDecoder):
        return decoded

    for key, value in decoded.items():
        if value and isinstance(value, (str, bytes, memoryview)):
            decoded[key] = query_executor.unescape_binary(value)

    return decoded


__all__ = [
    "paramstyle",
    "find",
    "remove",
    "fetch_one",
    "fetch_all",
    "unescape_binary",
]
