"""
psycopg 3 query executor.

Runs every statement on a connection borrowed from a psycopg_pool
AsyncConnectionPool; the pool context commits on success and rolls back on
error. Rows come back as dicts (``dict_row``) and are materialized eagerly so
the connection returns to the pool before the caller reads them.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import psycopg
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from active_record.exceptions import (
    ConnectionFailed,
    IncorrectParameterCast,
    OneResultExpected,
    StorageInteractingFailed,
    UniqueConstraintViolationCheckFailed,
)
from active_record.storage.abstract import Row
from active_record.utils.logging import get_logger

log = get_logger(__name__)


class PsycopgResultSet:
    """Materialized result of one psycopg statement."""

    def __init__(self, rows: List[Row], rowcount: int) -> None:
        self._rows = rows
        self._rowcount = rowcount

    async def fetch_one(self) -> Optional[Row]:
        if len(self._rows) > 1:
            raise OneResultExpected(
                f"A single record was requested, but the result of the query execution "
                f"contains several ({len(self._rows)})"
            )
        return self._rows[0] if self._rows else None

    async def fetch_all(self) -> List[Row]:
        return list(self._rows)

    async def last_insert_id(self) -> Optional[Any]:
        """First value of the first row; populated by INSERT ... RETURNING."""
        if not self._rows:
            return None
        return next(iter(self._rows[0].values()), None)

    def affected_rows(self) -> int:
        return max(self._rowcount, 0)


class PsycopgQueryExecutor:
    """
    QueryExecutor over a psycopg AsyncConnectionPool.

    Implements SupportsReturningClause and BinaryDataDecoder.
    """

    paramstyle = "format"

    def __init__(self, pool: AsyncConnectionPool) -> None:
        self._pool = pool

    async def execute(self, query: str, parameters: Sequence[Any] = ()) -> PsycopgResultSet:
        log.debug("Executing query", extra={"sql": query, "params_count": len(parameters)})
        try:
            async with self._pool.connection() as conn:
                async with conn.cursor(row_factory=dict_row) as cur:
                    # None keeps literal '%' in parameterless statements intact.
                    await cur.execute(query, list(parameters) if parameters else None)
                    rows = await cur.fetchall() if cur.description is not None else []
                    return PsycopgResultSet(rows, cur.rowcount)
        except psycopg.errors.UniqueViolation as exc:
            raise UniqueConstraintViolationCheckFailed(str(exc)) from exc
        except (psycopg.OperationalError, psycopg.InterfaceError) as exc:
            raise ConnectionFailed(str(exc)) from exc
        except psycopg.DataError as exc:
            raise IncorrectParameterCast(str(exc)) from exc
        except psycopg.Error as exc:
            raise StorageInteractingFailed(str(exc)) from exc

    def returning_clause_supported(self) -> bool:
        return True

    def unescape_binary(self, value: Any) -> Any:
        """
        Turn bytea buffers into ``bytes``.

        psycopg loads bytea columns as ``bytes`` already, so strings are text
        column values and pass through untouched even when they look hex-escaped.
        """
        if isinstance(value, memoryview):
            return value.tobytes()
        return value


__all__ = ["PsycopgQueryExecutor", "PsycopgResultSet"]
