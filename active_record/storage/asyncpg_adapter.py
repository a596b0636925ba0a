"""
asyncpg query executor.

asyncpg speaks the binary protocol natively and uses ``$n`` placeholders, so
this executor declares ``paramstyle = "numeric"``. Each statement is prepared
on a pooled connection; the command status tag ("UPDATE 3") provides the
affected row count.
"""

from __future__ import annotations

from typing import Any, List, Optional, Sequence

import asyncpg

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


def _affected_rows(status: Optional[str]) -> int:
    """Extract the row count from a command tag such as "INSERT 0 1" or "DELETE 2"."""
    if not status:
        return 0
    tail = status.rsplit(" ", 1)[-1]
    return int(tail) if tail.isdigit() else 0


class AsyncpgResultSet:
    """Materialized result of one asyncpg statement."""

    def __init__(self, rows: List[Row], status: Optional[str]) -> None:
        self._rows = rows
        self._status = status

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
        return _affected_rows(self._status)


class AsyncpgQueryExecutor:
    """
    QueryExecutor over an asyncpg Pool.

    Implements SupportsReturningClause. bytea values already arrive as bytes,
    so no binary decoding capability is offered.
    """

    paramstyle = "numeric"

    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    async def execute(self, query: str, parameters: Sequence[Any] = ()) -> AsyncpgResultSet:
        log.debug("Executing query", extra={"sql": query, "params_count": len(parameters)})
        try:
            async with self._pool.acquire() as conn:
                statement = await conn.prepare(query)
                records = await statement.fetch(*parameters)
                return AsyncpgResultSet(
                    [dict(record) for record in records],
                    statement.get_statusmsg(),
                )
        except asyncpg.exceptions.UniqueViolationError as exc:
            raise UniqueConstraintViolationCheckFailed(str(exc)) from exc
        except (
            asyncpg.exceptions.PostgresConnectionError,
            asyncpg.exceptions.ConnectionDoesNotExistError,
            OSError,
        ) as exc:
            raise ConnectionFailed(str(exc)) from exc
        except asyncpg.exceptions.DataError as exc:
            raise IncorrectParameterCast(str(exc)) from exc
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise StorageInteractingFailed(str(exc)) from exc

    def returning_clause_supported(self) -> bool:
        return True


__all__ = ["AsyncpgQueryExecutor", "AsyncpgResultSet"]
