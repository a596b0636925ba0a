"""
Abstract query executor interfaces and result contracts for pg-active-record.

Concrete adapters (psycopg, asyncpg) implement QueryExecutor and return a
ResultSet. Optional behaviour is expressed as small capability protocols the
Record core probes with isinstance() instead of checking concrete adapter
types.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Protocol, Sequence, runtime_checkable

Row = Dict[str, Any]


@runtime_checkable
class ResultSet(Protocol):
    """
    Outcome of a single executed statement.

    Rows are column-name keyed mappings.
    """

    async def fetch_one(self) -> Optional[Row]:
        """
        Return the only row, or None for an empty result.

        Raises
        ------
        OneResultExpected
            If the result holds more than one row.
        """
        ...

    async def fetch_all(self) -> List[Row]:
        """Return all rows in result order (empty list when there are none)."""
        ...

    async def last_insert_id(self) -> Optional[Any]:
        """Identifier reported by the backend for the last INSERT, if any."""
        ...

    def affected_rows(self) -> int:
        """Number of rows touched by the statement."""
        ...


@runtime_checkable
class QueryExecutor(Protocol):
    """
    Runs parameterized SQL.

    Executors may also expose a DB-API style ``paramstyle`` attribute
    ("format" for ``%s`` placeholders, "numeric" for ``$1``). "format" is
    assumed when it is missing.
    """

    async def execute(self, query: str, parameters: Sequence[Any] = ()) -> ResultSet:
        ...


@runtime_checkable
class SupportsReturningClause(Protocol):
    """Executor capability: INSERT ... RETURNING <column> reports the inserted key."""

    def returning_clause_supported(self) -> bool:
        ...


@runtime_checkable
class BinaryDataDecoder(Protocol):
    """Executor capability: decode binary values read back from storage."""

    def unescape_binary(self, value: Any) -> Any:
        ...


__all__ = [
    "Row",
    "ResultSet",
    "QueryExecutor",
    "SupportsReturningClause",
    "BinaryDataDecoder",
]
