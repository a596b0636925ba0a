"""
Storage package for pg-active-record.

Holds the query executor contract, the PostgreSQL adapters implementing it,
and the helpers the Record core uses to run builder output through an executor.
"""

from active_record.storage.abstract import (
    BinaryDataDecoder,
    QueryExecutor,
    ResultSet,
    Row,
    SupportsReturningClause,
)
from active_record.storage.asyncpg_adapter import AsyncpgQueryExecutor
from active_record.storage.psycopg_adapter import PsycopgQueryExecutor

__all__ = [
    # Contracts
    "BinaryDataDecoder",
    "QueryExecutor",
    "ResultSet",
    "Row",
    "SupportsReturningClause",
    # Adapters
    "AsyncpgQueryExecutor",
    "PsycopgQueryExecutor",
]
