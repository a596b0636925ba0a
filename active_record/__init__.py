"""
pg-active-record - a minimal async Active Record layer for PostgreSQL.

Each Record subclass wraps one table. Entities load their column schema through
a cached catalog lookup, track field mutations, and flush them as minimal SQL:
full-row INSERTs for new entities, change-set-only UPDATEs for existing ones.

The package provides:

- the Record base, table descriptors and typed column accessors
- the schema metadata cache with a pluggable backend
- a psycopg.sql based criteria/query builder
- psycopg and asyncpg query executors plus pool factories
"""

from __future__ import annotations

__version__ = "0.1.0"
__license__ = "MIT"

# Public API exports
from active_record.config import Settings, get_settings
from active_record.exceptions import (
    ActiveRecordError,
    ConnectionFailed,
    IncorrectParameterCast,
    OneResultExpected,
    PrimaryKeyNotSpecified,
    ResultSetIterationFailed,
    StorageInteractingFailed,
    UniqueConstraintViolationCheckFailed,
    UnknownColumn,
    UpdateRemovedEntry,
)
from active_record.fields import Column, FieldSet, column
from active_record.metadata import CacheAdapter, InMemoryCacheAdapter, InMemoryStorage, MetadataLoader
from active_record.query import (
    CompiledQuery,
    Criteria,
    equals_criteria,
    greater_or_equals_criteria,
    greater_than_criteria,
    in_criteria,
    is_not_null_criteria,
    is_null_criteria,
    less_or_equals_criteria,
    less_than_criteria,
    like_criteria,
    not_equals_criteria,
)
from active_record.storage import (
    AsyncpgQueryExecutor,
    BinaryDataDecoder,
    PsycopgQueryExecutor,
    QueryExecutor,
    ResultSet,
    SupportsReturningClause,
)
from active_record.table import Record, Table, TableDescriptor, define_table
from active_record.utils.logging import configure_logging, get_logger

__all__ = [
    # Version info
    "__version__",
    "__license__",
    # Configuration
    "Settings",
    "get_settings",
    # Records
    "Record",
    "Table",
    "TableDescriptor",
    "define_table",
    "Column",
    "FieldSet",
    "column",
    # Metadata
    "CacheAdapter",
    "InMemoryCacheAdapter",
    "InMemoryStorage",
    "MetadataLoader",
    # Query building
    "CompiledQuery",
    "Criteria",
    "equals_criteria",
    "not_equals_criteria",
    "greater_than_criteria",
    "greater_or_equals_criteria",
    "less_than_criteria",
    "less_or_equals_criteria",
    "like_criteria",
    "in_criteria",
    "is_null_criteria",
    "is_not_null_criteria",
    # Storage
    "QueryExecutor",
    "ResultSet",
    "SupportsReturningClause",
    "BinaryDataDecoder",
    "PsycopgQueryExecutor",
    "AsyncpgQueryExecutor",
    # Errors
    "ActiveRecordError",
    "UnknownColumn",
    "PrimaryKeyNotSpecified",
    "UpdateRemovedEntry",
    "StorageInteractingFailed",
    "ConnectionFailed",
    "UniqueConstraintViolationCheckFailed",
    "IncorrectParameterCast",
    "ResultSetIterationFailed",
    "OneResultExpected",
    # Logging
    "configure_logging",
    "get_logger",
]
