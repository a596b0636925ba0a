"""
Error taxonomy for pg-active-record.

Two families live here:

- Record errors, raised by the Active Record core itself. They signal caller
  mistakes (unknown column, missing primary key) or a lost race with a
  concurrent delete, and are never retried.
- Storage errors, raised by the query executor adapters. The core never raises
  them on its own; they pass through it unchanged.
"""

from __future__ import annotations


class ActiveRecordError(Exception):
    """Base class for errors raised by the Record core."""


class UnknownColumn(ActiveRecordError, ValueError):
    """A field name is not among the declared columns of the table."""

    def __init__(self, column: str, table: str) -> None:
        self.column = column
        self.table = table
        super().__init__(f'Column "{column}" does not exist in table "{table}"')


class PrimaryKeyNotSpecified(ActiveRecordError, ValueError):
    """The entity has no usable primary key value."""

    def __init__(self, expected_key: str) -> None:
        self.expected_key = expected_key
        super().__init__(
            "In the parameters of the entity must be specified element "
            f'with the index "{expected_key}" (primary key)'
        )


class UpdateRemovedEntry(ActiveRecordError, RuntimeError):
    """The row backing the entity no longer exists."""

    def __init__(self, message: str = "Failed to update entity: data has been deleted") -> None:
        super().__init__(message)


class StorageInteractingFailed(RuntimeError):
    """Basic type of storage interaction errors."""


class ConnectionFailed(StorageInteractingFailed):
    """Could not connect to the database."""


class UniqueConstraintViolationCheckFailed(StorageInteractingFailed):
    """Duplicate entry."""


class IncorrectParameterCast(StorageInteractingFailed):
    """A query parameter could not be coerced to the column type."""


class ResultSetIterationFailed(StorageInteractingFailed):
    """Error while reading rows from a result set."""


class OneResultExpected(ResultSetIterationFailed):
    """The result must contain at most one row."""


__all__ = [
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
]
