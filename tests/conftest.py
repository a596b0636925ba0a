"""
Pytest configuration for pg-active-record.

Provides fixtures for:
- Fake query executors recording issued statements (unit tests)
- Metadata cache isolation between tests
- Settings/DSN overrides and database availability for integration tests
"""

from __future__ import annotations

import os
from typing import Any, Dict, List, Optional, Sequence, Union

import psycopg
import pytest

from active_record.config import Settings
from active_record.exceptions import OneResultExpected
from active_record.metadata import InMemoryStorage

TEST_SCHEMA: Dict[str, Dict[str, str]] = {
    "test_table": {
        "id": "uuid",
        "first_value": "character varying",
        "second_value": "character varying",
    },
    "second_test_table": {
        "pk": "integer",
        "title": "bytea",
    },
    "natural_table": {
        "code": "text",
        "label": "text",
    },
}


class FakeResultSet:
    def __init__(
        self,
        rows: Optional[List[Dict[str, Any]]] = None,
        affected_rows: int = 0,
        last_insert_id: Any = None,
    ) -> None:
        self._rows = rows or []
        self._affected_rows = affected_rows
        self._last_insert_id = last_insert_id

    async def fetch_one(self) -> Optional[Dict[str, Any]]:
        if len(self._rows) > 1:
            raise OneResultExpected("more than one row")
        return self._rows[0] if self._rows else None

    async def fetch_all(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    async def last_insert_id(self) -> Any:
        return self._last_insert_id

    def affected_rows(self) -> int:
        return self._affected_rows


class FakeQueryExecutor:
    """
    Records statements and replays queued results.

    Catalog queries are answered from ``schema`` and recorded separately in
    ``schema_queries`` so tests can reason about data statements only.
    """

    def __init__(self, schema: Dict[str, Dict[str, str]]) -> None:
        self.schema = schema
        self.statements: List[tuple[str, List[Any]]] = []
        self.schema_queries: List[str] = []
        self._results: List[Union[FakeResultSet, Exception]] = []

    def queue(self, *results: Union[FakeResultSet, Exception]) -> None:
        self._results.extend(results)

    async def execute(self, query: str, parameters: Sequence[Any] = ()) -> FakeResultSet:
        params = list(parameters)
        if '"information_schema"."columns"' in query:
            table = params[0]
            self.schema_queries.append(table)
            return FakeResultSet(
                rows=[
                    {"column_name": name, "data_type": data_type}
                    for name, data_type in self.schema.get(table, {}).items()
                ]
            )

        self.statements.append((query, params))
        if not self._results:
            return FakeResultSet()
        result = self._results.pop(0)
        if isinstance(result, Exception):
            raise result
        return result


class FakeReturningExecutor(FakeQueryExecutor):
    def returning_clause_supported(self) -> bool:
        return True


class FakeBinaryExecutor(FakeQueryExecutor):
    def unescape_binary(self, value: Any) -> Any:
        if isinstance(value, str) and value.startswith("\\x"):
            return bytes.fromhex(value[2:])
        return value


@pytest.fixture(autouse=True)
def reset_metadata_cache():
    """Each test starts with an empty shared metadata cache."""
    InMemoryStorage.instance().reset()
    yield
    InMemoryStorage.instance().reset()


@pytest.fixture
def executor() -> FakeQueryExecutor:
    return FakeQueryExecutor(TEST_SCHEMA)


@pytest.fixture
def returning_executor() -> FakeReturningExecutor:
    return FakeReturningExecutor(TEST_SCHEMA)


@pytest.fixture
def binary_executor() -> FakeBinaryExecutor:
    return FakeBinaryExecutor(TEST_SCHEMA)


@pytest.fixture
def result_set_factory():
    return FakeResultSet


@pytest.fixture(scope="session")
def test_settings() -> Settings:
    """
    Settings fixture with test-specific overrides.

    Can be overridden via environment variables in CI or local testing.
    """
    return Settings(
        db_host=os.getenv("DB_HOST", "localhost"),
        db_port=int(os.getenv("DB_PORT", "5432")),
        db_user=os.getenv("DB_USER", "postgres"),
        db_password=os.getenv("DB_PASSWORD", "postgres"),
        db_name=os.getenv("DB_NAME", "active_record"),
        db_pool_min_size=1,
        db_pool_max_size=2,
        db_connect_retries=1,
        log_level="DEBUG",
    )


@pytest.fixture(scope="session")
def test_dsn(test_settings: Settings) -> str:
    """
    Database connection string for tests.
    """
    return (
        f"postgresql://{test_settings.db_user}:{test_settings.db_password}"
        f"@{test_settings.db_host}:{test_settings.db_port}/{test_settings.db_name}"
    )


@pytest.fixture(scope="session")
def db_connection_available(test_dsn: str) -> bool:
    """
    Check if database is reachable.

    Used to conditionally skip integration tests when DB is not available.
    """
    try:
        with psycopg.connect(test_dsn, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute("SELECT 1;")
                cur.fetchone()
        return True
    except psycopg.Error:
        return False
