from __future__ import annotations

import pytest
from typer.testing import CliRunner

import active_record.main as cli


@pytest.fixture
def cli_executor(executor, monkeypatch):
    """Route CLI commands to the fake executor and record the requested driver."""
    drivers = []

    async def fake_create_executor(driver="psycopg", dsn=None):
        drivers.append(driver)
        return executor

    monkeypatch.setattr(cli, "create_executor", fake_create_executor)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)
    executor.drivers = drivers
    return executor


def test_columns_prints_table_schema(cli_executor) -> None:
    result = CliRunner().invoke(cli.app, ["columns", "second_test_table"])

    assert result.exit_code == 0
    assert "pk" in result.stdout
    assert "integer" in result.stdout
    assert "bytea" in result.stdout
    assert cli_executor.schema_queries == ["second_test_table"]


def test_columns_of_missing_table_exits_with_error(cli_executor) -> None:
    result = CliRunner().invoke(cli.app, ["columns", "missing_table"])

    assert result.exit_code == 1
    assert "has no columns" in result.output


def test_show_prints_entry_fields(cli_executor, result_set_factory) -> None:
    cli_executor.queue(result_set_factory(rows=[{"code": "x1", "label": "first label"}]))

    result = CliRunner().invoke(cli.app, ["show", "natural_table", "x1", "--primary-key", "code"])

    assert result.exit_code == 0
    assert "first label" in result.stdout
    assert cli_executor.statements == [('SELECT * FROM "natural_table" WHERE "code" = %s', ["x1"])]


def test_show_missing_entry_exits_with_error(cli_executor) -> None:
    result = CliRunner().invoke(cli.app, ["show", "natural_table", "nope", "-k", "code"])

    assert result.exit_code == 1
    assert "No entry in 'natural_table'" in result.output


def test_show_converts_integer_key_for_asyncpg(cli_executor, result_set_factory) -> None:
    cli_executor.paramstyle = "numeric"
    cli_executor.queue(result_set_factory(rows=[{"pk": 1, "title": b"root"}]))

    result = CliRunner().invoke(
        cli.app, ["show", "second_test_table", "1", "-k", "pk", "--driver", "asyncpg"]
    )

    assert result.exit_code == 0
    assert cli_executor.drivers == ["asyncpg"]
    assert cli_executor.statements == [('SELECT * FROM "second_test_table" WHERE "pk" = $1', [1])]


def test_show_rejects_key_not_matching_column_type(cli_executor) -> None:
    result = CliRunner().invoke(cli.app, ["show", "second_test_table", "abc", "-k", "pk"])

    assert result.exit_code == 2
    assert cli_executor.statements == []


def test_coerce_key_by_column_type() -> None:
    assert cli._coerce_key("42", "bigint") == 42
    assert cli._coerce_key("1.5", "double precision") == 1.5
    assert str(cli._coerce_key("7c7b5a4e-3d35-4b7e-9a7e-0f4f2c7d2b11", "uuid")) == (
        "7c7b5a4e-3d35-4b7e-9a7e-0f4f2c7d2b11"
    )
    assert cli._coerce_key("x1", "text") == "x1"
    assert cli._coerce_key("x1", None) == "x1"
