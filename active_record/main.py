from __future__ import annotations

import asyncio
import sys
import uuid
from typing import Any, Dict, Optional

import typer
from rich import box
from rich.console import Console
from rich.table import Table as RichTable

from active_record.config import get_settings
from active_record.infrastructure.db_factory import PoolManager, create_executor
from active_record.metadata import MetadataLoader
from active_record.table import define_table
from active_record.utils.logging import configure_logging

app = typer.Typer(help="pg-active-record CLI.")
console = Console()

DRIVER_OPTION = typer.Option(
    "psycopg",
    "--driver",
    "-d",
    help="Query executor backend (psycopg or asyncpg).",
)
DSN_OPTION = typer.Option(
    None,
    "--dsn",
    help="Optional DSN override for Postgres.",
)

_INTEGER_TYPES = frozenset({"smallint", "integer", "bigint"})
_FLOAT_TYPES = frozenset({"real", "double precision"})


def _render_mapping(title: str, key_header: str, value_header: str, mapping: Dict[str, Any]) -> None:
    table = RichTable(title=title, box=box.SIMPLE_HEAVY)
    table.add_column(key_header, style="cyan", no_wrap=True)
    table.add_column(value_header)
    for key, value in mapping.items():
        table.add_row(key, "NULL" if value is None else str(value))
    console.print(table)


async def _load_columns(table: str, driver: str, dsn: Optional[str]) -> Dict[str, str]:
    try:
        executor = await create_executor(driver, dsn)
        return await MetadataLoader(executor).columns(table)
    finally:
        await PoolManager().close_all()


def _coerce_key(id_value: str, data_type: Optional[str]) -> Any:
    """
    Convert the textual ID argument to the primary key's column type.

    asyncpg binds parameters by the type the server inferred for them and
    rejects a ``str`` for an integer placeholder.
    """
    try:
        if data_type in _INTEGER_TYPES:
            return int(id_value)
        if data_type in _FLOAT_TYPES:
            return float(id_value)
        if data_type == "uuid":
            return uuid.UUID(id_value)
    except ValueError as exc:
        raise typer.BadParameter(
            f"{id_value!r} is not a valid {data_type} value", param_hint="ID"
        ) from exc
    return id_value


async def _load_entry(
    table: str, id_value: str, primary_key: str, driver: str, dsn: Optional[str]
) -> Optional[Dict[str, Any]]:
    try:
        executor = await create_executor(driver, dsn)
        columns = await MetadataLoader(executor).columns(table)
        if not columns:
            return None
        key = _coerce_key(id_value, columns.get(primary_key))
        entry = await define_table(table, primary_key).find(executor, key)
        return None if entry is None else entry.fields
    finally:
        await PoolManager().close_all()


@app.command()
def info() -> None:
    """
    Show effective configuration values.
    """
    settings = get_settings()
    typer.echo(
        f"DB={settings.db_user}@{settings.db_host}:{settings.db_port}/{settings.db_name} | "
        f"pool=({settings.db_pool_min_size},{settings.db_pool_max_size}) "
        f"statement_timeout_ms={settings.db_statement_timeout_ms} env={settings.app_env}"
    )


@app.command()
def columns(
    table: str = typer.Argument(..., help="Table to introspect."),
    driver: str = DRIVER_OPTION,
    dsn: Optional[str] = DSN_OPTION,
) -> None:
    """
    Print the column -> declared type mapping of a table.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    mapping = asyncio.run(_load_columns(table, driver, dsn))
    if not mapping:
        typer.echo(f"Table '{table}' has no columns (does it exist?).", err=True)
        raise typer.Exit(code=1)
    _render_mapping(table, "column", "type", mapping)


@app.command()
def show(
    table: str = typer.Argument(..., help="Table to read from."),
    id_value: str = typer.Argument(..., metavar="ID", help="Primary key value."),
    primary_key: str = typer.Option("id", "--primary-key", "-k", help="Primary key column."),
    driver: str = DRIVER_OPTION,
    dsn: Optional[str] = DSN_OPTION,
) -> None:
    """
    Load one entry by primary key and print its fields.
    """
    settings = get_settings()
    configure_logging(level=settings.log_level, json_logs=settings.log_json)

    fields = asyncio.run(_load_entry(table, id_value, primary_key, driver, dsn))
    if fields is None:
        typer.echo(f"No entry in '{table}' with {primary_key}={id_value}.", err=True)
        raise typer.Exit(code=1)
    _render_mapping(f"{table} [{primary_key}={id_value}]", "column", "value", fields)


def main() -> None:
    try:
        app()
    except KeyboardInterrupt:
        typer.echo("Cancelled by user.", err=True)
        sys.exit(130)


if __name__ == "__main__":
    main()
