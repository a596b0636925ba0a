"""
Criteria and query builder for pg-active-record.

Statements are composed with ``psycopg.sql`` so identifiers are always quoted
and values always travel as bound parameters. Every builder returns a
CompiledQuery holding the SQL text and its positional parameters, rendered for
the placeholder style of the executor that will run it:

- "format":  ``%s`` placeholders (psycopg)
- "numeric": ``$1, $2, ...`` placeholders (asyncpg)

Usage:
    from active_record.query import equals_criteria, select_query

    query = select_query("users", [equals_criteria("email", "a@b.c")], limit=1)
    result = await executor.execute(query.sql, query.params)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, List, Literal, Mapping, Optional, Sequence

from psycopg import sql
from pydantic import BaseModel, Field

Operator = Literal["=", "!=", "<", "<=", ">", ">=", "LIKE", "IN", "IS NULL", "IS NOT NULL"]
ParamStyle = Literal["format", "numeric"]

_UNARY_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})
_ORDER_DIRECTIONS = frozenset({"ASC", "DESC"})


class Criteria(BaseModel):
    """
    A single filter condition: ``<column> <operator> <value>``.

    Several criteria passed together are joined with AND.
    """

    column: str = Field(..., min_length=1, description="Column the condition applies to.")
    operator: Operator = Field("=", description="Comparison operator.")
    value: Any = Field(None, description="Right-hand operand; ignored for IS [NOT] NULL.")

    model_config = {
        "frozen": True,
    }


def equals_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator="=", value=value)


def not_equals_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator="!=", value=value)


def greater_than_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator=">", value=value)


def greater_or_equals_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator=">=", value=value)


def less_than_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator="<", value=value)


def less_or_equals_criteria(column: str, value: Any) -> Criteria:
    return Criteria(column=column, operator="<=", value=value)


def like_criteria(column: str, pattern: str) -> Criteria:
    return Criteria(column=column, operator="LIKE", value=pattern)


def in_criteria(column: str, values: Iterable[Any]) -> Criteria:
    return Criteria(column=column, operator="IN", value=list(values))


def is_null_criteria(column: str) -> Criteria:
    return Criteria(column=column, operator="IS NULL")


def is_not_null_criteria(column: str) -> Criteria:
    return Criteria(column=column, operator="IS NOT NULL")


@dataclass(frozen=True)
class CompiledQuery:
    """Ready-to-execute SQL text and its positional parameters."""

    sql: str
    params: List[Any] = field(default_factory=list)


class _Parameters:
    """Collects bound values and hands out matching placeholders."""

    def __init__(self, paramstyle: ParamStyle) -> None:
        if paramstyle not in ("format", "numeric"):
            raise ValueError(f"Unsupported paramstyle '{paramstyle}'")
        self._paramstyle = paramstyle
        self.values: List[Any] = []

    def add(self, value: Any) -> sql.Composable:
        self.values.append(value)
        if self._paramstyle == "numeric":
            return sql.SQL(f"${len(self.values)}")
        return sql.Placeholder()


def _identifier(name: str) -> sql.Identifier:
    """Quote a possibly schema-qualified name (``schema.table``)."""
    return sql.Identifier(*name.split("."))


def _where(criteria: Sequence[Criteria], params: _Parameters) -> sql.Composable:
    if not criteria:
        return sql.SQL("")

    conditions: List[sql.Composable] = []
    for item in criteria:
        column = _identifier(item.column)
        if item.operator in _UNARY_OPERATORS:
            conditions.append(sql.SQL("{} " + item.operator).format(column))
        elif item.operator == "IN":
            conditions.append(sql.SQL("{} = ANY({})").format(column, params.add(list(item.value))))
        else:
            conditions.append(
                sql.SQL("{} {} {}").format(column, sql.SQL(item.operator), params.add(item.value))
            )

    return sql.SQL(" WHERE ") + sql.SQL(" AND ").join(conditions)


def _order_by(order_by: Optional[Mapping[str, str]]) -> sql.Composable:
    if not order_by:
        return sql.SQL("")

    parts: List[sql.Composable] = []
    for column, direction in order_by.items():
        normalized = direction.upper()
        if normalized not in _ORDER_DIRECTIONS:
            raise ValueError(f"Invalid order direction '{direction}' for column '{column}'")
        parts.append(sql.SQL("{} {}").format(_identifier(column), sql.SQL(normalized)))

    return sql.SQL(" ORDER BY ") + sql.SQL(", ").join(parts)


def _compile(statement: sql.Composable, params: _Parameters) -> CompiledQuery:
    return CompiledQuery(sql=statement.as_string(None), params=params.values)


def select_query(
    table: str,
    criteria: Sequence[Criteria] = (),
    order_by: Optional[Mapping[str, str]] = None,
    limit: Optional[int] = None,
    offset: Optional[int] = None,
    columns: Optional[Sequence[str]] = None,
    paramstyle: ParamStyle = "format",
) -> CompiledQuery:
    """
    Build a SELECT statement.

    Parameters
    ----------
    table : str
        Table name, optionally schema-qualified.
    criteria : sequence[Criteria]
        Filter conditions joined with AND.
    order_by : mapping[str, str] | None
        Column -> direction ("asc"/"desc"), applied in mapping order.
    limit, offset : int | None
        Row window; must be non-negative.
    columns : sequence[str] | None
        Columns to select; all columns when omitted.
    paramstyle : str
        Placeholder style of the target executor.
    """
    if limit is not None and limit < 0:
        raise ValueError("limit must be non-negative")
    if offset is not None and offset < 0:
        raise ValueError("offset must be non-negative")

    params = _Parameters(paramstyle)
    selected = sql.SQL(", ").join(_identifier(c) for c in columns) if columns else sql.SQL("*")

    statement = sql.SQL("SELECT {} FROM {}").format(selected, _identifier(table))
    statement += _where(criteria, params)
    statement += _order_by(order_by)
    if limit is not None:
        statement += sql.SQL(" LIMIT {}").format(params.add(limit))
    if offset is not None:
        statement += sql.SQL(" OFFSET {}").format(params.add(offset))

    return _compile(statement, params)


def insert_query(
    table: str,
    values: Mapping[str, Any],
    returning: Optional[str] = None,
    paramstyle: ParamStyle = "format",
) -> CompiledQuery:
    """
    Build an INSERT statement; an empty ``values`` mapping inserts DEFAULT VALUES.
    """
    params = _Parameters(paramstyle)

    if values:
        statement = sql.SQL("INSERT INTO {} ({}) VALUES ({})").format(
            _identifier(table),
            sql.SQL(", ").join(sql.Identifier(column) for column in values),
            sql.SQL(", ").join(params.add(value) for value in values.values()),
        )
    else:
        statement = sql.SQL("INSERT INTO {} DEFAULT VALUES").format(_identifier(table))

    if returning:
        statement += sql.SQL(" RETURNING {}").format(sql.Identifier(returning))

    return _compile(statement, params)


def update_query(
    table: str,
    values: Mapping[str, Any],
    criteria: Sequence[Criteria] = (),
    paramstyle: ParamStyle = "format",
) -> CompiledQuery:
    """
    Build an UPDATE statement setting only the given columns.
    """
    if not values:
        raise ValueError("update_query requires at least one column to set")

    params = _Parameters(paramstyle)
    assignments = sql.SQL(", ").join(
        sql.SQL("{} = {}").format(sql.Identifier(column), params.add(value))
        for column, value in values.items()
    )

    statement = sql.SQL("UPDATE {} SET {}").format(_identifier(table), assignments)
    statement += _where(criteria, params)

    return _compile(statement, params)


def delete_query(
    table: str,
    criteria: Sequence[Criteria] = (),
    paramstyle: ParamStyle = "format",
) -> CompiledQuery:
    """
    Build a DELETE statement.
    """
    params = _Parameters(paramstyle)
    statement = sql.SQL("DELETE FROM {}").format(_identifier(table))
    statement += _where(criteria, params)

    return _compile(statement, params)


__all__ = [
    "Criteria",
    "CompiledQuery",
    "Operator",
    "ParamStyle",
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
    "select_query",
    "insert_query",
    "update_query",
    "delete_query",
]
