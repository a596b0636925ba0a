"""
Explicit, key-validated field storage for Record entities.

FieldSet keeps the current row values and the pending change set of one
entity, validating every public write against the table's declared columns.
The ``column()`` descriptor gives concrete entity types typed attribute access
without dynamic attribute interception:

    class Article(Record):
        __table__ = Table("articles")

        title: str = column()
        body: str = column()
"""

from __future__ import annotations

from typing import Any, Dict, Generic, Mapping, Optional, Type, TypeVar, overload

from active_record.exceptions import UnknownColumn

Scalar = Any
T = TypeVar("T")


class FieldSet:
    """
    Current values and pending changes of one entity.

    Invariant: every key of ``changes`` is also a key of ``data``.
    """

    def __init__(self, table: str, columns: Mapping[str, str]) -> None:
        self._table = table
        self._columns: Dict[str, str] = dict(columns)
        self._data: Dict[str, Scalar] = {}
        self._changes: Dict[str, Scalar] = {}

    @property
    def columns(self) -> Dict[str, str]:
        return dict(self._columns)

    @property
    def data(self) -> Dict[str, Scalar]:
        return dict(self._data)

    @property
    def changes(self) -> Dict[str, Scalar]:
        return dict(self._changes)

    def has(self, name: str) -> bool:
        """Whether ``name`` is a declared column (not whether it holds a value)."""
        return name in self._columns

    def column_type(self, name: str) -> Optional[str]:
        return self._columns.get(name)

    def get(self, name: str) -> Scalar:
        if name not in self._columns:
            raise UnknownColumn(name, self._table)
        return self._data.get(name)

    def set(self, name: str, value: Scalar) -> None:
        """Write a value and record it as a pending change."""
        if name not in self._columns:
            raise UnknownColumn(name, self._table)
        self._data[name] = value
        self._changes[name] = value

    def assign(self, name: str, value: Scalar) -> None:
        """Write a storage-provided value without recording a change."""
        self._data[name] = value

    def replace(self, data: Mapping[str, Scalar]) -> None:
        """Swap the whole row for freshly read values and drop pending changes."""
        self._data = dict(data)
        self._changes = {}

    def clear_changes(self) -> None:
        self._changes = {}

    def __repr__(self) -> str:
        return f"FieldSet(table={self._table!r}, data={self._data!r}, changes={self._changes!r})"


class Column(Generic[T]):
    """Descriptor routing attribute access to ``Record.get`` / ``Record.set``."""

    def __init__(self, name: Optional[str] = None) -> None:
        self.name = name

    def __set_name__(self, owner: Type[Any], name: str) -> None:
        if self.name is None:
            self.name = name

    @overload
    def __get__(self, instance: None, owner: Type[Any]) -> "Column[T]":
        ...

    @overload
    def __get__(self, instance: Any, owner: Type[Any]) -> T:
        ...

    def __get__(self, instance: Any, owner: Type[Any]) -> Any:
        if instance is None:
            return self
        return instance.get(self.name)

    def __set__(self, instance: Any, value: T) -> None:
        instance.set(self.name, value)


def column(name: Optional[str] = None) -> Any:
    """
    Declare a typed column accessor on a Record subclass.

    ``name`` defaults to the attribute name; pass it when they differ.
    """
    return Column(name)


__all__ = ["FieldSet", "Column", "column"]
