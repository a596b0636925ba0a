"""
Active Record base.

A Record subclass represents one table: it binds a TableDescriptor (table name
and primary key column) and exposes async finders and factories returning
entities. Each entity tracks its current field values and the pending change
set, and flushes them through a QueryExecutor:

- a new entity is INSERTed with its full field mapping;
- an existing entity is UPDATEd with the changed columns only, filtered by
  primary key.

Usage:
    class Article(Record):
        __table__ = Table("articles")

        title: str = column()

    article = await Article.create(executor, {"title": "Hello"})
    article.title = "Hello, world"
    await article.save()

Operations on a single entity must not run concurrently; nothing guards its
in-memory state.
"""

from __future__ import annotations

import re
import uuid
from typing import (
    Any,
    ClassVar,
    Dict,
    List,
    Mapping,
    Optional,
    Protocol,
    Sequence,
    Type,
    TypeVar,
    Union,
    runtime_checkable,
)

from active_record.exceptions import PrimaryKeyNotSpecified, UpdateRemovedEntry
from active_record.fields import FieldSet
from active_record.metadata import CacheAdapter, MetadataLoader
from active_record.query import Criteria, equals_criteria, insert_query, update_query
from active_record.storage.abstract import QueryExecutor, SupportsReturningClause
from active_record.storage.helpers import (
    fetch_all,
    fetch_one,
    find,
    paramstyle,
    remove,
    unescape_binary,
)
from active_record.utils.logging import get_logger

log = get_logger(__name__)

TRecord = TypeVar("TRecord", bound="Record")

_FACTORY_TOKEN = object()


@runtime_checkable
class TableDescriptor(Protocol):
    """Identity of a table: its name and primary key column."""

    def table_name(self) -> str:
        ...

    def primary_key(self) -> str:
        ...


class Table:
    """Stock TableDescriptor."""

    __slots__ = ("_name", "_primary_key")

    def __init__(self, name: str, primary_key: str = "id") -> None:
        if not name:
            raise ValueError("Table name must not be empty")
        if not primary_key:
            raise ValueError("Primary key column must not be empty")
        self._name = name
        self._primary_key = primary_key

    def table_name(self) -> str:
        return self._name

    def primary_key(self) -> str:
        return self._primary_key

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Table):
            return NotImplemented
        return (self._name, self._primary_key) == (other._name, other._primary_key)

    def __hash__(self) -> int:
        return hash((self._name, self._primary_key))

    def __repr__(self) -> str:
        return f"Table({self._name!r}, primary_key={self._primary_key!r})"


class Record:
    """
    Base class for row-backed entities.

    Subclasses set ``__table__``; they may also set ``cache_adapter`` to use a
    metadata cache backend other than the shared in-memory one.
    """

    __table__: ClassVar[TableDescriptor]
    cache_adapter: ClassVar[Optional[CacheAdapter]] = None

    def __init__(
        self,
        query_executor: QueryExecutor,
        columns: Mapping[str, str],
        *,
        _token: object = None,
    ) -> None:
        if _token is not _FACTORY_TOKEN:
            raise TypeError(
                f"{type(self).__name__} entities are created through create(), build() or find*()"
            )
        self._query_executor = query_executor
        self._fields = FieldSet(self.table_name(), columns)
        self._is_new = True
        self._insert_id: Optional[str] = None

    # ---- table identity -------------------------------------------------

    @classmethod
    def descriptor(cls) -> TableDescriptor:
        table = getattr(cls, "__table__", None)
        if table is None:
            raise TypeError(f"{cls.__name__} does not declare __table__")
        return table

    @classmethod
    def table_name(cls) -> str:
        return cls.descriptor().table_name()

    @classmethod
    def primary_key(cls) -> str:
        return cls.descriptor().primary_key()

    # ---- factories and finders ------------------------------------------

    @classmethod
    async def create(
        cls: Type[TRecord], query_executor: QueryExecutor, data: Mapping[str, Any]
    ) -> TRecord:
        """
        Create and persist an entry.

        Raises
        ------
        UnknownColumn
            If a key of ``data`` is not a column of the table.
        StorageInteractingFailed
            If the INSERT fails (including unique constraint violations).
        """
        entity = await cls._instantiate(query_executor, data, is_new=True)
        inserted_id = await entity.save()
        entity._insert_id = None if inserted_id is None else str(inserted_id)
        return entity

    @classmethod
    async def build(
        cls: Type[TRecord], query_executor: QueryExecutor, data: Mapping[str, Any]
    ) -> TRecord:
        """Create an entry in memory only; it is inserted by the first save()."""
        return await cls._instantiate(query_executor, data, is_new=True)

    @classmethod
    async def find(cls: Type[TRecord], query_executor: QueryExecutor, id_value: Any) -> Optional[TRecord]:
        """Find an entry by primary key; None when it does not exist."""
        return await cls.find_one_by(query_executor, [equals_criteria(cls.primary_key(), id_value)])

    @classmethod
    async def find_one_by(
        cls: Type[TRecord], query_executor: QueryExecutor, criteria: Sequence[Criteria]
    ) -> Optional[TRecord]:
        """
        Find one entry matching ``criteria``; None when nothing matches.

        Raises
        ------
        OneResultExpected
            If more than one row matches.
        """
        result_set = await find(query_executor, cls.table_name(), criteria)
        row = await fetch_one(result_set)
        if row is None:
            return None
        return await cls._instantiate(query_executor, row, is_new=False)

    @classmethod
    async def find_by(
        cls: Type[TRecord],
        query_executor: QueryExecutor,
        criteria: Sequence[Criteria] = (),
        limit: Optional[int] = None,
        offset: Optional[int] = None,
        order_by: Optional[Mapping[str, str]] = None,
    ) -> List[TRecord]:
        """
        Find entries matching ``criteria`` in result order.

        ``order_by`` maps column names to "asc"/"desc".
        """
        result_set = await find(
            query_executor,
            cls.table_name(),
            criteria,
            limit=limit,
            offset=offset,
            order_by=order_by,
        )
        rows = await fetch_all(result_set)
        if not rows:
            return []

        columns = await cls._load_columns(query_executor)
        entries: List[TRecord] = []
        for row in rows:
            entries.append(await cls._instantiate(query_executor, row, is_new=False, columns=columns))
        return entries

    # ---- lifecycle ------------------------------------------------------

    async def save(self) -> Union[int, str, None]:
        """
        Flush the entry.

        Returns the identifier of a newly inserted entry (as str, None when the
        backend could not report one) or the number of rows affected by the
        UPDATE of an existing entry (0 when nothing changed).

        Raises
        ------
        PrimaryKeyNotSpecified
            If an existing entry has no primary key value.
        """
        if self._is_new:
            inserted_id = await self._store_new_entry()
            self._fields.clear_changes()
            self._is_new = False
            return inserted_id

        change_set = self._fields.changes
        if not change_set:
            return 0

        affected_rows = await self._update_exists_entry(change_set)
        self._fields.clear_changes()
        return affected_rows

    async def refresh(self) -> None:
        """
        Reload the entry from storage, discarding pending changes.

        Raises
        ------
        UpdateRemovedEntry
            If the row no longer exists (possibly deleted concurrently).
        PrimaryKeyNotSpecified
            If the entry has no primary key value.
        """
        primary_key_value = self._search_primary_key_value()
        result_set = await find(
            self._query_executor,
            self.table_name(),
            [equals_criteria(self.primary_key(), primary_key_value)],
        )
        row = await fetch_one(result_set)
        if row is None:
            raise UpdateRemovedEntry()

        self._fields.replace(unescape_binary(self._query_executor, row))
        log.debug("Entry refreshed", extra={"table": self.table_name(), "id": str(primary_key_value)})

    async def remove(self) -> int:
        """
        Delete the entry and return the affected row count.

        An entry that was never saved is not deleted and 0 is returned.
        """
        if self._is_new:
            return 0

        primary_key_value = self._search_primary_key_value()
        affected_rows = await remove(
            self._query_executor,
            self.table_name(),
            [equals_criteria(self.primary_key(), primary_key_value)],
        )
        log.debug(
            "Entry removed",
            extra={"table": self.table_name(), "id": str(primary_key_value), "rows": affected_rows},
        )
        return affected_rows

    def last_insert_id(self) -> Optional[str]:
        """Identifier captured by create(), or None."""
        return self._insert_id

    # ---- field access ---------------------------------------------------

    def get(self, name: str) -> Any:
        return self._fields.get(name)

    def set(self, name: str, value: Any) -> None:
        self._fields.set(name, value)

    def has(self, name: str) -> bool:
        return self._fields.has(name)

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def fields(self) -> Dict[str, Any]:
        return self._fields.data

    @property
    def changes(self) -> Dict[str, Any]:
        return self._fields.changes

    @property
    def columns(self) -> Dict[str, str]:
        return self._fields.columns

    @property
    def query_executor(self) -> QueryExecutor:
        return self._query_executor

    def __repr__(self) -> str:
        return (
            f"<{type(self).__name__} table={self.table_name()!r} is_new={self._is_new} "
            f"data={self._fields.data!r} changes={self._fields.changes!r}>"
        )

    # ---- internals ------------------------------------------------------

    async def _store_new_entry(self) -> Optional[str]:
        primary_key = self.primary_key()
        values = self._fields.data

        if primary_key not in values and (self._fields.column_type(primary_key) or "").lower() == "uuid":
            values[primary_key] = str(uuid.uuid4())
            self._fields.assign(primary_key, values[primary_key])

        returning = None
        if (
            isinstance(self._query_executor, SupportsReturningClause)
            and self._query_executor.returning_clause_supported()
        ):
            returning = primary_key

        query = insert_query(
            self.table_name(),
            values,
            returning=returning,
            paramstyle=paramstyle(self._query_executor),
        )
        result_set = await self._query_executor.execute(query.sql, query.params)

        inserted_id = await result_set.last_insert_id()
        if inserted_id is None:
            inserted_id = values.get(primary_key)

        if self._fields.data.get(primary_key) is None and inserted_id is not None:
            self._fields.assign(primary_key, inserted_id)

        log.debug("Entry inserted", extra={"table": self.table_name(), "id": str(inserted_id)})
        return None if inserted_id is None else str(inserted_id)

    async def _update_exists_entry(self, change_set: Dict[str, Any]) -> int:
        primary_key_value = self._search_primary_key_value()
        query = update_query(
            self.table_name(),
            change_set,
            [equals_criteria(self.primary_key(), primary_key_value)],
            paramstyle=paramstyle(self._query_executor),
        )
        result_set = await self._query_executor.execute(query.sql, query.params)
        affected_rows = result_set.affected_rows()

        log.debug(
            "Entry updated",
            extra={
                "table": self.table_name(),
                "id": str(primary_key_value),
                "columns": sorted(change_set),
                "rows": affected_rows,
            },
        )
        return affected_rows

    def _search_primary_key_value(self) -> Any:
        primary_key = self.primary_key()
        value = self._fields.data.get(primary_key)
        if value is None or str(value) == "":
            raise PrimaryKeyNotSpecified(primary_key)
        return value

    @classmethod
    async def _load_columns(cls, query_executor: QueryExecutor) -> Dict[str, str]:
        loader = MetadataLoader(query_executor, cls.cache_adapter)
        return await loader.columns(cls.table_name())

    @classmethod
    async def _instantiate(
        cls: Type[TRecord],
        query_executor: QueryExecutor,
        data: Mapping[str, Any],
        is_new: bool,
        columns: Optional[Mapping[str, str]] = None,
    ) -> TRecord:
        if columns is None:
            columns = await cls._load_columns(query_executor)

        entity = cls(query_executor, columns, _token=_FACTORY_TOKEN)

        if not is_new:
            data = unescape_binary(query_executor, data)

        for key, value in data.items():
            entity._fields.set(key, value)

        # Hydrated rows mirror storage, so nothing is pending.
        if not is_new:
            entity._fields.clear_changes()

        entity._is_new = is_new
        return entity


def _class_name(table: str) -> str:
    parts = [part for part in re.split(r"[^0-9a-zA-Z]+", table) if part]
    return "".join(part[:1].upper() + part[1:] for part in parts) + "Record"


def define_table(
    name: str,
    primary_key: str = "id",
    *,
    cache_adapter: Optional[CacheAdapter] = None,
) -> Type[Record]:
    """
    Build a Record type for ``name`` without writing a subclass.

    Example:
        Users = define_table("users", primary_key="user_id")
        user = await Users.find(executor, 42)
    """
    namespace: Dict[str, Any] = {
        "__table__": Table(name, primary_key),
        "cache_adapter": cache_adapter,
        "__module__": __name__,
    }
    return type(_class_name(name), (Record,), namespace)


__all__ = ["TableDescriptor", "Table", "Record", "define_table"]
