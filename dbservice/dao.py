from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterable, Iterator, TypeVar

from .db.accessor import DbAccessor, Record
from .errors import DbAccessError, DbServiceError, InvalidArgumentError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GenericDao(Generic[T]):
    """
    Entity-level CRUD on top of a ``DbAccessor``.

    Entity knowledge enters only through the two conversion callables::

        dao = GenericDao(accessor, to_entity=User.from_record, to_record=User.to_record)
        dao.save("users", User(name="Ada", age=30), "id")
        ada = dao.find_where("users", "name", "Ada")

    Every call opens its own connection and closes it when the statement has
    run. Argument validation raises ``InvalidArgumentError`` before any I/O;
    every other failure surfaces as ``DbAccessError`` chained to the original.
    """

    def __init__(
        self,
        accessor: DbAccessor,
        to_entity: Callable[[Record], T],
        to_record: Callable[[T], Record],
    ) -> None:
        self.accessor = accessor
        self._to_entity = to_entity
        self._to_record = to_record

    @property
    def accessor(self) -> DbAccessor:
        return self._accessor

    @accessor.setter
    def accessor(self, accessor: DbAccessor) -> None:
        if accessor is None:
            raise InvalidArgumentError("accessor cannot be None")
        self._accessor = accessor

    def _close_quietly(self) -> None:
        try:
            self._accessor.close_connection()
        except DbServiceError:
            # Usually already closed by the accessor (close_after=True).
            logger.debug("Connection already closed after failed call", exc_info=True)

    @contextmanager
    def _access(self) -> Iterator[DbAccessor]:
        try:
            self._accessor.open_connection()
        except Exception as exc:
            logger.debug("Failed to open connection: %s", exc)
            raise DbAccessError(str(exc)) from exc

        try:
            yield self._accessor
        except Exception as exc:
            logger.debug("Accessor call failed: %s", exc)
            self._close_quietly()
            raise DbAccessError(str(exc)) from exc

    def save(self, table: str, entity: T, primary_key: str) -> None:
        """
        INSERT ``entity`` when its primary key is absent or None, UPDATE otherwise.

        None-valued fields are dropped before binding, so inserts never include
        the primary key column and updates never null out columns.
        """
        if not table or entity is None or not primary_key:
            raise InvalidArgumentError("table, entity and primary_key are required")

        fields = {k: v for k, v in self._to_record(entity).items() if v is not None}

        with self._access() as db:
            if fields.get(primary_key) is None:
                fields.pop(primary_key, None)
                db.insert_record(table, fields, True)
            else:
                db.update_record(table, fields, primary_key, fields[primary_key], True)

    def delete(self, table: str, field: str | None = None, value: Any = None) -> int:
        """
        Delete rows where ``field = value``.

        ⚠️ Omitting ``field`` deletes every row in ``table``.
        """
        if not table:
            raise InvalidArgumentError("table is required")

        with self._access() as db:
            return db.delete_records(table, field, value, True)

    def find_where(self, table: str, field: str, value: Any) -> T | None:
        if not table or not field or value is None:
            raise InvalidArgumentError("table, field and value are required")

        with self._access() as db:
            record = db.get_record_where(table, field, value, True)

        if record is None:
            return None
        return self._to_entity(record)

    def find_all_where(self, table: str, field: str, value: Any) -> list[T]:
        if not table or not field or value is None:
            raise InvalidArgumentError("table, field and value are required")

        with self._access() as db:
            records = db.get_records_where(table, field, value, True)

        return self.entities_from_records(records)

    def run_query(self, sql: str) -> list[T]:
        """Execute a read and convert every row to an entity."""
        if not sql or not sql.strip():
            raise InvalidArgumentError("sql is required")

        with self._access() as db:
            records = db.execute_query(sql, True)

        return self.entities_from_records(records)

    def run_statement(self, sql: str) -> int:
        """Execute a write; returns the affected row count."""
        if not sql or not sql.strip():
            raise InvalidArgumentError("sql is required")

        with self._access() as db:
            return db.execute_update(sql, True)

    def entities_from_records(self, records: Iterable[Record]) -> list[T]:
        return [self._to_entity(record) for record in records]

    def records_from_entities(self, entities: Iterable[T]) -> list[Record]:
        return [self._to_record(entity) for entity in entities]
