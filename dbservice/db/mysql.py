from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from typing import Any, Iterator, Mapping, Sequence

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Connection, Engine, make_url
from sqlalchemy.engine.url import URL
from sqlalchemy.exc import ArgumentError, NoSuchModuleError, SQLAlchemyError
from sqlalchemy.pool import NullPool
from sqlalchemy.sql import TextClause

from ..config import DEFAULT_DRIVER, AccessorConfig
from ..errors import DbConnectionError, DriverNotFoundError, InvalidArgumentError, QueryError
from .accessor import Record
from .binding import BoundValue, bind_values, to_clause
from .metrics import observe_db_statement
from .statements import (
    _metric_label,
    _parse_sql_operation,
    build_delete,
    build_insert,
    build_select_where,
    build_select_where_literal,
    build_update,
)

logger = logging.getLogger(__name__)


class MySqlAccessor:
    """
    Accessor holding a single connection to a MySQL database.

    Statements are built as positional ``?`` text and bound with one typed
    SQLAlchemy bind parameter per value (see ``dbservice.db.binding``). The
    engine uses ``NullPool`` and ``AUTOCOMMIT``: every ``open_connection()``
    opens a real connection and every write is durable once it returns.

    Not thread-safe: one accessor per caller.

    Use as:
        with MySqlAccessor("mysql+pymysql", "mysql://127.0.0.1:3306/app", "user", "pw") as db:
            db.insert_record("users", {"name": "Ada"}, close_after=False)
    """

    def __init__(
        self,
        driver: str | None,
        url: str,
        username: str | None = "",
        password: str | None = "",
        parameterize_where: bool = False,
    ) -> None:
        self.config = AccessorConfig(
            url=url,
            driver=driver or "",
            username=username,
            password=password,
            parameterize_where=parameterize_where,
        )
        self._engine: Engine | None = None
        self._conn: Connection | None = None

    @classmethod
    def from_config(cls, config: AccessorConfig) -> "MySqlAccessor":
        return cls(
            config.driver,
            config.url,
            config.username,
            config.password,
            parameterize_where=config.parameterize_where,
        )

    def __enter__(self) -> "MySqlAccessor":
        self.open_connection()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if self._conn is not None:
            self._release(True, suppress=exc_type is not None)

        # propagate exceptions (if any)
        return False

    def _engine_url(self) -> URL:
        raw = self.config.url
        driver = self.config.driver
        if "://" not in raw:
            # Bare "//host:port/db" or "host:port/db" locations take the driver as scheme.
            raw = f"{driver or DEFAULT_DRIVER}://{raw.lstrip('/')}"

        try:
            url = make_url(raw)
        except ArgumentError as exc:
            raise InvalidArgumentError(f"Invalid database url {self.config.url!r}: {exc}") from exc

        overrides: dict[str, Any] = {}
        if driver:
            overrides["drivername"] = driver
        if self.config.username:
            overrides["username"] = self.config.username
        if self.config.password:
            overrides["password"] = self.config.password
        return url.set(**overrides)

    def _get_engine(self) -> Engine:
        if self._engine is None:
            url = self._engine_url()
            try:
                self._engine = create_engine(url, poolclass=NullPool, isolation_level="AUTOCOMMIT")
            except (NoSuchModuleError, ImportError) as exc:
                raise DriverNotFoundError(f"Driver {url.drivername!r} not found: {exc}") from exc
        return self._engine

    def open_connection(self) -> Connection:
        """
        Open a new connection, replacing (and closing) any connection still held.

        Raises:
            DriverNotFoundError: If the driver identifier cannot be resolved
            DbConnectionError: If the connect call fails
        """
        engine = self._get_engine()
        if self._conn is not None:
            logger.debug("Replacing open connection to %s", engine.url.render_as_string())
            self._release(True, suppress=True)

        try:
            self._conn = engine.connect()
        except SQLAlchemyError as exc:
            raise DbConnectionError(str(exc)) from exc
        return self._conn

    def close_connection(self, close: bool = True) -> None:
        """
        Close the held connection. A no-op when ``close`` is False.

        Raises:
            DbConnectionError: If no connection is open or closing fails
        """
        if not close:
            return

        conn = self._conn
        if conn is None or conn.closed:
            self._conn = None
            raise DbConnectionError("Connection is already closed")

        try:
            conn.close()
        except SQLAlchemyError as exc:
            raise DbConnectionError(str(exc)) from exc
        finally:
            self._conn = None

    def _connection(self) -> Connection:
        if self._conn is None or self._conn.closed:
            raise DbConnectionError("Connection is not open; call open_connection() first")
        return self._conn

    def _release(self, close_after: bool, suppress: bool) -> None:
        """
        Close the connection if requested. With ``suppress`` set (the primary
        operation already failed) a close failure is logged, not raised.
        """
        if not close_after or self._conn is None:
            return
        if not suppress:
            self.close_connection()
            return
        try:
            self.close_connection()
        except DbConnectionError:
            logger.warning("Failed to close connection", exc_info=True)

    @contextmanager
    def _statement(self, close_after: bool, table: str, op_type: str) -> Iterator[Connection]:
        start_time = time.monotonic()
        status = "success"
        try:
            yield self._connection()
        except SQLAlchemyError as exc:
            status = "error"
            self._release(close_after, suppress=True)
            raise QueryError(str(exc)) from exc
        except BaseException:
            status = "error"
            self._release(close_after, suppress=True)
            raise
        else:
            self._release(close_after, suppress=False)
        finally:
            try:
                observe_db_statement(table, op_type, status, time.monotonic() - start_time)
            except Exception:
                logger.debug("Failed to record statement metrics", exc_info=True)

    @staticmethod
    def _row_to_record(keys: Sequence[str], row: Sequence[Any]) -> Record:
        """
        Copy ``row`` into a record, leaving out any column that cannot be read.

        This only covers reading values off an already fetched row. Type
        processors run while SQLAlchemy fetches, so a decode failure there
        raises from ``fetchall()``/``fetchmany()`` and fails the whole
        statement with ``QueryError``. Raw ``text()`` queries carry no result
        types, so their values arrive as the DBAPI returned them.
        """
        record: Record = {}
        for index, key in enumerate(keys):
            try:
                record[key] = row[index]
            except (LookupError, TypeError, ValueError):
                # Best-effort decoding: an unreadable column is left out of the record.
                logger.debug("Skipping unreadable column %r", key, exc_info=True)
        return record

    def _fetch_records(self, conn: Connection, stmt: TextClause, limit: int | None = None) -> list[Record]:
        result = conn.execute(stmt)
        try:
            keys = list(result.keys())
            rows = result.fetchall() if limit is None else result.fetchmany(limit)
            return [self._row_to_record(keys, row) for row in rows]
        finally:
            result.close()

    def _execute_write(self, conn: Connection, sql: str, bound: Sequence[BoundValue]) -> int:
        logger.debug("Executing %s with kinds %s", sql, [b.kind.value for b in bound])
        result = conn.execute(to_clause(sql, bound))
        try:
            return int(result.rowcount or 0)
        finally:
            result.close()

    @staticmethod
    def _raw_statement(sql: str | TextClause | None) -> TextClause:
        if sql is None or not str(sql).strip():
            raise InvalidArgumentError("sql cannot be empty")
        if isinstance(sql, TextClause):
            return sql
        # Raw SQL runs as written; escaped colons keep text() from reading ":word" as a bind.
        return text(sql.replace(":", r"\:"))

    def execute_query(self, sql: str | TextClause, close_after: bool) -> list[Record]:
        """
        Execute a read and return one record per row, keyed by column name.

        A string is executed as written. Pass a ``TextClause`` to use ``:name`` binds.
        """
        table, op_type = _parse_sql_operation(sql)
        with self._statement(close_after, table, op_type) as conn:
            logger.debug("Executing query %s", sql)
            stmt = self._raw_statement(sql)
            return self._fetch_records(conn, stmt)

    def execute_update(self, sql: str | TextClause, close_after: bool) -> int:
        """Execute a write and return the affected row count."""
        table, op_type = _parse_sql_operation(sql)
        with self._statement(close_after, table, op_type) as conn:
            logger.debug("Executing update %s", sql)
            stmt = self._raw_statement(sql)
            result = conn.execute(stmt)
            try:
                return int(result.rowcount or 0)
            finally:
                result.close()

    def insert_record(self, table: str, fields: Mapping[str, Any], close_after: bool) -> bool:
        """
        Insert ``fields`` as one row, columns in mapping order.

        ``None`` values are bound as SQL NULL; drop them beforehand to let
        column defaults apply.

        Returns:
            True iff exactly one row was inserted
        """
        with self._statement(close_after, _metric_label(table), "insert") as conn:
            sql = build_insert(table, list(fields.keys()))
            bound = bind_values(fields.values())
            return self._execute_write(conn, sql, bound) == 1

    def update_record(
        self,
        table: str,
        fields: Mapping[str, Any],
        where_field: str,
        where_value: Any,
        close_after: bool,
    ) -> int:
        """
        Set every key of ``fields`` on rows where ``where_field = where_value``.

        Values bind in mapping order followed by ``where_value``. Only this path
        binds ``datetime`` values as timestamps.
        """
        with self._statement(close_after, _metric_label(table), "update") as conn:
            sql = build_update(table, list(fields.keys()), where_field)
            bound = bind_values([*fields.values(), where_value], allow_timestamp=True)
            return self._execute_write(conn, sql, bound)

    def delete_records(
        self,
        table: str,
        where_field: str | None,
        where_value: Any,
        close_after: bool,
    ) -> int:
        """
        Delete rows where ``where_field = where_value``.

        ⚠️ With ``where_field=None`` every row in ``table`` is deleted and
        ``where_value`` is ignored.
        """
        with self._statement(close_after, _metric_label(table), "delete") as conn:
            sql = build_delete(table, where_field)
            bound = bind_values([where_value]) if where_field is not None else []
            return self._execute_write(conn, sql, bound)

    def _select_where(self, table: str, field: str, value: Any) -> TextClause:
        if self.config.parameterize_where:
            return to_clause(build_select_where(table, field), bind_values([value]))

        sql = build_select_where_literal(table, field, value)
        logger.debug("Executing query %s", sql)
        # Colons only come from the interpolated value; keep text() from reading them as binds.
        return text(sql.replace(":", r"\:"))

    def get_record_where(self, table: str, field: str, value: Any, close_after: bool) -> Record | None:
        """
        First row where ``field = value``, or None when nothing matches.

        ⚠️ Unless ``parameterize_where`` is configured, ``value`` is interpolated
        into the SQL text (see ``build_select_where_literal``).
        """
        with self._statement(close_after, _metric_label(table), "select") as conn:
            records = self._fetch_records(conn, self._select_where(table, field, value), limit=1)
            return records[0] if records else None

    def get_records_where(self, table: str, field: str, value: Any, close_after: bool) -> list[Record]:
        """All rows where ``field = value``; same interpolation caveat as ``get_record_where``."""
        with self._statement(close_after, _metric_label(table), "select") as conn:
            return self._fetch_records(conn, self._select_where(table, field, value))
