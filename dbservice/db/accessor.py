from __future__ import annotations

from typing import Any, Mapping, Protocol

Record = dict[str, Any]


class DbAccessor(Protocol):
    """
    Protocol for accessors performing CRUD operations against one connection.

    Every operation taking ``close_after`` closes the connection once the
    statement has run (or failed) when the flag is set.
    """

    def open_connection(self) -> Any:
        """Open a connection to the database and return it."""
        ...

    def close_connection(self, close: bool = True) -> None:
        """Close the connection; a no-op when ``close`` is False."""
        ...

    def execute_query(self, sql: str, close_after: bool) -> list[Record]:
        """Execute a read and return one record per row."""
        ...

    def execute_update(self, sql: str, close_after: bool) -> int:
        """Execute a write and return the affected row count."""
        ...

    def insert_record(self, table: str, fields: Mapping[str, Any], close_after: bool) -> bool:
        """Insert ``fields`` as one row; True iff exactly one row was inserted."""
        ...

    def update_record(
        self,
        table: str,
        fields: Mapping[str, Any],
        where_field: str,
        where_value: Any,
        close_after: bool,
    ) -> int:
        """Set ``fields`` on rows where ``where_field = where_value``."""
        ...

    def delete_records(
        self,
        table: str,
        where_field: str | None,
        where_value: Any,
        close_after: bool,
    ) -> int:
        """Delete rows where ``where_field = where_value``; all rows if ``where_field`` is None."""
        ...

    def get_record_where(self, table: str, field: str, value: Any, close_after: bool) -> Record | None:
        """First row where ``field = value``, or None."""
        ...

    def get_records_where(self, table: str, field: str, value: Any, close_after: bool) -> list[Record]:
        """All rows where ``field = value``."""
        ...
