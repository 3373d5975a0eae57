from __future__ import annotations

import re
from typing import Any, Sequence

from ..errors import InvalidArgumentError
from .binding import PLACEHOLDER

_IDENTIFIER_RE = re.compile(r"^[a-zA-Z_][a-zA-Z0-9_]*$")
_MAX_IDENTIFIER_LENGTH = 64

_SQL_OPERATION_RE = re.compile(
    r"^\s*(?:"
    r"(?P<insert>INSERT)\s+(?:IGNORE\s+)?INTO\s+`?(?P<insert_table>[\w.]+)`?"
    r"|(?P<update>UPDATE)\s+`?(?P<update_table>[\w.]+)`?"
    r"|(?P<delete>DELETE)\s+FROM\s+`?(?P<delete_table>[\w.]+)`?"
    r"|(?P<select>SELECT)\b.*?\bFROM\s+`?(?P<select_table>[\w.]+)`?"
    r")",
    re.IGNORECASE | re.DOTALL,
)


def _validate_identifier(name: str, identifier_type: str = "identifier") -> str:
    """
    Validate that an identifier (table/column name) is safe for SQL interpolation.

    Letters, digits and underscores only, optionally qualified by a single
    ``schema.`` prefix. Identifiers MUST still be trusted (hardcoded or
    validated at application boundaries); this is a format check, not a
    whitelist.

    Raises:
        InvalidArgumentError: If the identifier is empty, not a string, or invalid

    Example:
        >>> _validate_identifier("users", "table")
        'users'
        >>> _validate_identifier("app.users", "table")
        'app.users'
    """
    if not isinstance(name, str):
        raise InvalidArgumentError(
            f"{identifier_type} must be a string, got {type(name).__name__}"
        )

    if not name:
        raise InvalidArgumentError(f"{identifier_type} cannot be empty")

    parts = name.split(".")
    if len(parts) > 2:
        raise InvalidArgumentError(f"Invalid {identifier_type} {name!r}: at most one '.' allowed")

    for part in parts:
        if not _IDENTIFIER_RE.match(part):
            raise InvalidArgumentError(
                f"Invalid {identifier_type} {name!r}: "
                "must start with letter/underscore and contain only alphanumeric characters and underscores"
            )
        if len(part) > _MAX_IDENTIFIER_LENGTH:
            raise InvalidArgumentError(
                f"{identifier_type} {name!r} exceeds MySQL's 64-character limit"
            )

    return name


def _validate_columns(columns: Sequence[str]) -> list[str]:
    if not columns:
        raise InvalidArgumentError("at least one column is required")
    return [_validate_identifier(c, "column name") for c in columns]


def build_insert(table: str, columns: Sequence[str]) -> str:
    """``INSERT INTO t (a, b) VALUES (?, ?)``, columns in the given order."""
    table = _validate_identifier(table, "table")
    cols = _validate_columns(columns)
    placeholders = ", ".join(PLACEHOLDER for _ in cols)
    return f"INSERT INTO {table} ({', '.join(cols)}) VALUES ({placeholders})"


def build_update(table: str, columns: Sequence[str], where_field: str) -> str:
    """``UPDATE t SET a = ?, b = ? WHERE k = ?``; the predicate value binds last."""
    table = _validate_identifier(table, "table")
    cols = _validate_columns(columns)
    where_field = _validate_identifier(where_field, "where field")
    set_clause = ", ".join(f"{c} = {PLACEHOLDER}" for c in cols)
    return f"UPDATE {table} SET {set_clause} WHERE {where_field} = {PLACEHOLDER}"


def build_delete(table: str, where_field: str | None = None) -> str:
    """
    ``DELETE FROM t WHERE k = ?``.

    ⚠️ With ``where_field=None`` the statement has no WHERE clause and
    deletes every row in the table.
    """
    table = _validate_identifier(table, "table")
    if where_field is None:
        return f"DELETE FROM {table}"
    where_field = _validate_identifier(where_field, "where field")
    return f"DELETE FROM {table} WHERE {where_field} = {PLACEHOLDER}"


def build_select_where(table: str, field: str) -> str:
    """Parameterized ``SELECT * FROM t WHERE f = ?``."""
    table = _validate_identifier(table, "table")
    field = _validate_identifier(field, "field")
    return f"SELECT * FROM {table} WHERE {field} = {PLACEHOLDER}"


def render_literal(value: Any) -> str:
    """
    Render ``value`` as it is interpolated into where-equals SQL text.

    Text values are wrapped in single quotes, ``None`` renders as ``NULL`` and
    booleans as ``true``/``false``; anything else uses ``str()``.
    No escaping is performed: callers passing unsanitized text are exposed to
    SQL injection.
    """
    if isinstance(value, str):
        return f"'{value}'"
    if value is None:
        return "NULL"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_select_where_literal(table: str, field: str, value: Any) -> str:
    """
    ``SELECT * FROM t WHERE f = 'value'`` with ``value`` interpolated into the text.

    ⚠️ SECURITY CONTRACT ⚠️
    ``value`` is NOT bound as a parameter. Use ``build_select_where`` (or
    ``AccessorConfig(parameterize_where=True)``) for untrusted input.
    """
    table = _validate_identifier(table, "table")
    field = _validate_identifier(field, "field")
    return f"SELECT * FROM {table} WHERE {field} = {render_literal(value)}"


def _parse_sql_operation(sql: Any) -> tuple[str, str]:
    """
    Best-effort extraction of ``(table, op_type)`` from statement text for metrics.

    Returns ``("unknown", "unknown")`` when the statement is not a plain
    INSERT/UPDATE/DELETE/SELECT.
    """
    match = _SQL_OPERATION_RE.match(str(sql))
    if match is None:
        return "unknown", "unknown"

    for op_type in ("insert", "update", "delete", "select"):
        if match.group(op_type):
            return match.group(f"{op_type}_table"), op_type

    return "unknown", "unknown"


def _metric_label(table: Any) -> str:
    """``table`` when it is a valid identifier, else ``"unknown"``, for metric labels."""
    try:
        return _validate_identifier(table, "table")
    except InvalidArgumentError:
        return "unknown"
