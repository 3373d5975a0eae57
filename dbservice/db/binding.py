from __future__ import annotations

import datetime
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable, Sequence

from sqlalchemy import bindparam, text
from sqlalchemy import types as sqltypes
from sqlalchemy.sql import TextClause

from ..errors import InvalidArgumentError

INT32_MIN, INT32_MAX = -(2**31), 2**31 - 1
INT64_MIN, INT64_MAX = -(2**63), 2**63 - 1

PLACEHOLDER = "?"


class BindKind(str, Enum):
    """
    Binding rule selected for a single parameter value.

    Members are declared in dispatch priority order (NULL aside).
    """
    TEXT = "text"
    INT32 = "int32"
    INT64 = "int64"
    FLOAT64 = "float64"
    DATE = "date"
    TIMESTAMP = "timestamp"
    BOOL = "bool"
    RAW = "raw"
    NULL = "null"


_SQL_TYPES: dict[BindKind, type[sqltypes.TypeEngine]] = {
    BindKind.TEXT: sqltypes.String,
    BindKind.INT32: sqltypes.Integer,
    BindKind.INT64: sqltypes.BigInteger,
    BindKind.FLOAT64: sqltypes.Double,
    BindKind.DATE: sqltypes.Date,
    BindKind.TIMESTAMP: sqltypes.DateTime,
    BindKind.BOOL: sqltypes.Boolean,
    BindKind.RAW: sqltypes.NullType,
    BindKind.NULL: sqltypes.NullType,
}


def classify(value: Any, allow_timestamp: bool = False) -> BindKind:
    """
    Pick the narrowest binding rule for ``value``.

    Priority: string, 32-bit int, 64-bit int, float, date, timestamp, boolean.
    Anything else binds untyped (RAW); ``None`` binds as NULL.

    ``bool`` is a subclass of ``int`` and ``datetime`` a subclass of ``date``,
    so both are excluded from the broader checks explicitly. Timestamps are only
    recognised when ``allow_timestamp`` is set (the UPDATE path); elsewhere a
    ``datetime`` falls through to RAW.
    """
    if value is None:
        return BindKind.NULL
    if isinstance(value, str):
        return BindKind.TEXT
    if isinstance(value, int) and not isinstance(value, bool):
        if INT32_MIN <= value <= INT32_MAX:
            return BindKind.INT32
        if INT64_MIN <= value <= INT64_MAX:
            return BindKind.INT64
        return BindKind.RAW
    if isinstance(value, float):
        return BindKind.FLOAT64
    if isinstance(value, datetime.date) and not isinstance(value, datetime.datetime):
        return BindKind.DATE
    if allow_timestamp and isinstance(value, datetime.datetime):
        return BindKind.TIMESTAMP
    if isinstance(value, bool):
        return BindKind.BOOL
    return BindKind.RAW


@dataclass(frozen=True)
class BoundValue:
    kind: BindKind
    value: Any

    def sql_type(self) -> sqltypes.TypeEngine:
        return _SQL_TYPES[self.kind]()


def bind_values(values: Iterable[Any], allow_timestamp: bool = False) -> list[BoundValue]:
    return [BoundValue(classify(v, allow_timestamp), v) for v in values]


def to_clause(sql: str, bound: Sequence[BoundValue]) -> TextClause:
    """
    Turn positional ``?`` statement text into a SQLAlchemy TextClause with one
    typed bind parameter per placeholder, in order.

    Only statement text produced by ``dbservice.db.statements`` is expected here:
    identifiers there are validated, so every ``?`` is a placeholder.
    """
    parts = sql.split(PLACEHOLDER)
    if len(parts) - 1 != len(bound):
        raise InvalidArgumentError(
            f"Statement has {len(parts) - 1} placeholders but {len(bound)} values were supplied"
        )

    rendered = [parts[0]]
    params = []
    for index, (item, tail) in enumerate(zip(bound, parts[1:])):
        name = f"p{index}"
        rendered.append(f":{name}")
        rendered.append(tail)
        params.append(bindparam(name, item.value, type_=item.sql_type()))

    return text("".join(rendered)).bindparams(*params)
