from .accessor import DbAccessor, Record
from .binding import BindKind, BoundValue, bind_values, classify
from .mysql import MySqlAccessor
from .statements import build_delete, build_insert, build_update

__all__ = [
    "DbAccessor",
    "Record",
    "MySqlAccessor",
    "BindKind",
    "BoundValue",
    "classify",
    "bind_values",
    "build_insert",
    "build_update",
    "build_delete",
]
