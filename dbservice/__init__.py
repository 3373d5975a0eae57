from .config import AccessorConfig
from .dao import GenericDao
from .db.mysql import MySqlAccessor
from .errors import (
    DbAccessError,
    DbConnectionError,
    DbServiceError,
    DriverNotFoundError,
    InvalidArgumentError,
    QueryError,
)

__all__ = [
    "AccessorConfig",
    "GenericDao",
    "MySqlAccessor",
    "DbServiceError",
    "InvalidArgumentError",
    "DriverNotFoundError",
    "DbConnectionError",
    "QueryError",
    "DbAccessError",
]
