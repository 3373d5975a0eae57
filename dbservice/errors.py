class DbServiceError(Exception):
    """Base exception for dbservice errors."""


class InvalidArgumentError(DbServiceError, ValueError):
    """A required argument is missing or malformed. Raised before any I/O."""


class DriverNotFoundError(DbServiceError):
    """The configured driver identifier cannot be resolved."""


class DbConnectionError(DbServiceError):
    """Failure opening or closing the underlying connection."""


class QueryError(DbServiceError):
    """Failure executing or reading a SQL statement."""


class DbAccessError(DbServiceError):
    """Uniform DAO-layer wrapper around any accessor failure."""
