from dataclasses import dataclass

from .errors import InvalidArgumentError

DEFAULT_DRIVER = "mysql+pymysql"


@dataclass
class AccessorConfig:
    url: str
    driver: str = DEFAULT_DRIVER
    username: str = ""
    password: str = ""
    # Bind the value in get_record(s)_where instead of interpolating it.
    parameterize_where: bool = False

    def __post_init__(self) -> None:
        """Validate configuration parameters."""
        if not self.url:
            raise InvalidArgumentError("Error: url is None or zero length!")
        if self.username is None:
            self.username = ""
        if self.password is None:
            self.password = ""
