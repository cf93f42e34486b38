"""Handle configuration.

HandleConfig is a frozen dataclass — immutable after creation, IDE-autocompletable,
no string-key dict lookups.
"""

from dataclasses import dataclass

from perch.errors import ConfigurationError

_LOG_LEVELS = frozenset({"critical", "error", "warning", "info", "debug", "trace"})


@dataclass(frozen=True, slots=True)
class HandleConfig:
    """Configuration shared by a ``ServerController`` and its engines.

    All fields have sensible defaults. Override what you need::

        config = HandleConfig(host="0.0.0.0", log_level="info")
    """

    # Socket
    host: str = "127.0.0.1"
    backlog: int = 2048

    # Host name used in URLs returned by start() and get_url()
    public_host: str = "localhost"

    # uvicorn logging
    log_level: str = "warning"
    access_log: bool = False

    # Static files
    static_index: str = "index.html"
    static_cache_control: str = "public, max-age=0"

    def __post_init__(self) -> None:
        if not self.host:
            msg = "HandleConfig.host must not be empty."
            raise ConfigurationError(msg)
        if self.backlog < 1:
            msg = f"HandleConfig.backlog must be positive, got {self.backlog}."
            raise ConfigurationError(msg)
        if self.log_level not in _LOG_LEVELS:
            msg = (
                f"HandleConfig.log_level must be one of {', '.join(sorted(_LOG_LEVELS))}, "
                f"got {self.log_level!r}."
            )
            raise ConfigurationError(msg)

    def base_url(self, port: int) -> str:
        """Base URL for a server bound to ``port``."""
        return f"http://{self.public_host}:{port}"
