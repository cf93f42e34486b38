"""Perch exception hierarchy.

Shared across the handle, the dispatcher, and the bundled engine so every
module raises and catches the same types. Handle-level errors carry a
``to_dict()`` view because they cross the serializable call boundary.
"""

from dataclasses import dataclass
from typing import Any


class PerchError(Exception):
    """Base for all perch-specific errors."""

    def to_dict(self) -> dict[str, Any]:
        """Serializable form used in dispatch error envelopes."""
        return {"type": type(self).__name__, "message": str(self)}


class ConfigurationError(PerchError):
    """Raised when a ``HandleConfig`` value is invalid."""


# -- Handle lifecycle --


class HandleError(PerchError):
    """Base for errors raised by ``ServerController`` operations."""


class AlreadyRunning(HandleError):  # noqa: N818
    """``start()`` was called while the server is running."""

    def __init__(self, port: int | None = None) -> None:
        self.port = port
        detail = f" on port {port}" if port is not None else ""
        super().__init__(f"Server is already running{detail}; call stop() first")


class BindError(HandleError):
    """The engine could not bind the requested port."""

    def __init__(self, port: int, reason: str = "") -> None:
        self.port = port
        self.reason = reason
        msg = f"Could not bind port {port}"
        if reason:
            msg = f"{msg}: {reason}"
        super().__init__(msg)


class StopError(HandleError):
    """The engine failed to release its listening socket cleanly."""


class InvalidMethod(HandleError):  # noqa: N818
    """The engine does not support an HTTP method.

    Raised when a route is applied to an engine, never at registration.
    """

    def __init__(self, method: str, supported: frozenset[str] = frozenset()) -> None:
        self.method = method
        self.supported = supported
        msg = f"Unsupported HTTP method: {method!r}"
        if supported:
            msg = f"{msg}. Supported methods: {', '.join(sorted(supported))}"
        super().__init__(msg)


# -- Serializable dispatch --


class DispatchError(PerchError):
    """Base for errors raised at the serializable call boundary."""


class UnknownOperation(DispatchError):  # noqa: N818
    """No operation with this name is published by the handle."""

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Unknown operation: {operation!r}")


class InvalidArguments(DispatchError):  # noqa: N818
    """Arguments failed validation against the operation descriptor."""


# -- Engine --


@dataclass(frozen=True, slots=True)
class HTTPError(PerchError):
    """An error that maps directly to an HTTP status code.

    Raised by the engine router and static file serving. ``EngineApp``
    catches these and answers with a plain-text response.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no route or static file matched the request path."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class MethodNotAllowed(HTTPError):  # noqa: N818
    """405 — the path is routed, but not for this HTTP method.

    Includes an ``Allow`` header listing the valid methods.
    """

    def __init__(self, allowed: frozenset[str], detail: str = "") -> None:
        allow_value = ", ".join(sorted(allowed))
        default_detail = f"Method not allowed. Allowed methods: {allow_value}"
        super().__init__(
            status=405,
            detail=detail or default_detail,
            headers=(("Allow", allow_value),),
        )
