"""Test utilities for perch handles.

``RecordingEngine`` satisfies the ``Engine`` protocol without sockets. It
records every call in order, so replay order and live application can be
asserted directly::

    engines: list[RecordingEngine] = []
    controller = ServerController(engine_factory=lambda: RecordingEngine.track(engines))
    controller.add_json_route("get", "/a", {})
    await controller.start()
    assert engines[0].calls == [("route", "get", "/a"), ("listen", 0)]
"""

from pathlib import Path
from typing import Any

from perch.engine.request import Request
from perch.engine.response import Response
from perch.engine.router import SUPPORTED_METHODS, Handler
from perch.errors import BindError, InvalidMethod, StopError


class RecordingEngine:
    """In-memory engine that records calls.

    Args:
        assigned_port: Port reported by ``listen(0)``.
        fail_listen: Raise ``BindError`` from ``listen()``.
        fail_close: Raise ``StopError`` from the next ``close()`` calls
            (decremented per call).
    """

    __test__ = False  # Tell pytest this is not a test class

    def __init__(
        self,
        *,
        assigned_port: int = 49152,
        fail_listen: bool = False,
        fail_close: int = 0,
    ) -> None:
        self.assigned_port = assigned_port
        self.fail_listen = fail_listen
        self.fail_close = fail_close
        self.calls: list[tuple[Any, ...]] = []
        self.handlers: dict[tuple[str, str], Handler] = {}
        self.mounts: list[tuple[str, str]] = []
        self._port: int | None = None

    @classmethod
    def track(cls, registry: list["RecordingEngine"], **kwargs: Any) -> "RecordingEngine":
        """Create an engine and append it to ``registry``."""
        engine = cls(**kwargs)
        registry.append(engine)
        return engine

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def listening(self) -> bool:
        return self._port is not None

    def route(self, method: str, path: str, handler: Handler) -> None:
        if method.upper() not in SUPPORTED_METHODS:
            raise InvalidMethod(method, SUPPORTED_METHODS)
        self.calls.append(("route", method, path))
        self.handlers[(method.upper(), path)] = handler

    def serve_static(self, prefix: str, directory: str | Path) -> None:
        self.calls.append(("static", prefix, str(directory)))
        self.mounts.append((prefix, str(directory)))

    async def listen(self, port: int = 0) -> int:
        self.calls.append(("listen", port))
        if self.fail_listen:
            raise BindError(port, "Address already in use")
        self._port = port or self.assigned_port
        return self._port

    async def close(self) -> None:
        self.calls.append(("close",))
        if self.fail_close > 0:
            self.fail_close -= 1
            msg = "socket did not close"
            raise StopError(msg)
        self._port = None

    def respond(self, method: str, path: str) -> Response:
        """Call the handler registered at ``(method, path)`` with a bare request."""
        handler = self.handlers[(method.upper(), path)]

        async def _receive() -> dict[str, Any]:
            return {"type": "http.request", "body": b"", "more_body": False}

        request = Request(
            method=method.upper(),
            path=path,
            headers={},
            _receive=_receive,
        )
        result = handler(request)
        if not isinstance(result, Response):
            msg = f"Handler for {method} {path} returned {type(result).__name__}"
            raise TypeError(msg)
        return result
