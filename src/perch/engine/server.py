"""uvicorn-backed engine.

``HTTPEngine`` wraps an ``EngineApp`` and serves it with ``uvicorn.Server``
inside the caller's event loop. The listening socket is bound by the
engine before uvicorn starts, which gives two guarantees uvicorn's own
``host``/``port`` binding does not: bind failures surface as ``BindError``
from ``listen()`` instead of a ``SystemExit`` inside the serve task, and
the OS-assigned port is known when port 0 is requested.

uvicorn normally installs its own SIGINT/SIGTERM handlers while serving.
An engine is embedded in a host process that may run several of them, so
``EmbeddedServer`` leaves the process signal table untouched; shutdown
only happens through ``close()``.
"""

import asyncio
import contextlib
import logging
import socket
from collections.abc import Generator
from pathlib import Path

import uvicorn

from perch.config import HandleConfig
from perch.engine.app import EngineApp
from perch.engine.router import Handler, Route
from perch.engine.static import StaticFiles
from perch.errors import BindError, StopError

logger = logging.getLogger("perch.engine")

# How often listen() checks whether uvicorn finished its startup
_STARTUP_POLL_INTERVAL = 0.01


class EmbeddedServer(uvicorn.Server):
    """``uvicorn.Server`` that never touches process signal handlers."""

    @contextlib.contextmanager
    def capture_signals(self) -> Generator[None]:
        yield


class HTTPEngine:
    """Engine implementation serving an ``EngineApp`` over TCP.

    Usage::

        engine = HTTPEngine()
        engine.route("get", "/api/health", handler)
        port = await engine.listen(0)
        ...
        await engine.close()
    """

    __slots__ = ("_app", "_config", "_port", "_serve_task", "_server", "_socket")

    def __init__(self, config: HandleConfig | None = None) -> None:
        self._config = config or HandleConfig()
        self._app = EngineApp(self._config)
        self._server: EmbeddedServer | None = None
        self._serve_task: asyncio.Task[None] | None = None
        self._socket: socket.socket | None = None
        self._port: int | None = None

    @property
    def app(self) -> EngineApp:
        return self._app

    @property
    def port(self) -> int | None:
        return self._port

    @property
    def listening(self) -> bool:
        return self._serve_task is not None

    @property
    def serving(self) -> bool:
        """False once uvicorn has exited, even if ``close()`` was not called."""
        return self._serve_task is not None and not self._serve_task.done()

    def route(self, method: str, path: str, handler: Handler) -> Route:
        return self._app.route(method, path, handler)

    def serve_static(self, prefix: str, directory: str | Path) -> StaticFiles:
        return self._app.serve_static(prefix, directory)

    async def listen(self, port: int = 0) -> int:
        """Bind ``port`` and serve until ``close()``.

        Returns once uvicorn has started accepting connections.
        """
        if self._serve_task is not None:
            msg = f"Engine is already listening on port {self._port}"
            raise RuntimeError(msg)

        sock = self._bind(port)
        bound = sock.getsockname()[1]

        config = uvicorn.Config(
            self._app,
            host=self._config.host,
            port=bound,
            backlog=self._config.backlog,
            lifespan="off",
            log_config=None,
            log_level=self._config.log_level,
            access_log=self._config.access_log,
        )
        server = EmbeddedServer(config)
        task = asyncio.create_task(server.serve(sockets=[sock]), name=f"perch-engine:{bound}")

        while not server.started:
            if task.done():
                sock.close()
                reason = "server exited during startup"
                cause = None if task.cancelled() else task.exception()
                if cause is not None:
                    reason = str(cause) or type(cause).__name__
                raise BindError(port, reason) from cause
            await asyncio.sleep(_STARTUP_POLL_INTERVAL)

        self._server = server
        self._serve_task = task
        self._socket = sock
        self._port = bound
        logger.debug("engine listening on %s:%d", self._config.host, bound)
        return bound

    async def close(self) -> None:
        """Stop serving and release the socket.

        A no-op when not listening. Once called, the engine is released
        even if shutdown raised, so a second ``close()`` returns cleanly.
        """
        task = self._serve_task
        if task is None or self._server is None:
            return

        port = self._port
        self._server.should_exit = True
        try:
            await task
        except Exception as exc:
            msg = f"Engine on port {port} did not shut down cleanly: {exc}"
            raise StopError(msg) from exc
        finally:
            if self._socket is not None:
                self._socket.close()
            self._server = None
            self._serve_task = None
            self._socket = None
            self._port = None
        logger.debug("engine on port %s closed", port)

    def _bind(self, port: int) -> socket.socket:
        """Create a listening socket, translating OS failures to ``BindError``."""
        family = socket.AF_INET6 if ":" in self._config.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._config.host, port))
            sock.listen(self._config.backlog)
        except (OSError, OverflowError) as exc:
            sock.close()
            raise BindError(port, getattr(exc, "strerror", None) or str(exc)) from exc
        return sock

    def __repr__(self) -> str:
        state = f"port={self._port}" if self._port is not None else "idle"
        return f"HTTPEngine({state}, app={self._app!r})"
