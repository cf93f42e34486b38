"""ServerController — the remote-controllable server handle.

Every public method takes and returns plain serializable values so the
handle can be driven through ``HandleDispatcher`` across a process
boundary.

Registration always appends to the queues in ``ServerState``. When an
engine is live the registration is also applied to it immediately;
otherwise it waits for ``start()``, which replays both queues in
insertion order against a fresh engine.
"""

import logging
from typing import Any

import anyio

from perch.config import HandleConfig
from perch.engine.protocol import Engine, EngineFactory
from perch.engine.request import Request
from perch.engine.response import Response, json_response, text_response
from perch.engine.router import Handler
from perch.errors import AlreadyRunning, BindError, HandleError, StopError
from perch.handle.state import RouteDefinition, RouteKind, ServerState, StaticMount

logger = logging.getLogger("perch.handle")


def build_response(route: RouteDefinition) -> Response:
    """The fixed response a route definition answers with."""
    if route.kind is RouteKind.JSON:
        return json_response(route.response_body, status=route.status_code)
    return text_response(route.response_text, content_type=route.content_type)


def make_handler(route: RouteDefinition) -> Handler:
    """Engine handler answering every request with ``route``'s response."""

    def handler(_request: Request) -> Response:
        return build_response(route)

    handler.__name__ = f"{route.kind}_{route.method}_{route.path}"
    return handler


def apply_route(engine: Engine, route: RouteDefinition) -> None:
    """Register ``route`` on ``engine``.

    Raises ``InvalidMethod`` if the engine does not support the method.
    """
    engine.route(route.method, route.path, make_handler(route))


def apply_static_mount(engine: Engine, mount: StaticMount) -> None:
    engine.serve_static(mount.url_path, mount.fs_path)


class ServerController:
    """Handle over one HTTP server instance.

    Usage::

        server = ServerController()
        server.add_json_route("GET", "/api/health", {"status": "ok"})
        info = await server.start()          # {"port": 51234, "url": "http://localhost:51234"}
        server.add_text_route("post", "/hello", "hi")   # live, no restart
        await server.stop()

    Args:
        engine_factory: Zero-argument callable returning a fresh ``Engine``.
            Called once per ``start()``. Defaults to the uvicorn-backed
            ``HTTPEngine``, imported on first start.
        config: Shared configuration for URLs and the default engine.
        state: Existing state to adopt; a new empty one by default.
    """

    __slots__ = ("_config", "_engine_factory", "_lifecycle_lock", "_state")

    def __init__(
        self,
        engine_factory: EngineFactory | None = None,
        *,
        config: HandleConfig | None = None,
        state: ServerState | None = None,
    ) -> None:
        self._config = config or HandleConfig()
        self._engine_factory = engine_factory or self._default_engine
        self._state = state if state is not None else ServerState()
        self._lifecycle_lock: anyio.Lock | None = None  # Created lazily on first use

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def config(self) -> HandleConfig:
        return self._config

    # -- Lifecycle --

    async def start(self, port: int = 0) -> dict[str, Any]:
        """Create an engine, replay registrations, and listen on ``port``.

        Port 0 lets the OS pick a free port. Returns ``{"port", "url"}``.

        Raises ``AlreadyRunning`` if started, ``BindError`` if the port
        cannot be bound, and ``InvalidMethod`` if a queued route uses a
        method the engine rejects. On any failure the handle stays
        stopped and no engine is retained.
        """
        async with self._lock():
            state = self._state
            if state.running:
                raise AlreadyRunning(state.port)

            engine = self._engine_factory()
            routes_applied, mounts_applied = self._replay(engine, 0, 0)

            try:
                bound = await engine.listen(port)
            except HandleError:
                raise
            except OSError as exc:
                raise BindError(port, exc.strerror or str(exc)) from exc

            # Registrations that arrived while listen() was pending were
            # only queued; bring the new engine up to date before exposing it.
            try:
                self._replay(engine, routes_applied, mounts_applied)
            except HandleError:
                try:
                    await engine.close()
                except StopError:
                    logger.warning("engine on port %s failed to stop after a failed start", bound)
                raise

            state.attach(engine, bound)
            logger.info("server listening on %s", self._config.base_url(bound))
            return {"port": bound, "url": self._config.base_url(bound)}

    async def stop(self) -> None:
        """Close the live engine. A no-op when not running.

        Queued routes and static mounts are kept, so a later ``start()``
        serves them again. Raises ``StopError`` if the engine fails to
        release its socket; the handle then stays running with the engine
        attached, so ``stop()`` can be retried.
        """
        async with self._lock():
            state = self._state
            if state.engine is None:
                return

            port = state.port
            try:
                await state.engine.close()
            except StopError:
                logger.warning("server on port %s failed to stop", port)
                raise
            except Exception as exc:
                logger.warning("server on port %s failed to stop", port)
                msg = f"Server on port {port} did not shut down cleanly: {exc}"
                raise StopError(msg) from exc

            state.detach()
            logger.info("server on port %s stopped", port)

    # -- Registration --

    def add_json_route(
        self,
        method: str,
        path: str,
        response_body: Any,
        status_code: int = 200,
    ) -> dict[str, str]:
        """Add a route that answers with ``response_body`` as JSON.

        Usable before or after ``start()``; a live server picks the route
        up immediately. The method is lower-cased and not validated here;
        a method the engine rejects raises ``InvalidMethod`` when applied.
        """
        route = RouteDefinition.json(method, path, response_body, status_code)
        return self._register(route)

    def add_text_route(
        self,
        method: str,
        path: str,
        response_text: str,
        content_type: str = "text/plain",
    ) -> dict[str, str]:
        """Add a route that answers 200 with ``response_text``."""
        route = RouteDefinition.text(method, path, response_text, content_type)
        return self._register(route)

    def add_static_dir(self, url_path: str, fs_path: str) -> dict[str, str]:
        """Serve files from ``fs_path`` under ``url_path``.

        On a live server the mount is active when this returns.
        """
        mount = StaticMount(url_path=url_path, fs_path=fs_path)
        self._state.add_static_mount(mount)
        logger.debug("queued static %s -> %s", url_path, fs_path)
        if self._state.engine is not None:
            apply_static_mount(self._state.engine, mount)
        return mount.summary()

    # -- Accessors --

    def get_port(self) -> int | None:
        return self._state.port

    def get_url(self) -> str | None:
        if self._state.port is None:
            return None
        return self._config.base_url(self._state.port)

    def is_running(self) -> bool:
        return self._state.running

    # -- Internals --

    def _register(self, route: RouteDefinition) -> dict[str, str]:
        self._state.add_route(route)
        logger.debug("queued %s route %s %s", route.kind, route.method, route.path)
        if self._state.engine is not None:
            apply_route(self._state.engine, route)
        return route.summary()

    def _replay(self, engine: Engine, routes_from: int, mounts_from: int) -> tuple[int, int]:
        """Apply queued items from the given offsets; return the new offsets."""
        routes = self._state.routes
        mounts = self._state.static_mounts
        for route in routes[routes_from:]:
            apply_route(engine, route)
        for mount in mounts[mounts_from:]:
            apply_static_mount(engine, mount)
        return len(routes), len(mounts)

    def _lock(self) -> anyio.Lock:
        # Lazy: can't create in __init__ before an event loop exists.
        if self._lifecycle_lock is None:
            self._lifecycle_lock = anyio.Lock()
        return self._lifecycle_lock

    def _default_engine(self) -> Engine:
        from perch.engine.server import HTTPEngine

        return HTTPEngine(self._config)

    def __repr__(self) -> str:
        state = self._state
        status = f"port={state.port}" if state.running else "stopped"
        return (
            f"ServerController({status}, routes={len(state.routes)}, "
            f"static_mounts={len(state.static_mounts)})"
        )
