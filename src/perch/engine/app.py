"""ASGI application behind the bundled engine.

Holds a live ``Router`` and an ordered list of ``StaticFiles`` mounts.
Both can grow while requests are being served. Each request walks the
static mounts in mount order, then falls through to the router.
"""

import json as json_module
import logging
from pathlib import Path
from typing import Any

from perch._internal.asgi import Receive, Scope, Send
from perch._internal.invoke import invoke
from perch.config import HandleConfig
from perch.engine.request import Request
from perch.engine.response import Response, json_response, text_response
from perch.engine.router import Handler, Route, Router
from perch.engine.sender import send_response
from perch.engine.static import Next, StaticFiles
from perch.errors import HTTPError

logger = logging.getLogger("perch.engine")


def to_response(value: Any) -> Response:
    """Convert a handler's return value to a Response.

    ``Response`` passes through, ``str`` becomes ``text/plain``,
    ``bytes`` becomes ``application/octet-stream``, ``dict`` / ``list``
    become JSON.
    """
    match value:
        case Response():
            return value
        case str():
            return text_response(value)
        case bytes():
            return Response(body=value, content_type="application/octet-stream")
        case dict() | list():
            return json_response(value)
    msg = f"Handler returned unsupported type {type(value).__name__!r}"
    raise TypeError(msg)


class EngineApp:
    """ASGI 3 application with runtime route and static-mount registration.

    Usage::

        app = EngineApp()
        app.route("get", "/api/health", lambda request: json_response({"status": "ok"}))
        app.serve_static("/static", "/srv/site")
    """

    __slots__ = ("_config", "_mounts", "_router")

    def __init__(self, config: HandleConfig | None = None) -> None:
        self._config = config or HandleConfig()
        self._router = Router()
        self._mounts: list[StaticFiles] = []

    @property
    def router(self) -> Router:
        return self._router

    @property
    def mounts(self) -> tuple[StaticFiles, ...]:
        return tuple(self._mounts)

    def route(self, method: str, path: str, handler: Handler) -> Route:
        """Register ``handler`` at ``(method, path)``.

        Raises ``InvalidMethod`` for methods the router does not support.
        """
        route = self._router.add(method, path, handler)
        logger.debug("route %s %s", route.method, path)
        return route

    def serve_static(self, prefix: str, directory: str | Path) -> StaticFiles:
        """Serve files from ``directory`` under the URL ``prefix``."""
        mount = StaticFiles(
            directory,
            prefix,
            index=self._config.static_index,
            cache_control=self._config.static_cache_control,
        )
        self._mounts.append(mount)
        logger.debug("static %s -> %s", mount.prefix, mount.directory)
        return mount

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        """ASGI entry point."""
        if scope["type"] == "lifespan":
            await self._handle_lifespan(receive, send)
            return
        if scope["type"] != "http":
            return

        request = Request.from_asgi(scope, receive)
        try:
            response = await self._dispatch(request)
        except HTTPError as exc:
            logger.debug("%d %s %s — %s", exc.status, request.method, request.path, exc.detail)
            response = Response(body=exc.detail or f"Error {exc.status}", status=exc.status)
            for name, value in exc.headers:
                response = response.with_header(name, value)
        except json_module.JSONDecodeError as exc:
            logger.debug("400 %s %s — %s", request.method, request.path, exc)
            response = Response(body="Invalid JSON body", status=400)
        except Exception:
            logger.exception("500 %s %s", request.method, request.path)
            response = Response(body="Internal Server Error", status=500)

        await send_response(response, send, method=request.method)

    async def _dispatch(self, request: Request) -> Response:
        """Run the request through the static mounts, then the router."""

        async def route(req: Request) -> Response:
            match = self._router.match(req.method, req.path)
            return to_response(await invoke(match.handler, req))

        handler: Next = route
        # Snapshot: a mount added mid-request applies from the next request on
        for mount in reversed(tuple(self._mounts)):

            async def make_next(req: Request, _mount: StaticFiles = mount, _next: Next = handler) -> Response:
                return await _mount(req, _next)

            handler = make_next

        return await handler(request)

    async def _handle_lifespan(self, receive: Receive, send: Send) -> None:
        """Acknowledge lifespan startup and shutdown; there are no hooks."""
        while True:
            message = await receive()
            if message["type"] == "lifespan.startup":
                await send({"type": "lifespan.startup.complete"})
            elif message["type"] == "lifespan.shutdown":
                await send({"type": "lifespan.shutdown.complete"})
                return

    def __repr__(self) -> str:
        return f"EngineApp(routes={len(self._router)}, mounts={len(self._mounts)})"
