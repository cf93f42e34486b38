"""Static directory serving for the bundled engine.

Each mount serves files from one directory under one URL prefix and
falls through to the next layer (another mount, then the router) for
paths it does not own or files that do not exist.
"""

import mimetypes
from collections.abc import Awaitable, Callable
from enum import Enum, auto
from pathlib import Path

import anyio.to_thread

from perch.engine.request import Request
from perch.engine.response import Response

type Next = Callable[[Request], Awaitable[Response]]


class _Lookup(Enum):
    FORBIDDEN = auto()
    MISSING = auto()
    INDEX = auto()
    FILE = auto()


class StaticFiles:
    """Serve files from ``directory`` for paths under ``prefix``.

    The directory is not checked when the mount is created; a directory
    that does not exist simply never matches, so requests fall through.

    Security: resolves symlinks and verifies the final path
    is within the configured directory to prevent path traversal.

    Usage::

        mount = StaticFiles("/srv/site", prefix="/static")
        response = await mount(request, next)
    """

    __slots__ = ("_cache_control", "_directory", "_index", "_prefix")

    def __init__(
        self,
        directory: str | Path,
        prefix: str = "/static",
        *,
        index: str = "index.html",
        cache_control: str = "public, max-age=0",
    ) -> None:
        self._directory = Path(directory).resolve()
        self._index = index
        self._cache_control = cache_control

        # Normalize prefix: ensure leading slash, strip trailing.
        # Root prefix "/" normalizes to "" so every path is a candidate.
        stripped = "/" + prefix.strip("/")
        self._prefix = stripped if stripped != "/" else ""

    @property
    def directory(self) -> Path:
        return self._directory

    @property
    def prefix(self) -> str:
        return self._prefix or "/"

    async def __call__(self, request: Request, next: Next) -> Response:
        """Serve a static file or fall through."""
        if request.method not in ("GET", "HEAD"):
            return await next(request)

        path = request.path

        if self._prefix:
            if not path.startswith(self._prefix + "/") and path != self._prefix:
                return await next(request)
            relative = path[len(self._prefix) :].lstrip("/")
        else:
            relative = path.lstrip("/")

        kind, file_path = await anyio.to_thread.run_sync(self._locate, relative)
        match kind:
            case _Lookup.FORBIDDEN:
                return Response(body="Forbidden", status=403)
            case _Lookup.MISSING:
                return await next(request)
            case _Lookup.INDEX if not path.endswith("/"):
                # "/static" must become "/static/" so relative links inside
                # the index resolve against the directory.
                return Response(body="", status=301).with_header("Location", path + "/")

        return await self._serve_file(file_path)

    def _locate(self, relative: str) -> tuple[_Lookup, Path]:
        """Map a prefix-relative path to a file. Runs in a worker thread."""
        try:
            file_path = (self._directory / relative).resolve() if relative else self._directory
        except (OSError, ValueError):
            # Embedded NUL bytes or unresolvable links
            return _Lookup.MISSING, self._directory
        if not file_path.is_relative_to(self._directory):
            return _Lookup.FORBIDDEN, file_path

        if file_path.is_dir():
            index_path = file_path / self._index
            if index_path.is_file():
                return _Lookup.INDEX, index_path
            return _Lookup.MISSING, file_path

        if file_path.is_file():
            return _Lookup.FILE, file_path
        return _Lookup.MISSING, file_path

    async def _serve_file(self, file_path: Path) -> Response:
        """Read a file and build a response."""
        content_type, _ = mimetypes.guess_type(str(file_path))
        if content_type is None:
            content_type = "application/octet-stream"

        body = await anyio.to_thread.run_sync(file_path.read_bytes)

        return Response(body=body, content_type=content_type).with_header(
            "Cache-Control", self._cache_control
        )

    def __repr__(self) -> str:
        return f"StaticFiles(prefix={self.prefix!r}, directory={str(self._directory)!r})"
