"""Process-local state for one handle.

``RouteDefinition`` and ``StaticMount`` are frozen descriptors: pure data,
replayable against any number of engines. ``ServerState`` owns the two
registration queues plus the live engine reference.

Invariant: ``running`` is true iff an engine is attached iff a port is
bound. The queues are append-only and survive detach.
"""

import copy
from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any

from perch.engine.protocol import Engine


class RouteKind(StrEnum):
    JSON = "json"
    TEXT = "text"


@dataclass(frozen=True, slots=True)
class RouteDefinition:
    """Declarative description of one static-response endpoint.

    Build with ``RouteDefinition.json()`` or ``RouteDefinition.text()``
    so the method is normalized and the JSON body is detached from the
    caller's object.
    """

    kind: RouteKind
    method: str
    path: str
    response_body: Any = None
    status_code: int = 200
    response_text: str = ""
    content_type: str = "text/plain"

    @classmethod
    def json(
        cls,
        method: str,
        path: str,
        response_body: Any,
        status_code: int = 200,
    ) -> "RouteDefinition":
        return cls(
            kind=RouteKind.JSON,
            method=method.lower(),
            path=path,
            response_body=copy.deepcopy(response_body),
            status_code=status_code,
        )

    @classmethod
    def text(
        cls,
        method: str,
        path: str,
        response_text: str,
        content_type: str = "text/plain",
    ) -> "RouteDefinition":
        return cls(
            kind=RouteKind.TEXT,
            method=method.lower(),
            path=path,
            response_text=response_text,
            content_type=content_type,
        )

    def summary(self) -> dict[str, str]:
        """The serializable result returned by ``add*Route`` operations."""
        return {"method": self.method, "path": self.path, "kind": str(self.kind)}


@dataclass(frozen=True, slots=True)
class StaticMount:
    """A filesystem directory exposed under a URL prefix.

    ``fs_path`` is not checked here; a missing directory only shows up as
    404s once the engine serves the mount.
    """

    url_path: str
    fs_path: str

    def summary(self) -> dict[str, str]:
        """The serializable result returned by ``addStaticDir``."""
        return {"urlPath": self.url_path, "fsPath": self.fs_path}


@dataclass(slots=True)
class ServerState:
    """Lifecycle flag, bound port, live engine, and the registration queues."""

    engine: Engine | None = None
    port: int | None = None
    _routes: list[RouteDefinition] = field(default_factory=list, repr=False)
    _static_mounts: list[StaticMount] = field(default_factory=list, repr=False)

    @property
    def running(self) -> bool:
        return self.engine is not None

    @property
    def routes(self) -> tuple[RouteDefinition, ...]:
        return tuple(self._routes)

    @property
    def static_mounts(self) -> tuple[StaticMount, ...]:
        return tuple(self._static_mounts)

    def add_route(self, route: RouteDefinition) -> None:
        self._routes.append(route)

    def add_static_mount(self, mount: StaticMount) -> None:
        self._static_mounts.append(mount)

    def attach(self, engine: Engine, port: int) -> None:
        """Record a started engine. Both references are set together."""
        self.engine = engine
        self.port = port

    def detach(self) -> None:
        """Drop the live engine and port. Queues are untouched."""
        self.engine = None
        self.port = None
