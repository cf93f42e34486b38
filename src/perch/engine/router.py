"""Live route table for the bundled engine.

Unlike a compile-once router, routes may be added at any time, including
while the server is answering requests: perch applies registrations to a
running engine without a restart. Re-registering a ``(method, path)`` pair
replaces the earlier handler, so the last registration wins.
"""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from perch.engine.request import Request
from perch.engine.response import Response
from perch.errors import InvalidMethod, MethodNotAllowed, NotFound

type Handler = Callable[[Request], Response | Awaitable[Response]]

SUPPORTED_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"})


def normalize_path(path: str) -> str:
    """Canonical form used as the route table key.

    ``"api/health/"`` and ``"/api/health"`` map to the same key; the root
    path stays ``"/"``.
    """
    stripped = path.strip("/")
    return "/" + stripped if stripped else "/"


@dataclass(frozen=True, slots=True)
class Route:
    """A single registered handler."""

    method: str
    path: str
    handler: Handler


class Router:
    """Exact-path route table keyed by normalized path, then method.

    Usage::

        router = Router()
        router.add("get", "/api/health", handler)
        route = router.match("GET", "/api/health/")
    """

    __slots__ = ("_table",)

    def __init__(self) -> None:
        self._table: dict[str, dict[str, Route]] = {}

    def add(self, method: str, path: str, handler: Handler) -> Route:
        """Register ``handler`` for ``method`` on ``path``.

        Raises ``InvalidMethod`` for methods outside ``SUPPORTED_METHODS``.
        """
        verb = method.upper()
        if verb not in SUPPORTED_METHODS:
            raise InvalidMethod(method, SUPPORTED_METHODS)
        route = Route(method=verb, path=path, handler=handler)
        self._table.setdefault(normalize_path(path), {})[verb] = route
        return route

    def match(self, method: str, path: str) -> Route:
        """Find the route for a request.

        ``HEAD`` falls back to the ``GET`` handler.
        Raises ``NotFound`` if no route matches the path and
        ``MethodNotAllowed`` if the path matches but the method doesn't.
        """
        by_method = self._table.get(normalize_path(path))
        if not by_method:
            raise NotFound(f"No route matches {method} {path!r}")

        verb = method.upper()
        route = by_method.get(verb)
        if route is None and verb == "HEAD":
            route = by_method.get("GET")
        if route is None:
            raise MethodNotAllowed(frozenset(by_method))
        return route

    @property
    def routes(self) -> list[Route]:
        """All registered routes, in table order."""
        return [route for by_method in self._table.values() for route in by_method.values()]

    def __len__(self) -> int:
        return sum(len(by_method) for by_method in self._table.values())

    def __repr__(self) -> str:
        return f"Router(routes={len(self)})"
