"""The server handle: state, controller, catalog, and serializable dispatch."""

from perch.handle.controller import ServerController
from perch.handle.dispatch import HandleDispatcher
from perch.handle.state import RouteDefinition, RouteKind, ServerState, StaticMount

__all__ = [
    "HandleDispatcher",
    "RouteDefinition",
    "RouteKind",
    "ServerController",
    "ServerState",
    "StaticMount",
]
