"""Perch — a remote-controllable handle over an HTTP server.

Start and stop a server, register JSON/text routes, and mount static
directories through calls that take and return plain serializable values.

Basic usage::

    from perch import ServerController

    server = ServerController()
    server.add_json_route("get", "/api/health", {"status": "ok"})
    info = await server.start()
    print(info["url"])
    await server.stop()

Across a process boundary::

    from perch import HandleDispatcher

    dispatcher = HandleDispatcher(ServerController())
    await dispatcher.receive("start", {"args": [0]})
"""

__version__ = "0.1.0"
__all__ = [
    "AlreadyRunning",
    "BindError",
    "ConfigurationError",
    "HandleConfig",
    "HandleDispatcher",
    "HandleError",
    "InvalidArguments",
    "InvalidMethod",
    "PerchError",
    "RouteDefinition",
    "ServerController",
    "ServerState",
    "StaticMount",
    "StopError",
    "UnknownOperation",
]

_ERRORS = frozenset(
    {
        "AlreadyRunning",
        "BindError",
        "ConfigurationError",
        "HandleError",
        "InvalidArguments",
        "InvalidMethod",
        "PerchError",
        "StopError",
        "UnknownOperation",
    }
)


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import perch`` fast; uvicorn is only imported on first start.
    """
    if name == "ServerController":
        from perch.handle.controller import ServerController

        return ServerController

    if name == "HandleDispatcher":
        from perch.handle.dispatch import HandleDispatcher

        return HandleDispatcher

    if name in ("RouteDefinition", "ServerState", "StaticMount"):
        from perch.handle import state as _state

        return getattr(_state, name)

    if name == "HandleConfig":
        from perch.config import HandleConfig

        return HandleConfig

    if name in _ERRORS:
        from perch import errors as _errors

        return getattr(_errors, name)

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
