"""Engine capability interface.

The handle never touches sockets, routing or file serving itself. It
talks to an engine through this protocol, created by a zero-argument
factory, so tests and embedders can substitute their own::

    controller = ServerController(engine_factory=RecordingEngine)

No base class required. The handle checks the shape, not the lineage.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Protocol, runtime_checkable

from perch.engine.router import Handler


@runtime_checkable
class Engine(Protocol):
    """An HTTP server the handle can configure, start, and stop.

    ``route`` raises ``InvalidMethod`` for methods it cannot serve.
    ``listen`` raises ``BindError`` when the port cannot be bound and
    returns the bound port (the OS-assigned one when ``port`` is 0).
    ``close`` raises ``StopError`` when the socket is not released cleanly.
    """

    @property
    def port(self) -> int | None: ...

    def route(self, method: str, path: str, handler: Handler) -> object: ...

    def serve_static(self, prefix: str, directory: str | Path) -> object: ...

    async def listen(self, port: int = 0) -> int: ...

    async def close(self) -> None: ...


type EngineFactory = Callable[[], Engine]
