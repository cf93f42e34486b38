"""Immutable HTTP request seen by engine route handlers.

Frozen metadata with async body access. Perch's own routes never read the
body, but handlers registered directly on an engine can.
"""

from __future__ import annotations

import json as json_module
from collections.abc import AsyncGenerator, Mapping
from dataclasses import dataclass, field
from typing import Any

from perch._internal.asgi import Receive, Scope


@dataclass(frozen=True, slots=True)
class Request:
    """An immutable HTTP request.

    ``method`` is upper-case as received from the server. Header names are
    lower-cased; repeated headers keep their first value.
    """

    method: str
    path: str
    headers: Mapping[str, str]

    # Private: ASGI receive callable for body streaming
    _receive: Receive

    # Private: mutable cache for the body bytes
    _cache: dict[str, Any] = field(default_factory=dict, repr=False, compare=False)

    async def body(self) -> bytes:
        """Read the full request body.

        The ASGI receive channel is consumed once; later calls return the
        cached bytes.
        """
        if "_body" in self._cache:
            return self._cache["_body"]
        chunks = [chunk async for chunk in self.stream()]
        result = b"".join(chunks)
        self._cache["_body"] = result
        return result

    async def stream(self) -> AsyncGenerator[bytes]:
        """Stream the request body in chunks."""
        while True:
            message = await self._receive()
            body = message.get("body", b"")
            if body:
                yield body
            if not message.get("more_body", False):
                break

    async def json(self) -> Any:
        """Parse the body as JSON. An empty body parses to ``None``."""
        raw = await self.body()
        if not raw:
            return None
        return json_module.loads(raw)

    @classmethod
    def from_asgi(cls, scope: Scope, receive: Receive) -> Request:
        """Create a Request from an ASGI scope and receive callable."""
        headers: dict[str, str] = {}
        for name, value in scope.get("headers", ()):
            headers.setdefault(name.decode("latin-1").lower(), value.decode("latin-1"))
        return cls(
            method=scope["method"].upper(),
            path=scope["path"],
            headers=headers,
            _receive=receive,
        )
