"""HTTP response with chainable .with_*() transformation API.

Each transformation returns a new Response. Immutable by convention,
built incrementally by design.
"""

import json as json_module
from collections.abc import Mapping
from dataclasses import dataclass, replace
from typing import Any


@dataclass(frozen=True, slots=True)
class Response:
    """An HTTP response built through immutable transformations."""

    body: str | bytes = ""
    status: int = 200
    content_type: str = "text/plain; charset=utf-8"
    headers: tuple[tuple[str, str], ...] = ()

    # -- Chainable transformations --

    def with_status(self, status: int) -> "Response":
        """Return a new Response with a different status code."""
        return replace(self, status=status)

    def with_header(self, name: str, value: str) -> "Response":
        """Return a new Response with an additional header."""
        return replace(self, headers=(*self.headers, (name, value)))

    def with_headers(self, headers: Mapping[str, str]) -> "Response":
        """Return a new Response with additional headers."""
        return replace(self, headers=(*self.headers, *headers.items()))

    # -- Body helpers --

    @property
    def body_bytes(self) -> bytes:
        """Body as bytes."""
        if isinstance(self.body, str):
            return self.body.encode("utf-8")
        return self.body

    @property
    def text(self) -> str:
        """Body as string."""
        if isinstance(self.body, bytes):
            return self.body.decode("utf-8")
        return self.body


def json_response(data: Any, status: int = 200) -> Response:
    """Serialize ``data`` compactly as an ``application/json`` response.

    Raises ``ValueError`` for NaN or infinite floats, which JSON cannot carry.
    """
    payload = json_module.dumps(
        data, separators=(",", ":"), ensure_ascii=False, allow_nan=False
    )
    return Response(
        body=payload,
        status=status,
        content_type="application/json; charset=utf-8",
    )


def text_response(text: str, content_type: str = "text/plain", status: int = 200) -> Response:
    """Plain text response.

    ``text/*`` content types without an explicit charset get
    ``charset=utf-8`` appended, since the body is always UTF-8 encoded.
    """
    if content_type.startswith("text/") and "charset=" not in content_type.lower():
        content_type = f"{content_type}; charset=utf-8"
    return Response(body=text, status=status, content_type=content_type)
