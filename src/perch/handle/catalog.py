"""Static operation catalog for the server handle.

Every operation the handle publishes has a descriptor here: wire name,
description, and parameter list. External callers and agents discover
the handle through ``describe_handle()``; the dispatcher validates
incoming calls against the same descriptors.

The catalog is static data. Nothing here inspects ``ServerController``
at runtime.
"""

from dataclasses import dataclass
from typing import Any

# Descriptor type -> JSON Schema type
_SCHEMA_TYPES: dict[str, str] = {
    "integer": "integer",
    "string": "string",
}

SCHEMA_VERSION = "1.0.0"


@dataclass(frozen=True, slots=True)
class ParameterSpec:
    """One parameter of a published operation."""

    name: str
    type: str
    description: str
    optional: bool = False

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "description": self.description,
        }
        if self.optional:
            result["optional"] = True
        return result


@dataclass(frozen=True, slots=True)
class OperationSpec:
    """A published operation: wire name, controller attribute, parameters."""

    name: str
    attribute: str
    description: str
    parameters: tuple[ParameterSpec, ...] = ()
    agent_friendly: bool = True
    read_only: bool = False

    @property
    def required(self) -> tuple[str, ...]:
        return tuple(p.name for p in self.parameters if not p.optional)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "agentFriendly": self.agent_friendly,
            "description": self.description,
            "parameters": [p.to_dict() for p in self.parameters],
        }


HANDLE_METADATA: dict[str, Any] = {
    "name": "http",
    "description": "HTTP server handle — start/stop servers, add JSON/text routes, serve static files",
    "keywords": ["http", "server", "web", "routes", "api", "static"],
    "category": "web",
}

_METHOD = ParameterSpec("method", "string", "HTTP method: get, post, put, delete")

OPERATIONS: tuple[OperationSpec, ...] = (
    OperationSpec(
        name="start",
        attribute="start",
        description="Start the server. Port 0 assigns a random available port.",
        parameters=(
            ParameterSpec(
                "port", "integer", "Port to listen on (default 0 = random)", optional=True
            ),
        ),
    ),
    OperationSpec(
        name="stop",
        attribute="stop",
        description="Stop the running server.",
    ),
    OperationSpec(
        name="addJsonRoute",
        attribute="add_json_route",
        description="Add a declarative JSON endpoint. Route responds with the given JSON body.",
        parameters=(
            _METHOD,
            ParameterSpec("path", "string", 'URL path (e.g. "/api/health")'),
            ParameterSpec("responseBody", "object", "JSON value to return"),
            ParameterSpec(
                "statusCode", "integer", "HTTP status code (default 200)", optional=True
            ),
        ),
    ),
    OperationSpec(
        name="addTextRoute",
        attribute="add_text_route",
        description="Add a declarative text/HTML endpoint.",
        parameters=(
            _METHOD,
            ParameterSpec("path", "string", 'URL path (e.g. "/hello")'),
            ParameterSpec("responseText", "string", "Text/HTML to return"),
            ParameterSpec(
                "contentType",
                "string",
                'Content-Type header (default "text/plain")',
                optional=True,
            ),
        ),
    ),
    OperationSpec(
        name="addStaticDir",
        attribute="add_static_dir",
        description="Serve static files from a filesystem directory.",
        parameters=(
            ParameterSpec("urlPath", "string", 'URL prefix (e.g. "/static")'),
            ParameterSpec("fsPath", "string", "Absolute filesystem path to serve"),
        ),
    ),
    OperationSpec(
        name="getPort",
        attribute="get_port",
        description="Get the port the server is listening on.",
        read_only=True,
    ),
    OperationSpec(
        name="getURL",
        attribute="get_url",
        description="Get the base URL of the running server.",
        read_only=True,
    ),
    OperationSpec(
        name="isRunning",
        attribute="is_running",
        description="Check whether the server is currently running.",
        read_only=True,
    ),
)

_BY_NAME: dict[str, OperationSpec] = {op.name: op for op in OPERATIONS}


def get_operation(name: str) -> OperationSpec | None:
    """Look up an operation by wire name. Returns ``None`` if not published."""
    return _BY_NAME.get(name)


def data_source_schema() -> dict[str, Any]:
    """Schema of the state behind the handle."""
    return {
        "type": "http",
        "version": SCHEMA_VERSION,
        "operations": [op.name for op in OPERATIONS if not op.read_only],
    }


def input_schema(operation: OperationSpec) -> dict[str, Any]:
    """JSON Schema for an operation's arguments (MCP ``inputSchema`` shape)."""
    properties: dict[str, Any] = {}
    for param in operation.parameters:
        prop: dict[str, Any] = {"description": param.description}
        # "object" accepts any JSON value for response bodies
        if param.type != "object":
            prop["type"] = _SCHEMA_TYPES[param.type]
        properties[param.name] = prop

    result: dict[str, Any] = {"type": "object", "properties": properties}
    if operation.required:
        result["required"] = list(operation.required)
    return result


def describe_handle() -> dict[str, Any]:
    """The full serializable catalog: handle metadata, schema, operations."""
    return {
        **HANDLE_METADATA,
        "schema": data_source_schema(),
        "methods": {op.name: op.to_dict() for op in OPERATIONS},
    }


def list_tools() -> list[dict[str, Any]]:
    """Agent-friendly operations in MCP ``tools/list`` format."""
    return [
        {
            "name": op.name,
            "description": op.description,
            "inputSchema": input_schema(op),
        }
        for op in OPERATIONS
        if op.agent_friendly
    ]
