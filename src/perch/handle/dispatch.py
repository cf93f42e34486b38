"""Serializable command dispatch for the server handle.

``HandleDispatcher`` is the boundary between an actor/RPC transport and a
``ServerController``. Calls arrive as an operation name plus plain data
(``{"args": [...]}`` and/or ``{"kwargs": {...}}``), are validated against
the static catalog, and only then reach the controller.

Usage::

    dispatcher = HandleDispatcher(ServerController())
    await dispatcher.receive("addJsonRoute", {"args": ["get", "/api/health", {"status": "ok"}]})
    info = await dispatcher.receive("start", {"kwargs": {"port": 0}})

    # Envelope form: never raises for handle errors
    reply = await dispatcher.handle_message({"id": 7, "operation": "isRunning"})
    # {"id": 7, "ok": True, "result": True}
"""

import logging
import math
from collections.abc import Mapping, Sequence
from typing import Any

from perch._internal.invoke import invoke
from perch.errors import InvalidArguments, PerchError, UnknownOperation
from perch.handle.catalog import OperationSpec, describe_handle, get_operation, list_tools
from perch.handle.controller import ServerController

logger = logging.getLogger("perch.handle")


def is_serializable(value: Any) -> bool:
    """True if ``value`` is built only from JSON-representable data.

    Accepts ``None``, ``bool``, ``int``, finite ``float``, ``str``, and
    lists, tuples and string-keyed dicts of those. NaN and infinities have
    no JSON representation.
    """
    match value:
        case float():
            return math.isfinite(value)
        case None | bool() | int() | str():
            return True
        case list() | tuple():
            return all(is_serializable(item) for item in value)
        case dict():
            return all(isinstance(k, str) and is_serializable(v) for k, v in value.items())
    return False


def _check_type(operation: str, name: str, expected: str, value: Any) -> None:
    """Raise ``InvalidArguments`` if ``value`` does not match the descriptor type."""
    match expected:
        case "integer":
            ok = isinstance(value, int) and not isinstance(value, bool)
        case "string":
            ok = isinstance(value, str)
        case _:
            ok = is_serializable(value)
    if not ok:
        msg = f"{operation}: {name!r} must be {expected}, got {type(value).__name__}"
        raise InvalidArguments(msg)


def bind_arguments(
    spec: OperationSpec,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] | None = None,
) -> list[Any]:
    """Validate wire arguments and return them in parameter order.

    Positional ``args`` fill parameters first; ``kwargs`` use wire
    parameter names (``responseBody``, not ``response_body``). Omitted
    optional parameters are left out so the controller's defaults apply.
    """
    kwargs = kwargs or {}
    params = spec.parameters

    if len(args) > len(params):
        msg = f"{spec.name} takes at most {len(params)} argument(s), got {len(args)}"
        raise InvalidArguments(msg)

    values: dict[str, Any] = {p.name: value for p, value in zip(params, args, strict=False)}
    known = {p.name for p in params}
    for name, value in kwargs.items():
        if name not in known:
            msg = f"{spec.name}: unknown parameter {name!r}"
            raise InvalidArguments(msg)
        if name in values:
            msg = f"{spec.name}: parameter {name!r} given twice"
            raise InvalidArguments(msg)
        values[name] = value

    missing = [name for name in spec.required if name not in values]
    if missing:
        msg = f"{spec.name}: missing required parameter(s): {', '.join(missing)}"
        raise InvalidArguments(msg)

    bound: list[Any] = []
    for param in params:
        if param.name not in values:
            # Optional parameters are trailing, so stopping here keeps order
            break
        value = values[param.name]
        if value is None and param.optional:
            break
        _check_type(spec.name, param.name, param.type, value)
        bound.append(value)
    return bound


class HandleDispatcher:
    """Command dispatch table from operation names to a controller."""

    __slots__ = ("_controller",)

    def __init__(self, controller: ServerController) -> None:
        self._controller = controller

    @property
    def controller(self) -> ServerController:
        return self._controller

    def describe(self) -> dict[str, Any]:
        """Handle metadata and every operation descriptor."""
        return describe_handle()

    def list_operations(self) -> list[dict[str, Any]]:
        """Operation descriptors in MCP ``tools/list`` format."""
        return list_tools()

    async def receive(self, operation: str, payload: Mapping[str, Any] | None = None) -> Any:
        """Validate and run one operation; return its serializable result.

        Raises ``UnknownOperation`` or ``InvalidArguments`` before the
        controller is touched, and lets handle errors (``AlreadyRunning``,
        ``BindError``, ...) propagate.
        """
        spec = get_operation(operation)
        if spec is None:
            raise UnknownOperation(operation)

        payload = payload or {}
        args = payload.get("args", ())
        kwargs = payload.get("kwargs", {})
        if not isinstance(args, list | tuple):
            msg = f"{operation}: 'args' must be a list"
            raise InvalidArguments(msg)
        if not isinstance(kwargs, Mapping):
            msg = f"{operation}: 'kwargs' must be an object"
            raise InvalidArguments(msg)

        bound = bind_arguments(spec, args, kwargs)
        logger.debug("dispatch %s%r", operation, tuple(bound))
        return await invoke(getattr(self._controller, spec.attribute), *bound)

    async def handle_message(self, message: Mapping[str, Any]) -> dict[str, Any]:
        """Envelope form of ``receive()`` for transports.

        ``message`` is ``{"operation", "args"?, "kwargs"?, "id"?}``. Returns
        ``{"id", "ok": True, "result"}`` or ``{"id", "ok": False, "error":
        {"type", "message"}}``. Only perch errors become error envelopes;
        anything else is a bug and propagates.
        """
        message_id = message.get("id")
        operation = message.get("operation")
        try:
            if not isinstance(operation, str) or not operation:
                msg = "Missing 'operation' field"
                raise InvalidArguments(msg)
            result = await self.receive(operation, message)
        except PerchError as exc:
            logger.debug("dispatch %s failed: %s", operation, exc)
            return {"id": message_id, "ok": False, "error": exc.to_dict()}
        return {"id": message_id, "ok": True, "result": result}
