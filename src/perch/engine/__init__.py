"""Bundled HTTP engine — live route table, static mounts, uvicorn lifecycle.

The handle only depends on the ``Engine`` protocol; ``HTTPEngine`` is the
default implementation. ``perch.engine.server`` imports uvicorn, so it is
not imported here.
"""

from perch.engine.app import EngineApp
from perch.engine.protocol import Engine, EngineFactory
from perch.engine.request import Request
from perch.engine.response import Response, json_response, text_response
from perch.engine.router import SUPPORTED_METHODS, Handler, Router

__all__ = [
    "SUPPORTED_METHODS",
    "Engine",
    "EngineApp",
    "EngineFactory",
    "Handler",
    "Request",
    "Response",
    "Router",
    "json_response",
    "text_response",
]
