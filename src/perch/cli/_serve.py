"""``perch serve`` — run a handle from command-line route declarations.

Routes and static mounts are queued on a ``ServerController`` before
``start()``, exercising the same replay path a remote caller uses.
"""

import argparse
import asyncio
import json
import logging
import sys

from perch.config import HandleConfig
from perch.errors import PerchError
from perch.handle.controller import ServerController

# How often the serve loop checks whether the engine is still up
_WATCH_INTERVAL = 0.25


def build_controller(args: argparse.Namespace) -> ServerController:
    """Create a controller with every ``--json``/``--text``/``--static`` queued.

    Raises ``PerchError`` for invalid configuration and ``ValueError`` for
    a ``--json`` body that is not valid JSON.
    """
    config = HandleConfig(host=args.host, log_level=args.log_level)
    controller = ServerController(config=config)

    for method, path, body in args.json:
        try:
            payload = json.loads(body)
        except json.JSONDecodeError as exc:
            msg = f"--json {method} {path}: body is not valid JSON ({exc.msg})"
            raise ValueError(msg) from exc
        controller.add_json_route(method, path, payload)

    for method, path, text in args.text:
        controller.add_text_route(method, path, text)

    for url_path, fs_path in args.static:
        controller.add_static_dir(url_path, fs_path)

    return controller


async def serve(controller: ServerController, port: int) -> None:
    """Start ``controller`` and keep it up until cancelled or the engine exits."""
    info = await controller.start(port)
    print(f"Serving on {info['url']}", flush=True)
    try:
        while getattr(controller.state.engine, "serving", True):
            await asyncio.sleep(_WATCH_INTERVAL)
    finally:
        await controller.stop()


def run_serve(args: argparse.Namespace) -> None:
    logging.basicConfig(
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        controller = build_controller(args)
    except (PerchError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    try:
        asyncio.run(serve(controller, args.port))
    except KeyboardInterrupt:
        pass
    except PerchError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
