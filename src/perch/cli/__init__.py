"""Perch CLI — serve declarative routes, print the operation catalog.

Entry point registered as ``perch`` in ``pyproject.toml``::

    [project.scripts]
    perch = "perch.cli:main"
"""

import argparse
import sys


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``perch`` command."""
    parser = argparse.ArgumentParser(
        prog="perch",
        description="Perch — a remote-controllable HTTP server handle.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- perch serve ------------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Start a server with declarative routes")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind host address")
    serve_parser.add_argument(
        "--port", type=int, default=0, help="Bind port number (0 = any free port)"
    )
    serve_parser.add_argument(
        "--json",
        nargs=3,
        action="append",
        default=[],
        metavar=("METHOD", "PATH", "BODY"),
        help="Add a JSON route; BODY is a JSON document (repeatable)",
    )
    serve_parser.add_argument(
        "--text",
        nargs=3,
        action="append",
        default=[],
        metavar=("METHOD", "PATH", "TEXT"),
        help="Add a text/plain route (repeatable)",
    )
    serve_parser.add_argument(
        "--static",
        nargs=2,
        action="append",
        default=[],
        metavar=("URL_PATH", "FS_PATH"),
        help="Serve a directory under a URL prefix (repeatable)",
    )
    serve_parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug"],
        help="Log level for perch and uvicorn",
    )

    # -- perch describe ---------------------------------------------------
    describe_parser = subparsers.add_parser(
        "describe", help="Print the handle's operation catalog as JSON"
    )
    describe_parser.add_argument(
        "--tools",
        action="store_true",
        help="Print operations in MCP tools/list format instead",
    )

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "serve":
        from perch.cli._serve import run_serve

        run_serve(args)
    elif args.command == "describe":
        from perch.cli._describe import run_describe

        run_describe(args)
