"""``perch describe`` — print the static operation catalog."""

import argparse
import json

from perch.handle.catalog import describe_handle, list_tools


def run_describe(args: argparse.Namespace) -> None:
    catalog = list_tools() if args.tools else describe_handle()
    print(json.dumps(catalog, indent=2))
