"""
concept-sync command line.

Usage:
    concept-sync serve [--db path] [--host host] [--port 10000] [--config file]
    concept-sync request <path> [--input '{"key": "value"}'] [--db path]
    concept-sync syncs
    concept-sync routes
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any, Dict

from .concepts.passthrough import EXCLUSIONS, INCLUSIONS
from .config import ConfigError, Settings, configure_logging
from .runtime import build_runtime


def load_settings(args: argparse.Namespace) -> Settings:
    return Settings.load(
        getattr(args, "config", None),
        db_path=getattr(args, "db", None),
        host=getattr(args, "host", None),
        port=getattr(args, "port", None),
    )


def cmd_serve(args: argparse.Namespace) -> int:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    from .api import create_app

    settings = load_settings(args)
    configure_logging(settings.log_level)
    uvicorn.run(
        create_app(settings=settings),
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )
    return 0


def cmd_request(args: argparse.Namespace) -> int:
    """Send one request through the syncs and print the response."""
    body: Dict[str, Any] = {}
    if args.input:
        try:
            body = json.loads(args.input)
        except json.JSONDecodeError as e:
            print(f"✗ Invalid JSON input: {e}", file=sys.stderr)
            return 1
        if not isinstance(body, dict):
            print("✗ Input must be a JSON object", file=sys.stderr)
            return 1

    settings = load_settings(args)
    configure_logging(settings.log_level)
    runtime = build_runtime(settings)
    try:
        reply = asyncio.run(runtime.handle_request(args.path, body))
    finally:
        runtime.close()

    print(json.dumps(reply, indent=2, default=str))
    return 1 if "error" in reply else 0


def cmd_syncs(args: argparse.Namespace) -> int:
    """List registered syncs and what they listen to."""
    settings = load_settings(args)
    runtime = build_runtime(settings)
    try:
        summaries = runtime.engine.summaries()
    finally:
        runtime.close()

    print(f"\n{len(summaries)} syncs\n")
    for summary in summaries:
        marker = " (where)" if summary.has_where else ""
        print(f"  {summary.name}{marker}")
        print(f"    when: {', '.join(summary.when)}")
        print(f"    then: {', '.join(summary.then)}")
    print()
    return 0


def cmd_routes(args: argparse.Namespace) -> int:
    """List passthrough inclusions and exclusions."""
    print("\nInclusions (passthrough):")
    for route, justification in INCLUSIONS.items():
        print(f"  {route}  # {justification}")
    print("\nExclusions (via Requesting):")
    for route in EXCLUSIONS:
        print(f"  {route}")
    print()
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(
        prog="concept-sync",
        description="Concepts composed by syncs",
    )
    parser.add_argument("--config", "-c", help="YAML config file")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--db", help="Database path")
    serve_parser.add_argument("--host", help="Bind address")
    serve_parser.add_argument("--port", "-p", type=int, help="Port (default: 10000)")

    request_parser = subparsers.add_parser("request", help="Send a request through the syncs")
    request_parser.add_argument("path", help="Route, e.g. /UserAuthentication/authenticate")
    request_parser.add_argument("--input", "-i", help="JSON request body")
    request_parser.add_argument("--db", help="Database path")

    syncs_parser = subparsers.add_parser("syncs", help="List registered syncs")
    syncs_parser.add_argument("--db", help="Database path")

    subparsers.add_parser("routes", help="List passthrough routes")

    args = parser.parse_args()

    try:
        if args.command == "serve":
            return cmd_serve(args)
        elif args.command == "request":
            return cmd_request(args)
        elif args.command == "syncs":
            return cmd_syncs(args)
        elif args.command == "routes":
            return cmd_routes(args)
    except ConfigError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
