"""
Entry point for the GraphQL MCP search proxy.

Modes:
- proxy (default): spawn the MCP server behind the intercepting proxy, which adds
  the `search_schema` tool and blocks root Query/Mutation introspection.
- direct: spawn the MCP server with inherited stdio, regenerating the schema
  first if it is missing and muting its startup noise on stderr.

stdout carries the JSON-RPC stream, so all logging goes to stderr.
"""
from __future__ import annotations

import argparse
import asyncio
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Iterable

from config import APP_NAME, ConfigurationError, load_proxy_config
from proxy import ChildProcessFailure, run_proxy
from regenerate_schema import SchemaRegenerationError
from supervisor import run_direct

logger = logging.getLogger(APP_NAME)


def build_arg_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="Run the GraphQL MCP server behind a schema-search proxy.",
    )
    parser.add_argument(
        "--mode",
        choices=["proxy", "direct"],
        default="proxy",
        help="proxy: intercept and add search_schema (default); direct: run the server as-is.",
    )
    parser.add_argument(
        "--schema",
        type=Path,
        default=None,
        help="Path to the GraphQL schema file (SDL); overrides the environment's schema path.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        help="Log level (DEBUG, INFO, WARNING, ERROR).",
    )
    return parser


def main(argv: Iterable[str] | None = None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.WARNING),
        stream=sys.stderr,
    )

    try:
        config = load_proxy_config()
    except ConfigurationError as exc:
        logger.error("Error loading environment configuration: %s", exc)
        return 1
    if args.schema is not None:
        config = dataclasses.replace(config, schema_path=args.schema)

    runner = run_proxy if args.mode == "proxy" else run_direct
    try:
        return asyncio.run(runner(config))
    except (ConfigurationError, ChildProcessFailure, SchemaRegenerationError) as exc:
        logger.error("Failed to start %s: %s", APP_NAME, exc)
        return 1
    except KeyboardInterrupt:
        return 0


if __name__ == "__main__":
    raise SystemExit(main())
