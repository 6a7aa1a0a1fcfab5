"""
Regenerate the local SDL schema file from a live GraphQL endpoint.

Runs the standard introspection query against the configured endpoint,
converts the result to SDL with graphql-core and writes it to the schema
path the proxy reads. The raw introspection result is kept next to it as
`introspection-result.json` for reference.
"""
from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable

import aiohttp
from graphql import build_client_schema, get_introspection_query, print_schema

from config import APP_NAME, ConfigurationError, ProxyConfig, load_proxy_config

DEFAULT_TIMEOUT_S = 30.0
INTROSPECTION_RESULT_FILE = "introspection-result.json"
logger = logging.getLogger(APP_NAME)


class SchemaRegenerationError(RuntimeError):
    pass


async def _post_json(url: str, payload: dict, headers: dict[str, str], timeout_s: float) -> dict:
    request_headers = {"Accept": "application/json", "Content-Type": "application/json"}
    request_headers.update(headers)

    timeout = aiohttp.ClientTimeout(total=timeout_s)
    async with aiohttp.ClientSession(timeout=timeout) as session:
        async with session.post(url, json=payload, headers=request_headers) as resp:
            text = await resp.text()
            if resp.status >= 400:
                raise SchemaRegenerationError(
                    f"Introspection request failed ({resp.status}): {text.strip()}"
                )
            if not text:
                return {}
            try:
                return json.loads(text)
            except json.JSONDecodeError as exc:
                raise SchemaRegenerationError("Introspection response was not valid JSON") from exc


def sdl_from_introspection(result: dict) -> str:
    if result.get("errors"):
        raise SchemaRegenerationError(f"GraphQL errors: {result['errors']}")
    data = result.get("data")
    if not data:
        raise SchemaRegenerationError("Introspection response missing 'data'.")
    try:
        schema = build_client_schema(data)
    except (KeyError, TypeError, ValueError) as exc:
        raise SchemaRegenerationError(f"Failed to process schema: {exc}") from exc
    return print_schema(schema)


def write_schema(schema_path: Path, sdl: str, result: dict) -> None:
    schema_path.parent.mkdir(parents=True, exist_ok=True)
    schema_path.write_text(sdl, encoding="utf-8")
    (schema_path.parent / INTROSPECTION_RESULT_FILE).write_text(
        json.dumps(result, indent=2), encoding="utf-8"
    )


async def regenerate_schema(config: ProxyConfig, timeout_s: float = DEFAULT_TIMEOUT_S) -> Path:
    logger.info("Fetching schema from %s...", config.endpoint_url)
    payload = {
        "query": get_introspection_query(descriptions=True),
        "operationName": "IntrospectionQuery",
        "variables": {},
    }
    try:
        result = await _post_json(
            config.endpoint_url, payload, headers=config.http_headers(), timeout_s=timeout_s
        )
    except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
        raise SchemaRegenerationError(f"Request failed: {exc}") from exc

    sdl = sdl_from_introspection(result)
    write_schema(config.schema_path, sdl, result)
    logger.info("Schema saved to %s", config.schema_path)
    return config.schema_path


def cli(argv: Iterable[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Regenerate the GraphQL SDL schema via introspection.")
    parser.add_argument("--timeout", type=float, default=DEFAULT_TIMEOUT_S, help="HTTP timeout (seconds)")
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, WARNING, ERROR).")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, str(args.log_level).upper(), logging.INFO))

    try:
        config = load_proxy_config()
        asyncio.run(regenerate_schema(config, timeout_s=args.timeout))
    except (ConfigurationError, SchemaRegenerationError, OSError) as exc:
        logger.error("Schema regeneration failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(cli())
