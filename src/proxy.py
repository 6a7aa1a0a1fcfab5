"""
Intercepting stdio proxy in front of a GraphQL-introspection MCP server.

What it does:
- Spawns the MCP server and relays newline-delimited JSON-RPC both ways.
- Answers `search_schema` tool calls locally from the SDL schema file.
- Rejects `introspect` calls on the root Query/Mutation types.
- Rewrites the server's tool list (introspect description, search_schema appended).
- Demotes anything on the server's stdout that is not a JSON-RPC frame to stderr,
  so server logging never corrupts the protocol stream.

Everything runs on one asyncio loop; three pumps (client stdin, server stdout,
server stderr) feed the handlers below.
"""
from __future__ import annotations

import asyncio
import logging
import signal
import sys
from dataclasses import dataclass
from typing import BinaryIO, TextIO

from config import APP_NAME, ConfigurationError, ProxyConfig
from jsonrpc import ProtocolParseError, error_response, parse_frame, parse_json, serialize, text_result
from line_splitter import LineSplitter
from schema_search import DEFAULT_CONTEXT_LINES, SchemaDocument, SearchError, search_schema
from tool_catalog import (
    INTROSPECT_TOOL,
    SEARCH_SCHEMA_TOOL,
    BlockedOperationError,
    check_introspect_call,
    rewrite_tool_list,
)

SERVER_TAG = "[MCP Server]: "
READ_CHUNK_SIZE = 64 * 1024
RELAYED_SIGNALS = (signal.SIGINT, signal.SIGTERM)
logger = logging.getLogger(APP_NAME)


class ChildProcessFailure(RuntimeError):
    """The underlying MCP server could not be started."""


@dataclass
class ProxyContext:
    document: SchemaDocument
    child_stdin: asyncio.StreamWriter
    out: TextIO
    diagnostics: TextIO


def emit(ctx: ProxyContext, message: dict) -> None:
    ctx.out.write(serialize(message) + "\n")
    ctx.out.flush()


def report_server_line(ctx: ProxyContext, line: str) -> None:
    ctx.diagnostics.write(f"{SERVER_TAG}{line}\n")
    ctx.diagnostics.flush()


def forward_to_child(ctx: ProxyContext, line: str) -> None:
    ctx.child_stdin.write((line + "\n").encode("utf-8"))


def _tool_call(message: dict) -> tuple[str | None, object]:
    if message.get("method") != "tools/call":
        return None, None
    params = message.get("params")
    if not isinstance(params, dict):
        return None, None
    name = params.get("name")
    return (name if isinstance(name, str) else None), params.get("arguments")


def handle_search_schema(ctx: ProxyContext, message: dict, arguments: object) -> None:
    request_id = message.get("id")
    if not isinstance(arguments, dict):
        arguments = {}
    context_lines = arguments.get("context_lines")
    try:
        report = search_schema(
            ctx.document,
            arguments.get("query"),
            kind=arguments.get("type") or "any",
            context_lines=DEFAULT_CONTEXT_LINES if context_lines is None else context_lines,
        )
    except SearchError as exc:
        logger.debug("search_schema request %r failed: %s", request_id, exc)
        emit(ctx, error_response(request_id, str(exc)))
        return
    emit(ctx, text_result(request_id, report))


def handle_client_message(ctx: ProxyContext, message: object) -> None:
    if not isinstance(message, dict):
        forward_to_child(ctx, serialize(message))
        return

    tool_name, arguments = _tool_call(message)
    if tool_name == SEARCH_SCHEMA_TOOL:
        handle_search_schema(ctx, message, arguments)
        return
    if tool_name == INTROSPECT_TOOL:
        try:
            check_introspect_call(arguments)
        except BlockedOperationError as exc:
            logger.info("Blocked introspection of %s", exc.type_name)
            emit(ctx, error_response(message.get("id"), str(exc)))
            return

    forward_to_child(ctx, serialize(message))


def handle_client_line(ctx: ProxyContext, line: str) -> None:
    """Route one line read from the client."""
    try:
        message = parse_json(line)
    except ProtocolParseError:
        # Possibly a control line the server understands; pass it on untouched.
        forward_to_child(ctx, line)
        return
    handle_client_message(ctx, message)


def handle_child_line(ctx: ProxyContext, line: str) -> None:
    """Route one line read from the server's stdout."""
    if not line.strip():
        return
    try:
        message = parse_frame(line)
    except ProtocolParseError:
        report_server_line(ctx, line)
        return
    emit(ctx, rewrite_tool_list(message))


async def pump_client_input(ctx: ProxyContext, reader: asyncio.StreamReader) -> None:
    splitter = LineSplitter()
    try:
        while True:
            chunk = await reader.read(READ_CHUNK_SIZE)
            if not chunk:
                break
            for line in splitter.feed(chunk):
                handle_client_line(ctx, line.rstrip("\r"))
            await ctx.child_stdin.drain()

        remainder = splitter.flush()
        if remainder:
            handle_client_line(ctx, remainder.rstrip("\r"))
            await ctx.child_stdin.drain()
        logger.debug("Client input closed; closing server stdin")
        ctx.child_stdin.close()
    except (BrokenPipeError, ConnectionResetError) as exc:
        logger.warning("MCP server stdin closed: %s", exc)


async def pump_child_output(ctx: ProxyContext, reader: asyncio.StreamReader) -> None:
    splitter = LineSplitter()
    while True:
        chunk = await reader.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        for line in splitter.feed(chunk):
            handle_child_line(ctx, line)
    # Unterminated output left when the server exits gets one last chance.
    handle_child_line(ctx, splitter.flush())


async def pump_child_diagnostics(reader: asyncio.StreamReader, sink: BinaryIO) -> None:
    while True:
        chunk = await reader.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        sink.write(chunk)
        sink.flush()


def log_task_failure(task: asyncio.Task) -> None:
    if task.cancelled():
        return
    exc = task.exception()
    if exc is not None:
        logger.error("%s pump failed: %s", task.get_name(), exc, exc_info=exc)


def start_pump(coro, name: str) -> asyncio.Task:
    task = asyncio.create_task(coro, name=name)
    task.add_done_callback(log_task_failure)
    return task


async def open_stdin_reader() -> asyncio.StreamReader:
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader(limit=READ_CHUNK_SIZE)
    protocol = asyncio.StreamReaderProtocol(reader)
    await loop.connect_read_pipe(lambda: protocol, sys.stdin)
    return reader


def exit_code_of(returncode: int | None) -> int:
    # Negative codes mean the server died from a signal.
    if returncode is None or returncode < 0:
        return 0
    return returncode


def load_schema_document(config: ProxyConfig) -> SchemaDocument:
    try:
        return SchemaDocument.from_path(config.schema_path)
    except (OSError, UnicodeDecodeError) as exc:
        raise ConfigurationError(f"Cannot read schema {config.schema_path}: {exc}") from exc


async def spawn_server(config: ProxyConfig, **streams) -> asyncio.subprocess.Process:
    try:
        return await asyncio.create_subprocess_exec(
            str(config.server_path),
            *config.server_args(),
            cwd=str(config.server_path.parent),
            **streams,
        )
    except OSError as exc:
        raise ChildProcessFailure(f"Failed to start MCP server {config.server_path}: {exc}") from exc


def install_signal_relay(process: asyncio.subprocess.Process, shutdown: asyncio.Event) -> None:
    loop = asyncio.get_running_loop()

    def relay(signum: int) -> None:
        logger.info("Relaying %s to MCP server", signal.Signals(signum).name)
        if process.returncode is None:
            process.send_signal(signum)
        shutdown.set()

    for signum in RELAYED_SIGNALS:
        loop.add_signal_handler(signum, relay, signum)


async def wait_for_exit_or_shutdown(
    process: asyncio.subprocess.Process,
    shutdown: asyncio.Event,
    drains: list[asyncio.Task],
) -> int:
    async def child_exit() -> int:
        await asyncio.gather(*drains)
        return exit_code_of(await process.wait())

    exit_task = asyncio.create_task(child_exit())
    shutdown_task = asyncio.create_task(shutdown.wait())
    done, pending = await asyncio.wait(
        {exit_task, shutdown_task}, return_when=asyncio.FIRST_COMPLETED
    )
    for task in pending:
        task.cancel()
    if exit_task in done:
        code = exit_task.result()
        logger.info("MCP server exited with code %s", code)
        return code
    return 0


async def run_proxy(config: ProxyConfig) -> int:
    """Run the intercepting proxy until the server exits or a signal arrives."""
    document = load_schema_document(config)
    logger.info("Loaded schema %s (%s lines)", config.schema_path, len(document))

    process = await spawn_server(
        config,
        stdin=asyncio.subprocess.PIPE,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    logger.info(
        "Started MCP server %s (pid %s, environment=%s)",
        config.server_path,
        process.pid,
        config.environment,
    )

    ctx = ProxyContext(
        document=document,
        child_stdin=process.stdin,
        out=sys.stdout,
        diagnostics=sys.stderr,
    )
    shutdown = asyncio.Event()
    install_signal_relay(process, shutdown)

    client_task = start_pump(pump_client_input(ctx, await open_stdin_reader()), "client-input")
    drains = [
        start_pump(pump_child_output(ctx, process.stdout), "server-stdout"),
        start_pump(pump_child_diagnostics(process.stderr, sys.stderr.buffer), "server-stderr"),
    ]
    try:
        return await wait_for_exit_or_shutdown(process, shutdown, drains)
    finally:
        client_task.cancel()
        for task in drains:
            task.cancel()
