"""Direct mode: run the MCP server without the intercepting proxy."""
from __future__ import annotations

import asyncio
import logging
import sys
from typing import BinaryIO

from config import APP_NAME, ProxyConfig
from proxy import (
    READ_CHUNK_SIZE,
    ChildProcessFailure,
    install_signal_relay,
    spawn_server,
    start_pump,
    wait_for_exit_or_shutdown,
)
from regenerate_schema import regenerate_schema

STARTUP_QUIET_S = 2.0
NOISY_STARTUP_MARKERS = (
    "Received schema:",
    "Received 0 operations:",
    "Apollo MCP Server v",
)
logger = logging.getLogger(APP_NAME)


class StartupNoiseFilter:
    """Drops the server's schema dump and banner during its first seconds."""

    def __init__(self, started_at: float, window_s: float = STARTUP_QUIET_S) -> None:
        self._deadline = started_at + window_s

    def allows(self, chunk: bytes, now: float) -> bool:
        if now >= self._deadline:
            return True
        text = chunk.decode("utf-8", errors="replace")
        return not any(marker in text for marker in NOISY_STARTUP_MARKERS)


async def pump_filtered_diagnostics(
    reader: asyncio.StreamReader, sink: BinaryIO, noise: StartupNoiseFilter
) -> None:
    loop = asyncio.get_running_loop()
    while True:
        chunk = await reader.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        if noise.allows(chunk, loop.time()):
            sink.write(chunk)
            sink.flush()


async def run_direct(config: ProxyConfig) -> int:
    if not config.schema_path.exists():
        logger.info("Schema %s not found; regenerating", config.schema_path)
        await regenerate_schema(config)
    if not config.server_path.exists():
        raise ChildProcessFailure(f"MCP server not found at: {config.server_path}")

    process = await spawn_server(config, stderr=asyncio.subprocess.PIPE)
    noise = StartupNoiseFilter(asyncio.get_running_loop().time())
    shutdown = asyncio.Event()
    install_signal_relay(process, shutdown)

    drains = [
        start_pump(pump_filtered_diagnostics(process.stderr, sys.stderr.buffer, noise), "server-stderr")
    ]
    try:
        return await wait_for_exit_or_shutdown(process, shutdown, drains)
    finally:
        for task in drains:
            task.cancel()
