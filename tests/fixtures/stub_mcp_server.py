"""Stand-in for the GraphQL MCP server binary, speaking JSON lines on stdio."""

import json
import os
import signal
import sys
from pathlib import Path

TOOLS = [
    {
        "name": "introspect",
        "description": "Introspect a type",
        "inputSchema": {
            "type": "object",
            "properties": {"type_name": {"type": "string"}},
            "required": ["type_name"],
        },
    },
    {"name": "execute", "description": "Run an operation", "inputSchema": {"type": "object"}},
]


def reply(message):
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def on_sigterm(signum, frame):
    marker = os.environ.get("STUB_SIGNAL_FILE")
    if marker:
        Path(marker).write_text(signal.Signals(signum).name)
    raise SystemExit(0)


def main():
    signal.signal(signal.SIGTERM, on_sigterm)
    sys.stderr.write("Apollo MCP Server v1.0.0 (stub)\n")
    sys.stderr.flush()
    sys.stdout.write("stub ready\n")
    sys.stdout.flush()

    for raw in sys.stdin:
        line = raw.rstrip("\n")
        try:
            message = json.loads(line)
        except ValueError:
            reply({"jsonrpc": "2.0", "method": "raw/echo", "params": {"line": line}})
            continue
        if "id" not in message:
            continue
        if message.get("method") == "tools/list":
            reply({"jsonrpc": "2.0", "id": message["id"], "result": {"tools": TOOLS}})
        else:
            text = json.dumps(message.get("params", {}), sort_keys=True)
            reply(
                {
                    "jsonrpc": "2.0",
                    "id": message["id"],
                    "result": {"content": [{"type": "text", "text": text}]},
                }
            )

    sys.stdout.write("stub exiting")
    sys.stdout.flush()
    return int(os.environ.get("STUB_EXIT_CODE", "0"))


if __name__ == "__main__":
    raise SystemExit(main())
