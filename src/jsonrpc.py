from __future__ import annotations

import json

from mcp.types import INTERNAL_ERROR, TextContent

JSONRPC_VERSION = "2.0"
FRAME_KEYS = ("jsonrpc", "method", "id")


class ProtocolParseError(ValueError):
    """A line that is not a JSON-RPC frame."""


def is_frame(message: object) -> bool:
    return isinstance(message, dict) and any(key in message for key in FRAME_KEYS)


def parse_json(line: str) -> object:
    try:
        return json.loads(line)
    except json.JSONDecodeError as exc:
        raise ProtocolParseError(f"Not valid JSON: {exc}") from exc


def parse_frame(line: str) -> dict:
    message = parse_json(line)
    if not is_frame(message):
        raise ProtocolParseError("JSON value has none of jsonrpc/method/id")
    return message


def serialize(message: dict) -> str:
    return json.dumps(message, separators=(",", ":"))


def error_response(request_id: object, message: str, code: int = INTERNAL_ERROR) -> dict:
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": {"code": code, "message": message},
    }


def text_result(request_id: object, text: str) -> dict:
    content = TextContent(type="text", text=text)
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "result": {"content": [content.model_dump(exclude_none=True)]},
    }
