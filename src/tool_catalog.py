"""Rewrites of the tool surface advertised by the underlying MCP server."""
from __future__ import annotations

from mcp.types import Tool

from schema_search import DEFAULT_CONTEXT_LINES, SEARCH_KINDS

INTROSPECT_TOOL = "introspect"
SEARCH_SCHEMA_TOOL = "search_schema"
BLOCKED_ROOT_TYPES = frozenset({"Query", "Mutation"})

INTROSPECT_DESCRIPTION = (
    "Get detailed information about types from the GraphQL schema. "
    "Use the type name `Query` to get root query fields. "
    "IMPORTANT: Use the search_schema tool FIRST to find queries, mutations, and types "
    "before using introspect for details."
)

SEARCH_SCHEMA_DESCRIPTION = (
    "Search the GraphQL schema for types, fields, queries, or mutations. "
    "ALWAYS USE THIS FIRST when looking for available queries, mutations, or types. "
    "This is much more efficient than using introspect to browse the entire schema."
)


class BlockedOperationError(Exception):
    """A tool call rejected by policy rather than by failure."""

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name
        super().__init__(
            f"Direct introspection of '{type_name}' type is not allowed. "
            "Please use the search_schema tool to find specific queries or mutations, "
            "then introspect individual types for details."
        )


def search_schema_descriptor() -> dict:
    tool = Tool(
        name=SEARCH_SCHEMA_TOOL,
        description=SEARCH_SCHEMA_DESCRIPTION,
        inputSchema={
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": "Search query (supports regex)",
                },
                "type": {
                    "type": "string",
                    "enum": list(SEARCH_KINDS),
                    "description": "Type of schema element to search for (default: any)",
                },
                "context_lines": {
                    "type": "number",
                    "description": (
                        "Number of context lines to show around matches "
                        f"(default: {DEFAULT_CONTEXT_LINES})"
                    ),
                },
            },
            "required": ["query"],
        },
    )
    return tool.model_dump(by_alias=True, exclude_none=True)


def is_tool_list(message: dict) -> bool:
    result = message.get("result")
    return isinstance(result, dict) and isinstance(result.get("tools"), list)


def rewrite_tool_list(message: dict) -> dict:
    """
    Return `message` with the introspect description replaced and search_schema appended.

    Frames that are not a tool-list result are returned untouched.
    """
    if not is_tool_list(message):
        return message

    tools = []
    for tool in message["result"]["tools"]:
        if isinstance(tool, dict) and tool.get("name") == INTROSPECT_TOOL:
            tool = {**tool, "description": INTROSPECT_DESCRIPTION}
        tools.append(tool)
    tools.append(search_schema_descriptor())

    return {**message, "result": {**message["result"], "tools": tools}}


def check_introspect_call(arguments: object) -> None:
    if not isinstance(arguments, dict):
        return
    type_name = arguments.get("type_name")
    if isinstance(type_name, str) and type_name in BLOCKED_ROOT_TYPES:
        raise BlockedOperationError(type_name)
