import pytest

from tool_catalog import (
    INTROSPECT_DESCRIPTION,
    BlockedOperationError,
    check_introspect_call,
    rewrite_tool_list,
    search_schema_descriptor,
)

TOOLS_RESPONSE = {
    "jsonrpc": "2.0",
    "id": 2,
    "result": {
        "tools": [
            {"name": "execute", "description": "Run an operation", "inputSchema": {"type": "object"}},
            {
                "name": "introspect",
                "description": "Original description",
                "inputSchema": {
                    "type": "object",
                    "properties": {"type_name": {"type": "string"}},
                    "required": ["type_name"],
                },
            },
        ]
    },
}


def test_introspect_description_is_replaced_and_search_appended():
    rewritten = rewrite_tool_list(TOOLS_RESPONSE)
    names = [tool["name"] for tool in rewritten["result"]["tools"]]
    assert names == ["execute", "introspect", "search_schema"]
    introspect = rewritten["result"]["tools"][1]
    assert introspect["description"] == INTROSPECT_DESCRIPTION
    assert introspect["inputSchema"]["required"] == ["type_name"]
    assert rewritten["result"]["tools"][0] == TOOLS_RESPONSE["result"]["tools"][0]


def test_original_frame_is_not_mutated():
    rewrite_tool_list(TOOLS_RESPONSE)
    assert len(TOOLS_RESPONSE["result"]["tools"]) == 2
    assert TOOLS_RESPONSE["result"]["tools"][1]["description"] == "Original description"


def test_exactly_one_search_schema_per_rewrite():
    rewritten = rewrite_tool_list(TOOLS_RESPONSE)
    assert [tool["name"] for tool in rewritten["result"]["tools"]].count("search_schema") == 1


def test_search_schema_descriptor_shape():
    descriptor = search_schema_descriptor()
    assert descriptor["name"] == "search_schema"
    schema = descriptor["inputSchema"]
    assert schema["required"] == ["query"]
    assert schema["properties"]["query"]["type"] == "string"
    assert schema["properties"]["context_lines"]["type"] == "number"
    assert set(schema["properties"]["type"]["enum"]) == {
        "any", "type", "input", "enum", "interface", "union", "scalar", "query", "mutation",
    }


def test_tool_list_without_introspect_still_gains_search():
    rewritten = rewrite_tool_list({"jsonrpc": "2.0", "id": 1, "result": {"tools": []}})
    assert [tool["name"] for tool in rewritten["result"]["tools"]] == ["search_schema"]


@pytest.mark.parametrize(
    "frame",
    [
        {"jsonrpc": "2.0", "id": 1, "result": {"content": []}},
        {"jsonrpc": "2.0", "method": "notifications/tools/list_changed"},
        {"jsonrpc": "2.0", "id": 1, "result": {"tools": "not-a-list"}},
        {"jsonrpc": "2.0", "id": 1, "error": {"code": -1, "message": "x"}},
    ],
)
def test_other_frames_pass_through(frame):
    assert rewrite_tool_list(frame) is frame


@pytest.mark.parametrize("type_name", ["Query", "Mutation"])
def test_root_type_introspection_is_blocked(type_name):
    with pytest.raises(BlockedOperationError) as excinfo:
        check_introspect_call({"type_name": type_name})
    assert str(excinfo.value).startswith(
        f"Direct introspection of '{type_name}' type is not allowed."
    )


@pytest.mark.parametrize("arguments", [{"type_name": "Patient"}, {}, None, {"type_name": ["Query"]}])
def test_other_introspection_is_allowed(arguments):
    check_introspect_call(arguments)
