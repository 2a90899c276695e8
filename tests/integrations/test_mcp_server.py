"""Tests for the MCP stdio server."""

from __future__ import annotations

import io
import json

import pytest

from crawlkit.config import ProjectConfig
from crawlkit.integrations.mcp import handle_request, run_server, server_info
from crawlkit.orchestration.tools import ToolDefinition, ToolRegistry
from crawlkit.orchestration.types import ToolResult

INFO = {"name": "crawl4ai-mcp", "version": "1.0.0"}


def _handler(arguments):
    if arguments["url"] == "https://fail.example/":
        return ToolResult(success=False, error="Failed to get HTML: Bad Gateway")
    return ToolResult(success=True, output={"text": f"HTML of {arguments['url']}"})


@pytest.fixture
def registry() -> ToolRegistry:
    registry = ToolRegistry()
    registry.register_tool(
        ToolDefinition(
            name="get_html",
            description="Get page HTML.",
            parameters={
                "type": "object",
                "properties": {"url": {"type": "string"}},
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=_handler,
        )
    )
    return registry


class TestHandleRequest:
    """Tests for JSON-RPC method dispatch."""

    def test_initialize(self, registry: ToolRegistry) -> None:
        response = handle_request({"jsonrpc": "2.0", "id": 1, "method": "initialize"}, registry, INFO)

        assert response["id"] == 1
        assert response["result"]["serverInfo"] == INFO
        assert response["result"]["capabilities"] == {"tools": {}}

    def test_initialized_notification(self, registry: ToolRegistry) -> None:
        assert handle_request({"jsonrpc": "2.0", "method": "notifications/initialized"}, registry, INFO) is None

    def test_tools_list(self, registry: ToolRegistry) -> None:
        response = handle_request({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}, registry, INFO)

        tools = response["result"]["tools"]
        assert [tool["name"] for tool in tools] == ["get_html"]
        assert tools[0]["inputSchema"]["required"] == ["url"]

    def test_tools_call(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {
                "jsonrpc": "2.0",
                "id": 3,
                "method": "tools/call",
                "params": {"name": "get_html", "arguments": {"url": "https://example.com/"}},
            },
            registry,
            INFO,
        )

        assert response["result"] == {
            "content": [{"type": "text", "text": "HTML of https://example.com/"}],
        }

    def test_tools_call_failure_is_tool_error(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {
                "jsonrpc": "2.0",
                "id": 4,
                "method": "tools/call",
                "params": {"name": "get_html", "arguments": {"url": "https://fail.example/"}},
            },
            registry,
            INFO,
        )

        assert response["result"]["isError"] is True
        assert response["result"]["content"][0]["text"] == "Failed to get HTML: Bad Gateway"

    def test_invalid_arguments_is_tool_error(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {
                "jsonrpc": "2.0",
                "id": 5,
                "method": "tools/call",
                "params": {"name": "get_html", "arguments": {"url": "https://example.com/", "session_id": "s"}},
            },
            registry,
            INFO,
        )

        assert response["result"]["isError"] is True
        assert "session_id: Unexpected parameter" in response["result"]["content"][0]["text"]

    def test_unknown_tool(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {"jsonrpc": "2.0", "id": 6, "method": "tools/call", "params": {"name": "nope"}},
            registry,
            INFO,
        )

        assert response["error"] == {"code": -32601, "message": "Unknown tool: nope"}

    def test_unknown_method(self, registry: ToolRegistry) -> None:
        response = handle_request({"jsonrpc": "2.0", "id": 7, "method": "resources/list"}, registry, INFO)

        assert response["error"]["code"] == -32601

    def test_params_must_be_object(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {"jsonrpc": "2.0", "id": 8, "method": "tools/call", "params": ["get_html"]},
            registry,
            INFO,
        )

        assert response == {"jsonrpc": "2.0", "id": 8, "error": {"code": -32600, "message": "Invalid params"}}

    def test_method_must_be_string(self, registry: ToolRegistry) -> None:
        response = handle_request({"jsonrpc": "2.0", "id": 9, "method": 42}, registry, INFO)

        assert response["error"] == {"code": -32600, "message": "Invalid Request"}

    def test_tool_name_must_be_string(self, registry: ToolRegistry) -> None:
        response = handle_request(
            {"jsonrpc": "2.0", "id": 10, "method": "tools/call", "params": {"name": ["get_html"]}},
            registry,
            INFO,
        )

        assert response["error"]["code"] == -32601


class TestRunServer:
    """Tests for the stdio loop."""

    def test_processes_lines(self, registry: ToolRegistry) -> None:
        stdin = io.StringIO(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "initialize"}) + "\n"
            + json.dumps({"jsonrpc": "2.0", "method": "notifications/initialized"}) + "\n"
            + "\n"
            + "{not json\n"
            + json.dumps({"jsonrpc": "2.0", "id": 2, "method": "tools/list"}) + "\n"
        )
        stdout = io.StringIO()

        run_server(registry, stdin=stdin, stdout=stdout, info=INFO)

        responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert [r.get("id") for r in responses] == [1, None, 2]
        assert responses[1]["error"] == {"code": -32700, "message": "Parse error"}

    def test_malformed_messages_do_not_stop_the_loop(self, registry: ToolRegistry) -> None:
        stdin = io.StringIO(
            json.dumps({"jsonrpc": "2.0", "id": 1, "method": "tools/call", "params": ["x"]}) + "\n"
            + json.dumps({"jsonrpc": "2.0", "id": 2, "method": 7}) + "\n"
            + json.dumps({"jsonrpc": "2.0", "id": 3, "method": "tools/call", "params": "get_html"}) + "\n"
            + json.dumps({"jsonrpc": "2.0", "id": 4, "method": "tools/list"}) + "\n"
        )
        stdout = io.StringIO()

        run_server(registry, stdin=stdin, stdout=stdout, info=INFO)

        responses = [json.loads(line) for line in stdout.getvalue().splitlines()]
        assert [r["id"] for r in responses] == [1, 2, 3, 4]
        assert [r["error"]["code"] for r in responses[:3]] == [-32600, -32600, -32600]
        assert responses[3]["result"]["tools"][0]["name"] == "get_html"

    def test_server_info_from_config(self) -> None:
        config = ProjectConfig({"SERVER_NAME": "my-crawler", "SERVER_VERSION": "2.1.0"})

        assert server_info(config) == {"name": "my-crawler", "version": "2.1.0"}
