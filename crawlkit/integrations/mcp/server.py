"""MCP server exposing the crawl tools.

This module provides a Model Context Protocol (MCP) server over stdio. Each
line on stdin is one JSON-RPC 2.0 message; responses are written one per line
to stdout. Logging goes to stderr so it never corrupts the protocol stream.
"""

from __future__ import annotations

import json
import logging
import sys
from typing import Any, Mapping, TextIO

from crawlkit.config import ProjectConfig, get_config
from crawlkit.orchestration.tools import ToolRegistry

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"

METHOD_NOT_FOUND = -32601
PARSE_ERROR = -32700
INVALID_REQUEST = -32600


def _error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": request_id,
        "error": {
            "code": code,
            "message": message,
        },
    }


def _result(request_id: Any, result: Mapping[str, Any]) -> dict[str, Any]:
    return {"jsonrpc": "2.0", "id": request_id, "result": dict(result)}


def server_info(config: ProjectConfig | None = None) -> dict[str, str]:
    config = config or get_config()
    return {"name": config.server_name, "version": config.server_version}


def handle_request(
    request: Mapping[str, Any],
    registry: ToolRegistry,
    info: Mapping[str, str] | None = None,
) -> dict[str, Any] | None:
    """Handle an MCP JSON-RPC request.

    Returns:
        The response message, or None for notifications.
    """
    method = request.get("method", "")
    request_id = request.get("id")
    params = request.get("params")
    if params is None:
        params = {}

    if not isinstance(method, str):
        return _error(request_id, INVALID_REQUEST, "Invalid Request")
    if not isinstance(params, Mapping):
        return _error(request_id, INVALID_REQUEST, "Invalid params")

    if method == "initialize":
        return _result(
            request_id,
            {
                "protocolVersion": PROTOCOL_VERSION,
                "capabilities": {
                    "tools": {},
                },
                "serverInfo": dict(info or server_info()),
            },
        )

    if method.startswith("notifications/"):
        # Notification, no response needed
        return None

    if method == "tools/list":
        return _result(request_id, {"tools": registry.to_mcp_tools()})

    if method == "tools/call":
        tool_name = params.get("name")
        arguments = params.get("arguments") or {}
        if not isinstance(tool_name, str) or tool_name not in registry:
            return _error(request_id, METHOD_NOT_FOUND, f"Unknown tool: {tool_name}")
        if not isinstance(arguments, Mapping):
            return _error(request_id, INVALID_REQUEST, "Tool arguments must be an object")

        logger.info("Calling tool %s", tool_name)
        result = registry.execute_tool(tool_name, arguments)
        if not result.success:
            logger.warning("Tool %s failed: %s", tool_name, result.error)
            return _result(
                request_id,
                {
                    "content": [{"type": "text", "text": result.error or "Unknown error"}],
                    "isError": True,
                },
            )
        return _result(
            request_id,
            {"content": [{"type": "text", "text": result.text}]},
        )

    return _error(request_id, METHOD_NOT_FOUND, f"Method not found: {method}")


def _write(stream: TextIO, message: Mapping[str, Any]) -> None:
    stream.write(json.dumps(message) + "\n")
    stream.flush()


def run_server(
    registry: ToolRegistry,
    stdin: TextIO | None = None,
    stdout: TextIO | None = None,
    info: Mapping[str, str] | None = None,
) -> None:
    """Run the MCP server, reading from stdin and writing to stdout."""
    stdin = stdin or sys.stdin
    stdout = stdout or sys.stdout
    info = info or server_info()
    logger.info("%s %s running on stdio (%d tools)", info["name"], info["version"], len(registry))

    while True:
        try:
            line = stdin.readline()
            if not line:
                break
            if not line.strip():
                continue

            request = json.loads(line)
            if not isinstance(request, Mapping):
                _write(stdout, _error(None, INVALID_REQUEST, "Invalid Request"))
                continue

            response = handle_request(request, registry, info)
            if response is not None:
                _write(stdout, response)

        except json.JSONDecodeError:
            _write(stdout, _error(None, PARSE_ERROR, "Parse error"))
        except KeyboardInterrupt:
            break

    logger.info("MCP server stopped")
