"""Tool definitions and the registry that dispatches tool calls.

Each tool declares a JSON-schema style ``parameters`` object. The registry
checks incoming arguments against it before the handler runs, so handlers
can rely on required fields being present and correctly typed.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterator, Mapping

from .safety import ActionRisk
from .types import ToolResult

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Mapping[str, Any]], ToolResult]

_JSON_TYPES: dict[str, tuple[type, ...]] = {
    "string": (str,),
    "integer": (int,),
    "number": (int, float),
    "boolean": (bool,),
    "array": (list, tuple),
    "object": (dict,),
}


class ToolRegistrationError(ValueError):
    """Raised when a tool cannot be registered."""


@dataclass(frozen=True)
class ToolDefinition:
    """A tool an agent can call."""

    name: str
    description: str
    parameters: Mapping[str, Any]
    handler: ToolHandler
    risk_level: ActionRisk = ActionRisk.SAFE

    def to_mcp(self) -> dict[str, Any]:
        """Describe the tool in MCP ``tools/list`` form."""
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": dict(self.parameters),
        }


def _matches_type(value: Any, json_type: str) -> bool:
    expected = _JSON_TYPES.get(json_type)
    if expected is None:
        return True
    # bool is a subclass of int but never a valid integer/number argument
    if json_type in ("integer", "number") and isinstance(value, bool):
        return False
    return isinstance(value, expected)


def validate_arguments(schema: Mapping[str, Any], arguments: Mapping[str, Any]) -> list[str]:
    """Check arguments against a flat object schema.

    Returns:
        Problems in ``field: message`` form; empty when the arguments are valid.
    """
    problems: list[str] = []
    properties: Mapping[str, Any] = schema.get("properties", {})

    for name in schema.get("required", []):
        if arguments.get(name) is None:
            problems.append(f"{name}: Required")

    for name, value in arguments.items():
        prop = properties.get(name)
        if prop is None:
            if schema.get("additionalProperties", True) is False:
                problems.append(f"{name}: Unexpected parameter")
            continue
        if value is None:
            continue
        json_type = prop.get("type")
        if json_type and not _matches_type(value, json_type):
            problems.append(f"{name}: Expected {json_type}")
            continue
        if "enum" in prop and value not in prop["enum"]:
            allowed = ", ".join(repr(option) for option in prop["enum"])
            problems.append(f"{name}: Expected one of {allowed}")
        if "minimum" in prop and isinstance(value, (int, float)) and value < prop["minimum"]:
            problems.append(f"{name}: Must be >= {prop['minimum']}")
        item_type = prop.get("items", {}).get("type") if json_type == "array" else None
        if item_type and not all(_matches_type(item, item_type) for item in value):
            problems.append(f"{name}: Expected array of {item_type}")

    return problems


class ToolRegistry:
    """Holds tool definitions and executes them by name."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolDefinition] = {}

    def register_tool(self, tool: ToolDefinition, replace: bool = False) -> None:
        if tool.name in self._tools and not replace:
            raise ToolRegistrationError(f"Tool already registered: {tool.name}")
        self._tools[tool.name] = tool

    def get_tool(self, name: str) -> ToolDefinition:
        try:
            return self._tools[name]
        except KeyError as exc:
            raise KeyError(f"Unknown tool: {name}") from exc

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def __iter__(self) -> Iterator[ToolDefinition]:
        return iter(self._tools.values())

    def __len__(self) -> int:
        return len(self._tools)

    def tool_names(self) -> list[str]:
        return list(self._tools)

    def to_mcp_tools(self) -> list[dict[str, Any]]:
        return [tool.to_mcp() for tool in self._tools.values()]

    def execute_tool(self, name: str, arguments: Mapping[str, Any] | None = None) -> ToolResult:
        """Validate arguments and run the named tool.

        Unknown tools, invalid arguments and handler exceptions all come back
        as a failed ToolResult rather than an exception.
        """
        tool = self._tools.get(name)
        if tool is None:
            return ToolResult(success=False, error=f"Unknown tool: {name}")

        arguments = dict(arguments or {})
        problems = validate_arguments(tool.parameters, arguments)
        if problems:
            return ToolResult(
                success=False,
                error=f"Invalid parameters for {name}: {', '.join(problems)}",
            )

        try:
            return tool.handler(arguments)
        except Exception as exc:
            logger.exception("Tool %s raised an unexpected error", name)
            return ToolResult(success=False, error=f"Tool {name} failed: {exc}")
