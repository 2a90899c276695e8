"""Shared value types for the orchestration runtime."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class ToolResult:
    """Outcome of a tool invocation.

    Attributes:
        success: Whether the tool completed its operation.
        output: Tool payload. Report-style tools return a mapping with a
            ``text`` entry plus structured counters.
        error: Human-readable failure message when ``success`` is False.
    """

    success: bool
    output: Any = None
    error: str | None = None

    @property
    def text(self) -> str:
        """Plain-text rendering of the result for protocol responses."""
        if not self.success:
            return self.error or str(self.output or "Tool failed")
        if isinstance(self.output, dict) and isinstance(self.output.get("text"), str):
            return self.output["text"]
        if isinstance(self.output, str):
            return self.output
        return json.dumps(self.output, indent=2, default=str)
