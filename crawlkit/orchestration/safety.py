"""Risk classification for agent-invocable tools."""

from __future__ import annotations

from enum import Enum


class ActionRisk(str, Enum):
    """How much review a tool invocation warrants.

    SAFE tools only read remote state. REVIEW tools change state that
    outlives the call (for example the session store). DESTRUCTIVE tools
    discard state that cannot be recovered.
    """

    SAFE = "safe"
    REVIEW = "review"
    DESTRUCTIVE = "destructive"
