"""Shared crawl-client context utilities for tool handlers.

Handlers accept an optional ``client``. When the registry was built without
one, the client is resolved from the project configuration on each call.
"""

from __future__ import annotations

from crawlkit.config import ConfigError
from crawlkit.integrations.crawl4ai import Crawl4AIClient, Crawl4AIError, get_crawl_client

from ..types import ToolResult


def resolve_crawl_client(client: Crawl4AIClient | None = None) -> Crawl4AIClient:
    """Return ``client`` or build one from configuration.

    Raises:
        ConfigError: If no client was given and CRAWL4AI_BASE_URL is unset.
    """
    if client is not None:
        return client
    return get_crawl_client()


def failure(operation: str, exc: BaseException | str) -> ToolResult:
    """Failed result in the ``Failed to <operation>: <reason>`` form."""
    return ToolResult(success=False, error=f"Failed to {operation}: {exc}")


def invalid(tool_name: str, message: str) -> ToolResult:
    return ToolResult(success=False, error=f"Invalid parameters for {tool_name}: {message}")


SERVICE_ERRORS = (Crawl4AIError, ConfigError)

__all__ = ["SERVICE_ERRORS", "failure", "invalid", "resolve_crawl_client"]
