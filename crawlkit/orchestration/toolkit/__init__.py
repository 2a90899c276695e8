"""Convenience helpers for registering orchestration tools."""

from __future__ import annotations

from crawlkit.integrations.crawl4ai import Crawl4AIClient

from ..sessions import SessionStore
from ..tools import ToolRegistry
from .content import register_content_tools
from .crawler import register_crawler_tools
from .links import register_link_tools
from .session import register_session_tools


def build_registry(
    client: Crawl4AIClient | None = None,
    sessions: SessionStore | None = None,
) -> ToolRegistry:
    """Return a registry with every crawl tool registered.

    Without a ``client``, each tool call builds one from the environment.
    """
    registry = ToolRegistry()
    register_crawler_tools(registry, client=client)
    register_link_tools(registry, client=client)
    register_content_tools(registry, client=client)
    register_session_tools(registry, sessions if sessions is not None else SessionStore(), client=client)
    return registry


__all__ = [
    "build_registry",
    "register_content_tools",
    "register_crawler_tools",
    "register_link_tools",
    "register_session_tools",
]
