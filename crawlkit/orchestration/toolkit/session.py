"""Browser session management and the session-aware crawl tool.

Sessions are tracked in a SessionStore owned by the caller; the crawl server
keeps the live browser and drops it after inactivity. The crawl tool reuses a
session by passing its id in the crawler config.
"""

from __future__ import annotations

import json
import logging
from functools import partial
from typing import Any, Mapping

from crawlkit.integrations.crawl4ai import Crawl4AIClient
from crawlkit.parsing.url_scope import is_valid_http_url

from ..safety import ActionRisk
from ..sessions import BROWSER_TYPES, SessionStore
from ..tools import ToolDefinition, ToolRegistry
from ..types import ToolResult
from ._client_context import SERVICE_ERRORS, failure, invalid, resolve_crawl_client

logger = logging.getLogger(__name__)

PREWARM_TIMEOUT_SECONDS = 30.0
CACHE_MODES = ("ENABLED", "BYPASS", "DISABLED", "READ_ONLY", "WRITE_ONLY")

# crawl argument -> browser_config / crawler_config key
BROWSER_OPTIONS = ("viewport_width", "viewport_height", "user_agent", "headers", "cookies")
CRAWLER_OPTIONS = (
    "wait_for",
    "css_selector",
    "excluded_tags",
    "word_count_threshold",
    "page_timeout",
    "scan_full_page",
    "remove_overlay_elements",
)


def register_session_tools(
    registry: ToolRegistry,
    sessions: SessionStore,
    client: Crawl4AIClient | None = None,
) -> None:
    """Register manage_session and crawl, both bound to ``sessions``."""

    registry.register_tool(
        ToolDefinition(
            name="manage_session",
            description=(
                "Create, clear or list browser sessions. A session keeps cookies and "
                "page state on the crawl server across requests."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "action": {
                        "type": "string",
                        "enum": ["create", "clear", "list"],
                        "description": "Operation to perform.",
                    },
                    "session_id": {
                        "type": "string",
                        "description": "Session id (optional for create, required for clear).",
                    },
                    "initial_url": {
                        "type": "string",
                        "description": "URL to load when the session is created.",
                    },
                    "browser_type": {
                        "type": "string",
                        "enum": list(BROWSER_TYPES),
                        "description": "Browser engine. Default: chromium.",
                    },
                },
                "required": ["action"],
                "additionalProperties": False,
            },
            handler=partial(_manage_session_handler, sessions=sessions, client=client),
            risk_level=ActionRisk.REVIEW,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="crawl",
            description=(
                "Crawl a single URL with full control over browser and crawler settings. "
                "Pass a session_id from manage_session to reuse that browser's cookies and state."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "The URL to crawl.",
                    },
                    "session_id": {
                        "type": "string",
                        "description": "Existing browser session to crawl in.",
                    },
                    "browser_type": {
                        "type": "string",
                        "enum": list(BROWSER_TYPES),
                        "description": "Browser engine when no session is used. Default: chromium.",
                    },
                    "viewport_width": {"type": "integer", "minimum": 1},
                    "viewport_height": {"type": "integer", "minimum": 1},
                    "user_agent": {"type": "string"},
                    "headers": {"type": "object", "description": "Extra request headers."},
                    "cookies": {"type": "array", "items": {"type": "object"}},
                    "js_code": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "JavaScript statements to run after the page loads.",
                    },
                    "wait_for": {
                        "type": "string",
                        "description": "CSS selector or js: condition to wait for.",
                    },
                    "css_selector": {
                        "type": "string",
                        "description": "Only keep content inside this selector.",
                    },
                    "excluded_tags": {"type": "array", "items": {"type": "string"}},
                    "word_count_threshold": {"type": "integer", "minimum": 0},
                    "page_timeout": {"type": "integer", "minimum": 1},
                    "scan_full_page": {"type": "boolean"},
                    "remove_overlay_elements": {"type": "boolean"},
                    "cache_mode": {
                        "type": "string",
                        "enum": list(CACHE_MODES),
                        "description": "Cache behaviour. Default: server setting.",
                    },
                    "crawler_config": {
                        "type": "object",
                        "description": "Extra crawler_config keys passed through to the server.",
                    },
                    "browser_config": {
                        "type": "object",
                        "description": "Extra browser_config keys passed through to the server.",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_crawl_handler, sessions=sessions, client=client),
            risk_level=ActionRisk.REVIEW,
        )
    )


def _build_crawl_configs(
    arguments: Mapping[str, Any],
) -> tuple[dict[str, Any], dict[str, Any] | None]:
    """Map crawl arguments onto ``(crawler_config, browser_config)``.

    Explicit arguments win over the pass-through objects. With a
    ``session_id`` the browser config is None because the session's browser
    is already configured on the server.
    """
    browser_config: dict[str, Any] = dict(arguments.get("browser_config") or {})
    browser_config["headless"] = True
    browser_config["browser_type"] = arguments.get("browser_type") or browser_config.get(
        "browser_type", "chromium"
    )
    for key in BROWSER_OPTIONS:
        if arguments.get(key) is not None:
            browser_config[key] = arguments[key]

    crawler_config: dict[str, Any] = dict(arguments.get("crawler_config") or {})
    for key in CRAWLER_OPTIONS:
        if arguments.get(key) is not None:
            crawler_config[key] = arguments[key]
    if arguments.get("js_code"):
        crawler_config["js_code"] = "\n".join(arguments["js_code"])
    if arguments.get("cache_mode"):
        crawler_config["cache_mode"] = arguments["cache_mode"]

    session_id = arguments.get("session_id")
    if session_id:
        crawler_config["session_id"] = session_id
        return crawler_config, None
    return crawler_config, browser_config


def _crawl_handler(
    arguments: Mapping[str, Any],
    sessions: SessionStore,
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for crawl tool."""
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("crawl", "url: Invalid url")

    crawler_config, browser_config = _build_crawl_configs(arguments)
    session_id = arguments.get("session_id")
    if session_id and not sessions.touch(session_id):
        # The server may still know the id, e.g. after a restart of this process
        logger.warning("Crawling with untracked session %s", session_id)

    try:
        response = resolve_crawl_client(client).crawl(
            [url],
            crawler_config=crawler_config,
            browser_config=browser_config,
        )
    except SERVICE_ERRORS as exc:
        return failure("crawl", exc)

    if not response.results:
        return failure("crawl", "Invalid response from server: no results received")
    item = response.results[0]
    if not item.success:
        return failure("crawl", item.error_message or "Unknown error")

    content = item.display_content or "No content extracted"
    text = content
    if item.metadata:
        text += f"\n\n---\nMetadata:\n{json.dumps(item.metadata, indent=2)}"
    return ToolResult(
        success=True,
        output={
            "text": text,
            "url": url,
            "session_id": session_id,
            "content": content,
            "metadata": item.metadata,
        },
    )


def _manage_session_handler(
    arguments: Mapping[str, Any],
    sessions: SessionStore,
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for manage_session tool."""
    action = arguments.get("action")
    if action == "create":
        return _create_session(arguments, sessions, client)
    if action == "clear":
        session_id = arguments.get("session_id")
        if not session_id:
            return invalid("manage_session", "session_id: Required for clear action")
        return _clear_session(session_id, sessions)
    if action == "list":
        return _list_sessions(sessions)
    return invalid("manage_session", f"action: Unknown action {action!r}")


def _create_session(
    arguments: Mapping[str, Any],
    sessions: SessionStore,
    client: Crawl4AIClient | None,
) -> ToolResult:
    initial_url = arguments.get("initial_url")
    info = sessions.create(
        session_id=arguments.get("session_id"),
        initial_url=initial_url,
        browser_type=arguments.get("browser_type"),
    )

    if initial_url:
        # The session exists even if the first page load fails
        try:
            resolve_crawl_client(client).crawl(
                [initial_url],
                browser_config={"headless": True, "browser_type": info.browser_type},
                crawler_config={"session_id": info.session_id, "cache_mode": "BYPASS"},
                timeout=PREWARM_TIMEOUT_SECONDS,
            )
            sessions.touch(info.session_id)
        except SERVICE_ERRORS as exc:
            logger.error("Initial crawl failed for session %s: %s", info.session_id, exc)

    status = f"Pre-warmed with: {initial_url}" if initial_url else "Ready for use"
    text = (
        "Session created successfully:\n"
        f"Session ID: {info.session_id}\n"
        f"Browser: {info.browser_type}\n"
        f"{status}\n\n"
        "Use this session_id with the crawl tool to maintain state across requests."
    )
    return ToolResult(
        success=True,
        output={
            "text": text,
            "session_id": info.session_id,
            "browser_type": info.browser_type,
            "initial_url": initial_url,
            "created_at": info.created_at.isoformat(),
        },
    )


def _clear_session(session_id: str, sessions: SessionStore) -> ToolResult:
    removed = sessions.clear(session_id)
    text = (
        f"Session cleared successfully: {session_id}"
        if removed
        else f"Session not found: {session_id}"
    )
    return ToolResult(success=True, output={"text": text, "session_id": session_id, "cleared": removed})


def _list_sessions(sessions: SessionStore) -> ToolResult:
    now = sessions.clock()
    entries = [info.to_dict(now) for info in sessions]
    if not entries:
        return ToolResult(success=True, output={"text": "No active sessions found.", "sessions": []})

    listing = "\n".join(
        f"- {entry['session_id']} ({entry['browser_type']}, created {entry['age_minutes']}m ago, "
        f"last used {entry['last_used_minutes_ago']}m ago)"
        for entry in entries
    )
    return ToolResult(
        success=True,
        output={"text": f"Active sessions ({len(entries)}):\n{listing}", "sessions": entries},
    )
