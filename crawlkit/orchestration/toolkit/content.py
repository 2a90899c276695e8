"""Single-page content tools backed by the crawl server's one-shot endpoints.

Tools:
1. get_markdown: Page markdown with an optional content filter
2. get_html: Sanitized page HTML
3. extract_with_llm: Ask the server's LLM a question about a page
"""

from __future__ import annotations

from functools import partial
from typing import Any, Mapping

from crawlkit.integrations.crawl4ai import Crawl4AIClient
from crawlkit.parsing.url_scope import is_valid_http_url

from ..safety import ActionRisk
from ..tools import ToolDefinition, ToolRegistry
from ..types import ToolResult
from ._client_context import SERVICE_ERRORS, failure, invalid, resolve_crawl_client

MARKDOWN_FILTERS = ("raw", "fit", "bm25", "llm")
QUERY_FILTERS = ("bm25", "llm")


def register_content_tools(registry: ToolRegistry, client: Crawl4AIClient | None = None) -> None:
    """Register markdown, HTML and LLM extraction tools."""

    registry.register_tool(
        ToolDefinition(
            name="get_markdown",
            description=(
                "Get a page as markdown. 'fit' removes boilerplate, 'raw' keeps "
                "everything, 'bm25' and 'llm' filter by relevance to a query."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Page URL."},
                    "filter": {
                        "type": "string",
                        "enum": list(MARKDOWN_FILTERS),
                        "description": "Content filter. Default: fit.",
                    },
                    "query": {
                        "type": "string",
                        "description": "Query for the bm25 and llm filters.",
                    },
                    "cache": {
                        "type": "string",
                        "description": "Cache-bust token. Default: '0'.",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_get_markdown_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="get_html",
            description="Get the sanitized HTML of a page.",
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Page URL."},
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_get_html_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="extract_with_llm",
            description=(
                "Ask a natural-language question about a page; the crawl server's "
                "configured LLM answers it from the page content."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Page URL."},
                    "query": {"type": "string", "description": "Question to answer."},
                },
                "required": ["url", "query"],
                "additionalProperties": False,
            },
            handler=partial(_extract_with_llm_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )


def _get_markdown_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("get_markdown", "url: Invalid url")
    filter_type = arguments.get("filter") or "fit"
    query = arguments.get("query")
    if filter_type in QUERY_FILTERS and not query:
        return invalid("get_markdown", f"query: Required when using {filter_type} filter")
    cache = arguments.get("cache") or "0"

    try:
        client = resolve_crawl_client(client)
        payload = client.get_markdown(url, filter=filter_type, query=query, cache=cache)
    except SERVICE_ERRORS as exc:
        return failure("get markdown", exc)

    markdown = payload.get("markdown") or ""
    text = f"URL: {payload.get('url', url)}\nFilter: {payload.get('filter', filter_type)}"
    if payload.get("query"):
        text += f"\nQuery: {payload['query']}"
    text += f"\nCache: {payload.get('cache', cache)}\n\nMarkdown:\n{markdown or 'No content found.'}"

    return ToolResult(
        success=True,
        output={"text": text, "url": url, "filter": filter_type, "markdown": markdown},
    )


def _get_html_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("get_html", "url: Invalid url")

    try:
        client = resolve_crawl_client(client)
        payload = client.get_html(url)
    except SERVICE_ERRORS as exc:
        return failure("get HTML", exc)

    html = payload.get("html") or ""
    return ToolResult(success=True, output={"text": html, "url": url})


def _extract_with_llm_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("extract_with_llm", "url: Invalid url")
    query = (arguments.get("query") or "").strip()
    if not query:
        return invalid("extract_with_llm", "query: Must not be empty")

    try:
        client = resolve_crawl_client(client)
        payload = client.extract_with_llm(url, query)
    except SERVICE_ERRORS as exc:
        return failure("extract with LLM", exc)

    answer = payload.get("answer") or ""
    return ToolResult(success=True, output={"text": answer, "url": url, "query": query})
