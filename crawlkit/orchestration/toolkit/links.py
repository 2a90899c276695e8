"""Link extraction tool registration."""

from __future__ import annotations

from functools import partial
from typing import Any, Mapping

from crawlkit.crawling.classifier import (
    classify_links,
    collect_page_links,
    looks_like_json,
    render_flat_links,
    render_link_report,
)
from crawlkit.integrations.crawl4ai import Crawl4AIClient
from crawlkit.parsing.url_scope import is_valid_http_url

from ..safety import ActionRisk
from ..tools import ToolDefinition, ToolRegistry
from ..types import ToolResult
from ._client_context import SERVICE_ERRORS, failure, invalid, resolve_crawl_client


def register_link_tools(registry: ToolRegistry, client: Crawl4AIClient | None = None) -> None:
    """Register the extract_links tool."""

    registry.register_tool(
        ToolDefinition(
            name="extract_links",
            description=(
                "Extract the links on a page and group them into internal, external, "
                "social, documents, images and scripts."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Page to analyse."},
                    "categorize": {
                        "type": "boolean",
                        "description": "Group links by type. Default: true.",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_extract_links_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )


def _extract_links_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for extract_links tool."""
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("extract_links", "url: Invalid url")
    categorize = arguments.get("categorize", True)

    try:
        client = resolve_crawl_client(client)
        page = client.fetch_page(url, bypass_cache=True)
    except SERVICE_ERRORS as exc:
        return failure("extract links", exc)

    if not page.success:
        return failure("extract links", page.error_message or "crawl server reported failure")

    links = collect_page_links(page, url)

    if not links.all_links and looks_like_json(url, page.display_content, page.html):
        text = (
            f"Link analysis for {url}:\n\n"
            "No links found. This URL appears to return JSON data rather than an "
            "HTML page, so it has no links to extract."
        )
        return ToolResult(
            success=True,
            output={"text": text, "url": url, "categorized": categorize, "total": 0, "links": {}},
        )

    if not categorize:
        all_links = links.all_links
        return ToolResult(
            success=True,
            output={
                "text": render_flat_links(url, all_links),
                "url": url,
                "categorized": False,
                "total": len(all_links),
                "links": {"all": all_links},
            },
        )

    buckets = classify_links(links.internal, links.external)
    return ToolResult(
        success=True,
        output={
            "text": render_link_report(url, buckets),
            "url": url,
            "categorized": True,
            "total": buckets.total,
            "counts": buckets.counts(),
            "links": buckets.to_dict(),
        },
    )
