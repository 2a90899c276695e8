"""Crawling tool registrations for the orchestration runtime.

Tools:
1. crawl_recursive: Breadth-first same-origin crawl from a seed URL
2. smart_crawl: Detect the content type, fetch, optionally follow listed URLs
3. batch_crawl: Crawl many URLs in one server request
4. parse_sitemap: List the URLs of an XML sitemap
"""

from __future__ import annotations

import json
from functools import partial
from typing import Any, Mapping

from crawlkit.crawling.strategy import select_strategy
from crawlkit.crawling.traversal import (
    DEFAULT_MAX_DEPTH,
    DEFAULT_MAX_PAGES,
    PatternFilter,
    TraversalBudget,
    compile_pattern,
    crawl_recursive,
)
from crawlkit.integrations.crawl4ai import Crawl4AIClient, CrawlResultItem
from crawlkit.parsing.link_extractor import extract_feed_urls, extract_sitemap_urls
from crawlkit.parsing.url_scope import is_valid_http_url

from ..safety import ActionRisk
from ..tools import ToolDefinition, ToolRegistry
from ..types import ToolResult
from ._client_context import SERVICE_ERRORS, failure, invalid, resolve_crawl_client

FOLLOW_LINK_LIMIT = 10
FOLLOW_CONCURRENCY = 3
SITEMAP_PREVIEW_LIMIT = 100
HEADLESS_CHROMIUM = {"headless": True, "browser_type": "chromium"}


def register_crawler_tools(registry: ToolRegistry, client: Crawl4AIClient | None = None) -> None:
    """Register all crawling tools with the registry."""

    registry.register_tool(
        ToolDefinition(
            name="crawl_recursive",
            description=(
                "Crawl a website recursively, following internal links on the same "
                "hostname breadth-first. Returns each page's depth, content size and "
                "internal link count."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {
                        "type": "string",
                        "description": "Starting URL (absolute http/https).",
                    },
                    "max_depth": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Maximum link depth from the starting URL. Default: 3.",
                    },
                    "max_pages": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Maximum pages to crawl. Default: 50.",
                    },
                    "include_pattern": {
                        "type": "string",
                        "description": "Regex URLs must match to be crawled.",
                    },
                    "exclude_pattern": {
                        "type": "string",
                        "description": "Regex of URLs to skip (e.g. '.*\\\\.pdf$').",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_crawl_recursive_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="smart_crawl",
            description=(
                "Detect whether a URL is HTML, a sitemap, an RSS feed, plain text or XML, "
                "crawl it, and optionally follow the URLs a sitemap or feed lists."
            ),
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "URL to crawl."},
                    "max_depth": {
                        "type": "integer",
                        "minimum": 0,
                        "description": "Upper bound on followed links (at most 10).",
                    },
                    "follow_links": {
                        "type": "boolean",
                        "description": "Follow URLs listed by sitemaps, feeds and XML.",
                    },
                    "bypass_cache": {
                        "type": "boolean",
                        "description": "Bypass the server cache.",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_smart_crawl_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="batch_crawl",
            description="Crawl multiple URLs concurrently on the server and report per-URL success.",
            parameters={
                "type": "object",
                "properties": {
                    "urls": {
                        "type": "array",
                        "items": {"type": "string"},
                        "description": "URLs to crawl.",
                    },
                    "max_concurrent": {
                        "type": "integer",
                        "minimum": 1,
                        "description": "Maximum parallel crawls on the server.",
                    },
                    "remove_images": {
                        "type": "boolean",
                        "description": "Strip img/picture/svg tags from the output.",
                    },
                    "bypass_cache": {
                        "type": "boolean",
                        "description": "Bypass the server cache.",
                    },
                },
                "required": ["urls"],
                "additionalProperties": False,
            },
            handler=partial(_batch_crawl_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )

    registry.register_tool(
        ToolDefinition(
            name="parse_sitemap",
            description="Fetch an XML sitemap and list its URLs, optionally filtered by a regex.",
            parameters={
                "type": "object",
                "properties": {
                    "url": {"type": "string", "description": "Sitemap URL."},
                    "filter_pattern": {
                        "type": "string",
                        "description": "Regex URLs must match to be listed.",
                    },
                },
                "required": ["url"],
                "additionalProperties": False,
            },
            handler=partial(_parse_sitemap_handler, client=client),
            risk_level=ActionRisk.SAFE,
        )
    )


# =============================================================================
# Handlers
# =============================================================================


def _crawl_recursive_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for crawl_recursive tool."""
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("crawl_recursive", "url: Invalid url")

    max_depth = arguments.get("max_depth")
    try:
        budget = TraversalBudget(
            max_depth=DEFAULT_MAX_DEPTH if max_depth is None else max_depth,
            max_pages=arguments.get("max_pages") or DEFAULT_MAX_PAGES,
        )
        filters = PatternFilter(
            include_pattern=arguments.get("include_pattern"),
            exclude_pattern=arguments.get("exclude_pattern"),
        )
    except ValueError as exc:
        return invalid("crawl_recursive", str(exc))

    try:
        client = resolve_crawl_client(client)
    except SERVICE_ERRORS as exc:
        return failure("crawl recursively", exc)

    result = crawl_recursive(client, url, budget=budget, filters=filters)
    output = result.to_dict()
    output["text"] = result.render()
    return ToolResult(success=True, output=output)


def _metadata_block(item: CrawlResultItem | None) -> str:
    if item is None or not item.metadata:
        return ""
    return f"\n\n---\nMetadata:\n{json.dumps(item.metadata, indent=2)}"


def _smart_crawl_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for smart_crawl tool."""
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("smart_crawl", "url: Invalid url")

    bypass_cache = bool(arguments.get("bypass_cache", False))

    try:
        client = resolve_crawl_client(client)
        strategy = select_strategy(client, url)
        response = client.crawl(
            [url],
            crawler_config={"cache_mode": "BYPASS" if bypass_cache else "ENABLED"},
            browser_config=HEADLESS_CHROMIUM,
        )
    except SERVICE_ERRORS as exc:
        return failure("smart crawl", exc)

    item = response.results[0] if response.results else None
    content = (item.display_content if item else "") or "No content extracted"
    output: dict[str, Any] = {
        "url": url,
        "content_type": strategy.value,
        "followed_urls": [],
    }

    if arguments.get("follow_links") and strategy.is_link_listing:
        # Sitemap and feed tags survive in the raw html, not in the markdown
        found = extract_feed_urls(item.html) if item else []
        if not found:
            found = extract_feed_urls(content)
        if found:
            limit = min(FOLLOW_LINK_LIMIT, arguments.get("max_depth") or FOLLOW_LINK_LIMIT)
            to_follow = found[:limit]
            try:
                client.crawl(
                    to_follow,
                    crawler_config={"cache_mode": "BYPASS"} if bypass_cache else None,
                    max_concurrent=FOLLOW_CONCURRENCY,
                )
            except SERVICE_ERRORS as exc:
                return failure("smart crawl", exc)

            followed = "\n".join(f"{i}. {link}" for i, link in enumerate(to_follow, start=1))
            output["followed_urls"] = to_follow
            output["text"] = (
                f"Smart crawl detected content type: {strategy.value}\n\n"
                f"Main content:\n{content}\n\n"
                f"---\nFollowed {len(to_follow)} links:\n{followed}"
                f"{_metadata_block(item)}"
            )
            return ToolResult(success=True, output=output)

    output["text"] = (
        f"Smart crawl detected content type: {strategy.value}\n\n{content}{_metadata_block(item)}"
    )
    return ToolResult(success=True, output=output)


def _batch_crawl_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for batch_crawl tool."""
    urls = list(arguments.get("urls") or [])
    if not urls:
        return invalid("batch_crawl", "urls: Must contain at least one url")
    bad = [url for url in urls if not is_valid_http_url(url)]
    if bad:
        return invalid("batch_crawl", f"urls: Invalid url {bad[0]!r}")

    crawler_config: dict[str, Any] = {}
    if arguments.get("remove_images"):
        crawler_config["exclude_tags"] = ["img", "picture", "svg"]
    if arguments.get("bypass_cache"):
        crawler_config["cache_mode"] = "BYPASS"

    try:
        client = resolve_crawl_client(client)
        response = client.crawl(
            urls,
            crawler_config=crawler_config or None,
            max_concurrent=arguments.get("max_concurrent"),
        )
    except SERVICE_ERRORS as exc:
        return failure("batch crawl", exc)

    lines = []
    results = []
    for index, item in enumerate(response.results):
        item_url = urls[index] if index < len(urls) else item.url
        lines.append(f"{index + 1}. {item_url}: {'Success' if item.success else 'Failed'}")
        results.append({"url": item_url, "success": item.success})

    text = f"Batch crawl completed. Processed {len(response.results)} URLs:\n\n" + "\n".join(lines)
    metrics = response.metrics_text()
    if metrics:
        text += f"\n\n{metrics}"

    return ToolResult(success=True, output={"text": text, "results": results})


def _parse_sitemap_handler(
    arguments: Mapping[str, Any],
    client: Crawl4AIClient | None = None,
) -> ToolResult:
    """Handler for parse_sitemap tool."""
    url = arguments.get("url")
    if not url or not is_valid_http_url(url):
        return invalid("parse_sitemap", "url: Invalid url")
    try:
        pattern = compile_pattern(arguments.get("filter_pattern"), "filter_pattern")
    except ValueError as exc:
        return invalid("parse_sitemap", str(exc))

    try:
        client = resolve_crawl_client(client)
        document = client.fetch_document(url)
    except SERVICE_ERRORS as exc:
        return failure("parse sitemap", exc)

    urls = extract_sitemap_urls(document)
    filtered = [u for u in urls if pattern.search(u)] if pattern else urls

    listing = "\n".join(filtered[:SITEMAP_PREVIEW_LIMIT])
    if len(filtered) > SITEMAP_PREVIEW_LIMIT:
        listing += f"\n... and {len(filtered) - SITEMAP_PREVIEW_LIMIT} more"

    text = (
        "Sitemap parsed successfully:\n\n"
        f"Total URLs found: {len(urls)}\n"
        f"Filtered URLs: {len(filtered)}\n\n"
        f"URLs:\n{listing}"
    )
    return ToolResult(
        success=True,
        output={
            "text": text,
            "total_urls": len(urls),
            "filtered_urls": len(filtered),
            "urls": filtered,
        },
    )
