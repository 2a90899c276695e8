"""Fetch strategy selection from URL shape and Content-Type."""

from __future__ import annotations

import logging
from enum import Enum

from crawlkit.integrations.crawl4ai import Crawl4AIClient, Crawl4AIError
from crawlkit.parsing.url_scope import url_path

logger = logging.getLogger(__name__)


class FetchStrategy(str, Enum):
    """How a top-level URL should be fetched and interpreted."""

    HTML = "html"
    SITEMAP = "sitemap"
    RSS = "rss"
    TEXT = "text"
    XML = "xml"

    @property
    def is_link_listing(self) -> bool:
        """Whether the document mainly lists other URLs to follow."""
        return self in (FetchStrategy.SITEMAP, FetchStrategy.RSS, FetchStrategy.XML)


def detect_strategy(url: str, content_type: str = "") -> FetchStrategy:
    """Pick a strategy for ``url``.

    URL-shape rules win over header evidence, in this order: sitemap, rss,
    text, xml (header), json (header, fetched as html), html.

    Examples:
        >>> detect_strategy("https://example.com/sitemap_index.xml").value
        'sitemap'
        >>> detect_strategy("https://example.com/data", "text/xml; charset=utf-8").value
        'xml'
    """
    lowered_url = url.lower()
    path = url_path(url)
    content_type = (content_type or "").lower()

    if "sitemap" in lowered_url or path.endswith(".xml"):
        return FetchStrategy.SITEMAP
    if "rss" in lowered_url or "feed" in lowered_url:
        return FetchStrategy.RSS
    if path.endswith(".txt") or "text/plain" in content_type:
        return FetchStrategy.TEXT
    if "application/xml" in content_type or "text/xml" in content_type:
        return FetchStrategy.XML
    # JSON has no dedicated strategy; it goes through the generic fetch path
    return FetchStrategy.HTML


def probe_content_type(client: Crawl4AIClient, url: str) -> str:
    """Best-effort HEAD probe; failures mean "no header evidence"."""
    try:
        return client.head_content_type(url)
    except Crawl4AIError as exc:
        logger.debug("HEAD request failed for %s, using URL heuristics only: %s", url, exc)
        return ""


def select_strategy(client: Crawl4AIClient, url: str) -> FetchStrategy:
    """Probe ``url`` once and pick its fetch strategy."""
    content_type = probe_content_type(client, url)
    strategy = detect_strategy(url, content_type)
    logger.info("Detected %s strategy for %s", strategy.value, url)
    return strategy
