"""Client for the remote Crawl4AI crawling/rendering server."""

from __future__ import annotations

from .client import Crawl4AIClient, Crawl4AIError, get_crawl_client
from .models import CrawlLinks, CrawlResponse, CrawlResultItem, MarkdownContent, link_hrefs

__all__ = [
    "Crawl4AIClient",
    "Crawl4AIError",
    "CrawlLinks",
    "CrawlResponse",
    "CrawlResultItem",
    "MarkdownContent",
    "get_crawl_client",
    "link_hrefs",
]
