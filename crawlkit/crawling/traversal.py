"""Recursive same-origin site traversal.

Starting from a seed URL, pages are visited breadth-first through the crawl
server, one fetch at a time. Each fetched page's internal links (as reported
by the link classifier) feed the next layer of the frontier.

Invariants:
- A URL is marked visited before its fetch, so no URL is ever fetched twice
- Only links on the seed's exact hostname are followed
- No page deeper than ``max_depth`` is fetched and no more than
  ``max_pages`` results are collected
- A failing page is logged and skipped; it never aborts the traversal
"""

from __future__ import annotations

import logging
import re
from collections import deque
from dataclasses import dataclass, field
from typing import Any, Deque, List

from crawlkit.integrations.crawl4ai import Crawl4AIClient, Crawl4AIError
from crawlkit.parsing.url_scope import (
    get_hostname,
    is_valid_http_url,
    normalize_url,
    resolve_url,
)

from .classifier import collect_page_links

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 3
DEFAULT_MAX_PAGES = 50


class TraversalError(ValueError):
    """Raised when a traversal cannot be attempted at all."""


class InvalidPatternError(ValueError):
    """Raised when an include/exclude pattern is not a valid regular expression."""


def compile_pattern(pattern: str | None, name: str) -> re.Pattern[str] | None:
    """Compile user-supplied pattern text, failing fast on bad syntax."""
    if not pattern:
        return None
    try:
        return re.compile(pattern)
    except re.error as exc:
        raise InvalidPatternError(f"Invalid {name}: {exc}") from exc


@dataclass(frozen=True)
class TraversalBudget:
    """Depth and page limits for one traversal call."""

    max_depth: int = DEFAULT_MAX_DEPTH
    max_pages: int = DEFAULT_MAX_PAGES

    def __post_init__(self) -> None:
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages}")


class PatternFilter:
    """Include/exclude regular expressions applied to candidate URLs.

    Patterns are searched anywhere in the URL. An exclude match always drops
    the URL; when an include pattern is given, non-matching URLs are dropped.
    """

    def __init__(self, include_pattern: str | None = None, exclude_pattern: str | None = None) -> None:
        self.include_pattern = include_pattern or None
        self.exclude_pattern = exclude_pattern or None
        self._include = compile_pattern(include_pattern, "include_pattern")
        self._exclude = compile_pattern(exclude_pattern, "exclude_pattern")

    def allows(self, url: str) -> bool:
        if self._exclude is not None and self._exclude.search(url):
            return False
        if self._include is not None and not self._include.search(url):
            return False
        return True


@dataclass(frozen=True)
class FrontierEntry:
    url: str
    depth: int


@dataclass(frozen=True)
class PageResult:
    """A successfully fetched page."""

    url: str
    depth: int
    content: str
    internal_link_count: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "url": self.url,
            "depth": self.depth,
            "content_length": len(self.content),
            "internal_links_found": self.internal_link_count,
        }


@dataclass
class TraversalResult:
    """Outcome of one recursive crawl.

    Attributes:
        seed_url: The URL the traversal started from, as given.
        budget: Limits the traversal ran under.
        pages: Successfully fetched pages in visiting order.
        max_depth_reached: Deepest depth among ``pages``.
        failed_urls: URLs whose fetch failed or was reported unsuccessful.
        filtered_urls: URLs dropped by the include/exclude patterns.
    """

    seed_url: str
    budget: TraversalBudget
    pages: List[PageResult] = field(default_factory=list)
    max_depth_reached: int = 0
    failed_urls: List[str] = field(default_factory=list)
    filtered_urls: List[str] = field(default_factory=list)

    @property
    def pages_crawled(self) -> int:
        return len(self.pages)

    def to_dict(self) -> dict[str, Any]:
        return {
            "starting_url": self.seed_url,
            "pages_crawled": self.pages_crawled,
            "max_depth_reached": self.max_depth_reached,
            "max_depth": self.budget.max_depth,
            "max_pages": self.budget.max_pages,
            "failed_count": len(self.failed_urls),
            "filtered_count": len(self.filtered_urls),
            "pages": [page.to_dict() for page in self.pages],
        }

    def render(self) -> str:
        """Render the plain-text crawl report."""
        text = (
            "Recursive crawl completed:\n\n"
            f"Pages crawled: {self.pages_crawled}\n"
            f"Starting URL: {self.seed_url}\n"
        )
        if not self.pages:
            return text + (
                "\nNo pages could be crawled. This might be due to:\n"
                "- The starting URL returned an error\n"
                "- No internal links were found\n"
                "- All discovered links were filtered out by include/exclude patterns"
            )

        page_lines = "\n".join(
            f"- [Depth {page.depth}] {page.url}\n"
            f"  Content: {len(page.content)} chars\n"
            f"  Internal links found: {page.internal_link_count}"
            for page in self.pages
        )
        return text + (
            f"Max depth reached: {self.max_depth_reached} (limit: {self.budget.max_depth})\n\n"
            "Note: Only internal links (same domain) are followed during recursive crawling.\n\n"
            f"Pages found:\n{page_lines}"
        )


def crawl_recursive(
    client: Crawl4AIClient,
    seed_url: str,
    budget: TraversalBudget | None = None,
    filters: PatternFilter | None = None,
) -> TraversalResult:
    """Crawl same-origin pages breadth-first from ``seed_url``.

    Args:
        client: Crawl server client; only ``fetch_page`` is used.
        seed_url: Absolute http(s) URL to start from.
        budget: Depth/page limits (defaults: depth 3, 50 pages).
        filters: Optional include/exclude patterns.

    Returns:
        TraversalResult with the fetched pages and counters.

    Raises:
        TraversalError: If ``seed_url`` is not an absolute http(s) URL.
    """
    if not is_valid_http_url(seed_url):
        raise TraversalError(f"Invalid seed URL: {seed_url!r}")

    budget = budget or TraversalBudget()
    filters = filters or PatternFilter()
    result = TraversalResult(seed_url=seed_url, budget=budget)

    seed_host = get_hostname(seed_url)
    visited: set[str] = set()
    frontier: Deque[FrontierEntry] = deque([FrontierEntry(seed_url, 0)])

    logger.info(
        "Starting recursive crawl: %s (max_depth=%d, max_pages=%d)",
        seed_url,
        budget.max_depth,
        budget.max_pages,
    )

    while frontier and len(result.pages) < budget.max_pages:
        current = frontier.popleft()
        key = normalize_url(current.url)
        if key in visited or current.depth > budget.max_depth:
            continue

        visited.add(key)

        if not filters.allows(current.url):
            result.filtered_urls.append(current.url)
            logger.debug("Filtered out by pattern: %s", current.url)
            continue

        try:
            page = client.fetch_page(current.url, bypass_cache=True)
        except Crawl4AIError as exc:
            result.failed_urls.append(current.url)
            logger.warning("Failed to crawl %s: %s", current.url, exc)
            continue

        if not page.success:
            result.failed_urls.append(current.url)
            logger.warning(
                "Crawl server reported failure for %s: %s",
                current.url,
                page.error_message or "unknown error",
            )
            continue

        links = collect_page_links(page, current.url)
        result.pages.append(PageResult(
            url=current.url,
            depth=current.depth,
            content=page.content,
            internal_link_count=len(links.internal),
        ))
        result.max_depth_reached = max(result.max_depth_reached, current.depth)

        logger.debug(
            "Crawled [%d/%d] depth=%d: %s",
            len(result.pages),
            budget.max_pages,
            current.depth,
            current.url,
        )

        if current.depth >= budget.max_depth:
            continue

        for href in links.internal:
            absolute = resolve_url(current.url, href)
            if absolute is None or not is_valid_http_url(absolute):
                logger.debug("Skipping invalid link %r on %s", href, current.url)
                continue
            candidate = normalize_url(absolute)
            if candidate in visited or get_hostname(candidate) != seed_host:
                continue
            frontier.append(FrontierEntry(candidate, current.depth + 1))

    logger.info(
        "Recursive crawl complete for %s: %d pages, %d failed, max depth %d",
        seed_url,
        len(result.pages),
        len(result.failed_urls),
        result.max_depth_reached,
    )
    return result
