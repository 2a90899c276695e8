"""Recursive traversal, link classification and fetch strategy selection."""

from __future__ import annotations

from .classifier import LinkBuckets, PageLinks, classify_links, collect_page_links
from .strategy import FetchStrategy, detect_strategy, select_strategy
from .traversal import (
    InvalidPatternError,
    PageResult,
    PatternFilter,
    TraversalBudget,
    TraversalError,
    TraversalResult,
    crawl_recursive,
)

__all__ = [
    "FetchStrategy",
    "InvalidPatternError",
    "LinkBuckets",
    "PageLinks",
    "PageResult",
    "PatternFilter",
    "TraversalBudget",
    "TraversalError",
    "TraversalResult",
    "classify_links",
    "collect_page_links",
    "crawl_recursive",
    "detect_strategy",
    "select_strategy",
]
