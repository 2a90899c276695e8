"""Link extraction from raw page content.

The crawl service normally reports a page's links already split into internal
and external lists. This module covers the cases where it does not:

- Scan markup or markdown for ``href`` attributes when no structured links
  were returned
- Pull ``<loc>`` entries out of XML sitemaps
- Pull followable URLs out of sitemaps and RSS/Atom feeds
"""

from __future__ import annotations

import logging
import re
from typing import List

from bs4 import BeautifulSoup

logger = logging.getLogger(__name__)

# Permissive on purpose: any quote style, no tag context required
HREF_PATTERN = re.compile(r"""href=["']([^"']+)["']""", re.IGNORECASE)

FEED_URL_PATTERN = re.compile(
    r"<loc>(.*?)</loc>|<link[^>]*>(.*?)</link>|href=[\"']([^\"']+)[\"']",
    re.IGNORECASE,
)


def find_hrefs(content: str) -> List[str]:
    """Return every ``href="..."`` / ``href='...'`` value in discovery order.

    Example:
        >>> find_hrefs('<a href="/a">A</a> <a href="b.html">B</a>')
        ['/a', 'b.html']
    """
    if not content or "href=" not in content.lower():
        return []
    return [match.group(1) for match in HREF_PATTERN.finditer(content)]


def extract_sitemap_urls(xml: str) -> List[str]:
    """Extract the ``<loc>`` URLs from a sitemap or sitemap index.

    Args:
        xml: The raw sitemap document

    Returns:
        URLs in document order; blank entries are skipped
    """
    soup = BeautifulSoup(xml, "html.parser")
    urls = []
    for loc in soup.find_all("loc"):
        text = loc.get_text(strip=True)
        if text:
            urls.append(text)
    logger.debug("Found %d <loc> entries in sitemap", len(urls))
    return urls


def extract_feed_urls(content: str) -> List[str]:
    """Extract absolute http(s) URLs from sitemap, RSS or Atom content.

    ``<loc>`` values, ``<link>`` bodies and ``href`` attributes all count.
    Only values starting with ``http`` are kept.
    """
    found: List[str] = []
    for match in FEED_URL_PATTERN.finditer(content or ""):
        url = (match.group(1) or match.group(2) or match.group(3) or "").strip()
        if url.startswith("http"):
            found.append(url)
    return found
