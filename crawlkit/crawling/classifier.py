"""Link classification for crawled pages.

Links reported for a page are split into semantic buckets:

- internal: same hostname as the page
- external: any other hostname
- social: external links to a major social platform
- documents / images / scripts: links whose path ends in a matching extension

The specialised buckets are carved out of ``external`` (and, by default, out
of ``internal`` too), so every link ends up in exactly one bucket.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Iterable, List, Sequence

from crawlkit.integrations.crawl4ai.models import CrawlResultItem
from crawlkit.parsing.link_extractor import find_hrefs
from crawlkit.parsing.url_scope import get_hostname, resolve_url, url_path

logger = logging.getLogger(__name__)

SOCIAL_DOMAINS = (
    "facebook.com",
    "twitter.com",
    "x.com",
    "linkedin.com",
    "instagram.com",
    "youtube.com",
    "tiktok.com",
    "pinterest.com",
)
DOCUMENT_EXTENSIONS = (".pdf", ".doc", ".docx", ".xls", ".xlsx", ".ppt", ".pptx")
IMAGE_EXTENSIONS = (".jpg", ".jpeg", ".png", ".gif", ".svg", ".webp")
SCRIPT_EXTENSIONS = (".js", ".css")

BUCKET_NAMES = ("internal", "external", "social", "documents", "images", "scripts")
REPORT_PREVIEW_LIMIT = 10


@dataclass
class LinkBuckets:
    """Categorized links of one page, each bucket in discovery order."""

    internal: List[str] = field(default_factory=list)
    external: List[str] = field(default_factory=list)
    social: List[str] = field(default_factory=list)
    documents: List[str] = field(default_factory=list)
    images: List[str] = field(default_factory=list)
    scripts: List[str] = field(default_factory=list)

    def items(self) -> list[tuple[str, List[str]]]:
        return [(name, getattr(self, name)) for name in BUCKET_NAMES]

    def to_dict(self) -> dict[str, list[str]]:
        return {name: list(links) for name, links in self.items()}

    def counts(self) -> dict[str, int]:
        return {name: len(links) for name, links in self.items()}

    @property
    def total(self) -> int:
        return sum(len(links) for _, links in self.items())


@dataclass(frozen=True)
class PageLinks:
    """Internal/external links of a page and how they were obtained."""

    internal: List[str]
    external: List[str]
    from_fallback: bool = False

    @property
    def all_links(self) -> List[str]:
        return [*self.internal, *self.external]


def _is_social(url: str) -> bool:
    host = get_hostname(url)
    return any(host == domain or host.endswith("." + domain) for domain in SOCIAL_DOMAINS)


def _has_extension(url: str, extensions: Sequence[str]) -> bool:
    return url_path(url).endswith(tuple(extensions))


def _extension_bucket(url: str) -> str | None:
    if _has_extension(url, DOCUMENT_EXTENSIONS):
        return "documents"
    if _has_extension(url, IMAGE_EXTENSIONS):
        return "images"
    if _has_extension(url, SCRIPT_EXTENSIONS):
        return "scripts"
    return None


def split_by_host(hrefs: Iterable[str], page_url: str) -> tuple[List[str], List[str]]:
    """Resolve hrefs against ``page_url`` and split them by hostname.

    Hrefs that cannot be resolved to an absolute URL are dropped.

    Returns:
        Tuple of (internal, external) absolute URLs
    """
    page_host = get_hostname(page_url)
    internal: List[str] = []
    external: List[str] = []
    for href in hrefs:
        absolute = resolve_url(page_url, href)
        if absolute is None:
            logger.debug("Dropping unresolvable link %r on %s", href, page_url)
            continue
        if page_host and get_hostname(absolute) == page_host:
            internal.append(absolute)
        else:
            external.append(absolute)
    return internal, external


def collect_page_links(result: CrawlResultItem, page_url: str) -> PageLinks:
    """Return a page's internal/external links.

    The service's structured links are preferred. When it reported none at
    all, the page content is scanned for ``href`` attributes instead.
    """
    if not result.links.is_empty:
        return PageLinks(
            internal=list(result.links.internal),
            external=list(result.links.external),
        )

    for content in (result.markdown.raw_markdown, result.markdown.fit_markdown, result.html):
        hrefs = find_hrefs(content)
        if hrefs:
            internal, external = split_by_host(hrefs, page_url)
            logger.debug(
                "Recovered %d links from page content of %s",
                len(internal) + len(external),
                page_url,
            )
            return PageLinks(internal=internal, external=external, from_fallback=True)

    return PageLinks(internal=[], external=[])


def classify_links(
    internal: Sequence[str],
    external: Sequence[str],
    categorize_internal: bool = True,
) -> LinkBuckets:
    """Partition links into buckets.

    External links are tested in fixed priority: social domain, document,
    image, then script extension; anything else stays external. When
    ``categorize_internal`` is set, internal links matching an extension are
    moved out of ``internal`` too (social domains never apply to them).
    """
    buckets = LinkBuckets()

    for url in internal:
        bucket = _extension_bucket(url) if categorize_internal else None
        getattr(buckets, bucket or "internal").append(url)

    for url in external:
        if _is_social(url):
            buckets.social.append(url)
            continue
        bucket = _extension_bucket(url)
        getattr(buckets, bucket or "external").append(url)

    return buckets


def looks_like_json(url: str, content: str, html: str = "") -> bool:
    """Heuristic check for endpoints that return JSON rather than HTML."""
    stripped = content.strip()
    return (
        "/api/" in url
        or "/api." in url
        or "application/json" in content
        or "application/json" in html
        or (stripped.startswith("{") and stripped.endswith("}"))
        or (stripped.startswith("[") and stripped.endswith("]"))
    )


def render_link_report(url: str, buckets: LinkBuckets) -> str:
    """Render non-empty buckets with their counts and first entries."""
    blocks = []
    for name, links in buckets.items():
        if not links:
            continue
        lines = [f"{name} ({len(links)}):", *links[:REPORT_PREVIEW_LIMIT]]
        if len(links) > REPORT_PREVIEW_LIMIT:
            lines.append("...")
        blocks.append("\n".join(lines))

    if not blocks:
        return f"Link analysis for {url}:\n\nNo links found."
    return f"Link analysis for {url}:\n\n" + "\n\n".join(blocks)


def render_flat_links(url: str, links: Sequence[str]) -> str:
    return f"All links from {url}:\n" + "\n".join(links)
