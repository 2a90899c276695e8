"""Typed views over the crawl service's JSON payloads."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence


def _link_href(entry: Any) -> str | None:
    """Reduce a link entry (bare string or ``{href, text}`` record) to its href."""
    if isinstance(entry, str):
        return entry or None
    if isinstance(entry, Mapping):
        href = entry.get("href")
        if isinstance(href, str) and href:
            return href
    return None


def link_hrefs(entries: Sequence[Any] | None) -> list[str]:
    """Return the hrefs of a link list, dropping entries without one."""
    hrefs = []
    for entry in entries or ():
        href = _link_href(entry)
        if href is not None:
            hrefs.append(href)
    return hrefs


@dataclass(frozen=True)
class MarkdownContent:
    """Markdown renditions returned for a crawled page."""

    raw_markdown: str = ""
    fit_markdown: str = ""

    @classmethod
    def from_payload(cls, payload: Any) -> "MarkdownContent":
        if isinstance(payload, str):
            return cls(raw_markdown=payload)
        if isinstance(payload, Mapping):
            return cls(
                raw_markdown=payload.get("raw_markdown") or "",
                fit_markdown=payload.get("fit_markdown") or "",
            )
        return cls()


@dataclass(frozen=True)
class CrawlLinks:
    """Links reported by the service, already split by origin."""

    internal: list[str] = field(default_factory=list)
    external: list[str] = field(default_factory=list)

    @classmethod
    def from_payload(cls, payload: Any) -> "CrawlLinks":
        if not isinstance(payload, Mapping):
            return cls()
        return cls(
            internal=link_hrefs(payload.get("internal")),
            external=link_hrefs(payload.get("external")),
        )

    @property
    def is_empty(self) -> bool:
        return not self.internal and not self.external


@dataclass(frozen=True)
class CrawlResultItem:
    """One entry of the ``results`` array of a ``/crawl`` response.

    Attributes:
        url: The URL the service reports for this result.
        success: Whether the service considers the crawl successful.
        markdown: Raw and fit markdown renditions.
        html: Raw HTML of the page (may be empty).
        links: Internal/external links discovered by the service.
        metadata: Free-form page metadata (title, description, ...).
        error_message: Failure reason when ``success`` is False.
    """

    url: str
    success: bool
    markdown: MarkdownContent = field(default_factory=MarkdownContent)
    html: str = ""
    links: CrawlLinks = field(default_factory=CrawlLinks)
    metadata: dict[str, Any] = field(default_factory=dict)
    error_message: str | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CrawlResultItem":
        metadata = payload.get("metadata")
        return cls(
            url=str(payload.get("url") or ""),
            success=bool(payload.get("success")),
            markdown=MarkdownContent.from_payload(payload.get("markdown")),
            html=payload.get("html") or "",
            links=CrawlLinks.from_payload(payload.get("links")),
            metadata=dict(metadata) if isinstance(metadata, Mapping) else {},
            error_message=payload.get("error_message"),
        )

    @property
    def content(self) -> str:
        """Best markdown rendition: fit markdown, then raw markdown."""
        return self.markdown.fit_markdown or self.markdown.raw_markdown

    @property
    def display_content(self) -> str:
        """Content shown to callers: raw markdown, then HTML."""
        return self.markdown.raw_markdown or self.html


@dataclass(frozen=True)
class CrawlResponse:
    """Parsed ``/crawl`` response with optional server metrics."""

    results: list[CrawlResultItem] = field(default_factory=list)
    server_processing_time_s: float | None = None
    server_memory_delta_mb: float | None = None
    server_peak_memory_mb: float | None = None

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "CrawlResponse":
        raw_results = payload.get("results")
        if raw_results is None:
            # Some server versions answer a single-URL crawl with the bare result
            raw_results = [payload] if "success" in payload else []
        return cls(
            results=[
                CrawlResultItem.from_payload(item)
                for item in raw_results
                if isinstance(item, Mapping)
            ],
            server_processing_time_s=payload.get("server_processing_time_s"),
            server_memory_delta_mb=payload.get("server_memory_delta_mb"),
            server_peak_memory_mb=payload.get("server_peak_memory_mb"),
        )

    def metrics_text(self) -> str:
        """Render server metrics as one line, or "" when none were reported."""
        if self.server_memory_delta_mb is None and self.server_peak_memory_mb is None:
            return ""
        parts = []
        if self.server_processing_time_s is not None:
            parts.append(f"Processing time: {self.server_processing_time_s:.2f}s")
        if self.server_memory_delta_mb is not None:
            parts.append(f"Memory delta: {self.server_memory_delta_mb:.1f}MB")
        if self.server_peak_memory_mb is not None:
            parts.append(f"Peak memory: {self.server_peak_memory_mb:.1f}MB")
        return f"Server metrics: {', '.join(parts)}"
