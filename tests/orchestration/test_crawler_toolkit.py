"""Tests for the crawling tools.

Handlers are exercised through a ToolRegistry so argument validation and
error mapping are covered together with the handler logic.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest

from crawlkit.config import ConfigError
from crawlkit.integrations.crawl4ai import (
    Crawl4AIError,
    CrawlLinks,
    CrawlResponse,
    CrawlResultItem,
    MarkdownContent,
)
from crawlkit.orchestration.safety import ActionRisk
from crawlkit.orchestration.toolkit.crawler import register_crawler_tools
from crawlkit.orchestration.tools import ToolRegistry


def _item(url: str, markdown: str = "", **kwargs) -> CrawlResultItem:
    return CrawlResultItem(url=url, success=True, markdown=MarkdownContent(raw_markdown=markdown), **kwargs)


@pytest.fixture
def client() -> MagicMock:
    return MagicMock()


@pytest.fixture
def registry(client: MagicMock) -> ToolRegistry:
    registry = ToolRegistry()
    register_crawler_tools(registry, client=client)
    return registry


# =============================================================================
# Tool Registration Tests
# =============================================================================


class TestToolRegistration:
    """Tests for crawler tool registration."""

    def test_register_crawler_tools(self, registry: ToolRegistry) -> None:
        for tool_name in ("crawl_recursive", "smart_crawl", "batch_crawl", "parse_sitemap"):
            assert tool_name in registry
            assert registry.get_tool(tool_name).risk_level == ActionRisk.SAFE

    def test_unknown_parameter_rejected(self, registry: ToolRegistry, client: MagicMock) -> None:
        result = registry.execute_tool(
            "crawl_recursive",
            {"url": "https://example.com/", "session_id": "abc"},
        )

        assert result.success is False
        assert result.error == "Invalid parameters for crawl_recursive: session_id: Unexpected parameter"
        client.fetch_page.assert_not_called()


# =============================================================================
# crawl_recursive Tests
# =============================================================================


class TestCrawlRecursiveTool:
    """Tests for the crawl_recursive handler."""

    def test_report_and_counters(self, registry: ToolRegistry, client: MagicMock) -> None:
        pages = {
            "https://example.com/": _item(
                "https://example.com/",
                "home",
                links=CrawlLinks(internal=["https://example.com/about"]),
            ),
            "https://example.com/about": _item("https://example.com/about", "about us"),
        }
        client.fetch_page.side_effect = lambda url, bypass_cache=True: pages[url]

        result = registry.execute_tool("crawl_recursive", {"url": "https://example.com/", "max_depth": 1})

        assert result.success is True
        assert result.output["pages_crawled"] == 2
        assert result.output["max_depth"] == 1
        assert result.text.startswith("Recursive crawl completed:")
        assert "- [Depth 1] https://example.com/about" in result.text

    def test_defaults_applied(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_page.return_value = _item("https://example.com/", "x")

        result = registry.execute_tool("crawl_recursive", {"url": "https://example.com/"})

        assert result.output["max_depth"] == 3
        assert result.output["max_pages"] == 50

    def test_invalid_url(self, registry: ToolRegistry, client: MagicMock) -> None:
        result = registry.execute_tool("crawl_recursive", {"url": "example.com"})

        assert result.success is False
        assert result.error.startswith("Invalid parameters for crawl_recursive")
        client.fetch_page.assert_not_called()

    def test_invalid_pattern(self, registry: ToolRegistry) -> None:
        result = registry.execute_tool(
            "crawl_recursive",
            {"url": "https://example.com/", "exclude_pattern": "(unclosed"},
        )

        assert result.success is False
        assert "exclude_pattern" in result.error

    def test_wrong_type_rejected(self, registry: ToolRegistry) -> None:
        result = registry.execute_tool("crawl_recursive", {"url": "https://example.com/", "max_depth": "2"})

        assert result.success is False
        assert "max_depth: Expected integer" in result.error

    def test_seed_failure_is_not_a_tool_error(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_page.side_effect = Crawl4AIError("connection refused")

        result = registry.execute_tool("crawl_recursive", {"url": "https://example.com/"})

        assert result.success is True
        assert "No pages could be crawled" in result.text

    def test_missing_configuration(self) -> None:
        registry = ToolRegistry()
        register_crawler_tools(registry)

        with patch(
            "crawlkit.orchestration.toolkit._client_context.get_crawl_client",
            side_effect=ConfigError("CRAWL4AI_BASE_URL environment variable is required."),
        ):
            result = registry.execute_tool("crawl_recursive", {"url": "https://example.com/"})

        assert result.success is False
        assert result.error.startswith("Failed to crawl recursively: CRAWL4AI_BASE_URL")


# =============================================================================
# smart_crawl Tests
# =============================================================================


class TestSmartCrawlTool:
    """Tests for the smart_crawl handler."""

    def test_html_page(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = "text/html"
        client.crawl.return_value = CrawlResponse(
            results=[_item("https://example.com/", "# Welcome", metadata={"title": "Home"})]
        )

        result = registry.execute_tool("smart_crawl", {"url": "https://example.com/"})

        assert result.success is True
        assert result.text.startswith("Smart crawl detected content type: html\n\n# Welcome")
        assert '"title": "Home"' in result.text
        _, kwargs = client.crawl.call_args
        assert kwargs["crawler_config"] == {"cache_mode": "ENABLED"}
        assert kwargs["browser_config"] == {"headless": True, "browser_type": "chromium"}

    def test_follows_sitemap_links(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = "application/xml"
        listing = "".join(f"<loc>https://example.com/p{i}</loc>" for i in range(15))
        client.crawl.side_effect = [
            CrawlResponse(results=[_item("https://example.com/sitemap.xml", listing)]),
            CrawlResponse(results=[]),
        ]

        result = registry.execute_tool(
            "smart_crawl",
            {"url": "https://example.com/sitemap.xml", "follow_links": True, "max_depth": 3},
        )

        assert result.success is True
        assert result.output["content_type"] == "sitemap"
        assert result.output["followed_urls"] == [
            "https://example.com/p0",
            "https://example.com/p1",
            "https://example.com/p2",
        ]
        assert "Followed 3 links:\n1. https://example.com/p0" in result.text
        follow_args, follow_kwargs = client.crawl.call_args
        assert follow_args[0] == result.output["followed_urls"]
        assert follow_kwargs["max_concurrent"] == 3

    def test_follows_loc_entries_from_html(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = "application/xml"
        html = (
            "<urlset>"
            "<url><loc>https://example.com/a</loc></url>"
            "<url><loc>https://example.com/b</loc></url>"
            "</urlset>"
        )
        client.crawl.side_effect = [
            CrawlResponse(results=[
                _item("https://example.com/sitemap.xml", "https://example.com/a https://example.com/b", html=html)
            ]),
            CrawlResponse(results=[]),
        ]

        result = registry.execute_tool(
            "smart_crawl",
            {"url": "https://example.com/sitemap.xml", "follow_links": True},
        )

        assert result.success is True
        assert result.output["followed_urls"] == ["https://example.com/a", "https://example.com/b"]
        assert client.crawl.call_args.args[0] == ["https://example.com/a", "https://example.com/b"]

    def test_follow_is_capped_at_ten(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = ""
        listing = "".join(f"<link>https://example.com/post{i}</link>" for i in range(25))
        client.crawl.side_effect = [
            CrawlResponse(results=[_item("https://example.com/rss", listing)]),
            CrawlResponse(results=[]),
        ]

        result = registry.execute_tool("smart_crawl", {"url": "https://example.com/rss", "follow_links": True})

        assert len(result.output["followed_urls"]) == 10

    def test_html_never_follows(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = "text/html"
        client.crawl.return_value = CrawlResponse(
            results=[_item("https://example.com/", '<a href="https://example.com/x">x</a>')]
        )

        result = registry.execute_tool("smart_crawl", {"url": "https://example.com/", "follow_links": True})

        assert result.output["followed_urls"] == []
        assert client.crawl.call_count == 1

    def test_empty_result(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.side_effect = Crawl4AIError("no HEAD")
        client.crawl.return_value = CrawlResponse(results=[])

        result = registry.execute_tool("smart_crawl", {"url": "https://example.com/"})

        assert result.text == "Smart crawl detected content type: html\n\nNo content extracted"

    def test_crawl_failure(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.head_content_type.return_value = ""
        client.crawl.side_effect = Crawl4AIError("browser crashed", status_code=500)

        result = registry.execute_tool("smart_crawl", {"url": "https://example.com/"})

        assert result.success is False
        assert result.error == "Failed to smart crawl: browser crashed"


# =============================================================================
# batch_crawl Tests
# =============================================================================


class TestBatchCrawlTool:
    """Tests for the batch_crawl handler."""

    def test_batch_report(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.crawl.return_value = CrawlResponse(
            results=[
                _item("https://a.example/"),
                CrawlResultItem(url="https://b.example/", success=False),
            ],
            server_processing_time_s=2.5,
            server_memory_delta_mb=12.0,
            server_peak_memory_mb=300.0,
        )

        result = registry.execute_tool(
            "batch_crawl",
            {
                "urls": ["https://a.example/", "https://b.example/"],
                "max_concurrent": 2,
                "remove_images": True,
                "bypass_cache": True,
            },
        )

        assert result.success is True
        assert result.text == (
            "Batch crawl completed. Processed 2 URLs:\n\n"
            "1. https://a.example/: Success\n"
            "2. https://b.example/: Failed\n\n"
            "Server metrics: Processing time: 2.50s, Memory delta: 12.0MB, Peak memory: 300.0MB"
        )
        _, kwargs = client.crawl.call_args
        assert kwargs["crawler_config"] == {
            "exclude_tags": ["img", "picture", "svg"],
            "cache_mode": "BYPASS",
        }
        assert kwargs["max_concurrent"] == 2

    def test_array_items_validated(self, registry: ToolRegistry) -> None:
        result = registry.execute_tool("batch_crawl", {"urls": ["https://a.example/", 3]})

        assert result.success is False
        assert "urls: Expected array of string" in result.error

    def test_empty_urls(self, registry: ToolRegistry) -> None:
        result = registry.execute_tool("batch_crawl", {"urls": []})

        assert result.success is False


# =============================================================================
# parse_sitemap Tests
# =============================================================================


class TestParseSitemapTool:
    """Tests for the parse_sitemap handler."""

    SITEMAP = (
        "<urlset>"
        "<url><loc>https://example.com/blog/a</loc></url>"
        "<url><loc>https://example.com/blog/b</loc></url>"
        "<url><loc>https://example.com/about</loc></url>"
        "</urlset>"
    )

    def test_lists_urls(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_document.return_value = self.SITEMAP

        result = registry.execute_tool("parse_sitemap", {"url": "https://example.com/sitemap.xml"})

        assert result.text == (
            "Sitemap parsed successfully:\n\n"
            "Total URLs found: 3\n"
            "Filtered URLs: 3\n\n"
            "URLs:\nhttps://example.com/blog/a\nhttps://example.com/blog/b\nhttps://example.com/about"
        )

    def test_filter_pattern(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_document.return_value = self.SITEMAP

        result = registry.execute_tool(
            "parse_sitemap",
            {"url": "https://example.com/sitemap.xml", "filter_pattern": "/blog/"},
        )

        assert result.output["total_urls"] == 3
        assert result.output["urls"] == ["https://example.com/blog/a", "https://example.com/blog/b"]

    def test_truncates_listing(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_document.return_value = "".join(
            f"<loc>https://example.com/{i}</loc>" for i in range(130)
        )

        result = registry.execute_tool("parse_sitemap", {"url": "https://example.com/sitemap.xml"})

        assert result.text.endswith("https://example.com/99\n... and 30 more")

    def test_fetch_failure(self, registry: ToolRegistry, client: MagicMock) -> None:
        client.fetch_document.side_effect = Crawl4AIError("404 Client Error")

        result = registry.execute_tool("parse_sitemap", {"url": "https://example.com/sitemap.xml"})

        assert result.error == "Failed to parse sitemap: 404 Client Error"
