"""Agent tools for driving a remote Crawl4AI crawling server."""

__version__ = "1.0.0"
