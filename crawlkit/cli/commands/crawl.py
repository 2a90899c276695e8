"""CLI commands that run a single crawl tool and print its report.

Commands:
- crawl-recursive: Breadth-first same-origin crawl from a URL
- extract-links: Categorized link report for one page
- smart-crawl: Content-type aware crawl
- parse-sitemap: List the URLs of an XML sitemap
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import Any

from crawlkit.config import ConfigError, get_config
from crawlkit.integrations.crawl4ai import get_crawl_client
from crawlkit.orchestration.toolkit import build_registry

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_ERROR = 1


def register_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Add crawl commands to the main CLI parser."""

    def add_common_args(parser: argparse.ArgumentParser) -> None:
        parser.add_argument("url", help="Absolute http(s) URL.")
        parser.add_argument(
            "--json",
            action="store_true",
            dest="output_json",
            help="Output results in JSON format.",
        )
        parser.add_argument(
            "--verbose",
            "-v",
            action="store_true",
            help="Enable debug logging.",
        )

    recursive_parser = subparsers.add_parser(
        "crawl-recursive",
        description="Crawl a site breadth-first, following same-host links only.",
        help="Recursively crawl internal links from a starting URL.",
    )
    add_common_args(recursive_parser)
    recursive_parser.add_argument(
        "--max-depth",
        type=int,
        help="Maximum link depth from the starting URL (default: 3).",
    )
    recursive_parser.add_argument(
        "--max-pages",
        type=int,
        help="Maximum number of pages to crawl (default: 50).",
    )
    recursive_parser.add_argument(
        "--include",
        dest="include_pattern",
        help="Regex a URL must match to be crawled.",
    )
    recursive_parser.add_argument(
        "--exclude",
        dest="exclude_pattern",
        help="Regex of URLs to skip.",
    )
    recursive_parser.set_defaults(func=crawl_recursive_cli)

    links_parser = subparsers.add_parser(
        "extract-links",
        description="Extract and categorize the links of a page.",
        help="List the links of a page by category.",
    )
    add_common_args(links_parser)
    links_parser.add_argument(
        "--flat",
        action="store_true",
        help="List all links without categorizing them.",
    )
    links_parser.set_defaults(func=extract_links_cli)

    smart_parser = subparsers.add_parser(
        "smart-crawl",
        description="Detect a URL's content type and crawl it accordingly.",
        help="Crawl a URL with content-type detection.",
    )
    add_common_args(smart_parser)
    smart_parser.add_argument(
        "--follow-links",
        action="store_true",
        help="Follow URLs listed by sitemaps and feeds.",
    )
    smart_parser.add_argument(
        "--max-depth",
        type=int,
        help="Upper bound on followed links (at most 10).",
    )
    smart_parser.add_argument(
        "--bypass-cache",
        action="store_true",
        help="Bypass the crawl server cache.",
    )
    smart_parser.set_defaults(func=smart_crawl_cli)

    sitemap_parser = subparsers.add_parser(
        "parse-sitemap",
        description="Fetch an XML sitemap and list its URLs.",
        help="List the URLs of a sitemap.",
    )
    add_common_args(sitemap_parser)
    sitemap_parser.add_argument(
        "--filter",
        dest="filter_pattern",
        help="Regex URLs must match to be listed.",
    )
    sitemap_parser.set_defaults(func=parse_sitemap_cli)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, get_config().log_level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _run_tool(tool_name: str, arguments: dict[str, Any], output_json: bool) -> int:
    """Execute one tool against the configured crawl server and print the result."""
    try:
        client = get_crawl_client()
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_ERROR

    registry = build_registry(client=client)
    result = registry.execute_tool(
        tool_name,
        {key: value for key, value in arguments.items() if value is not None},
    )
    if not result.success:
        print(f"Error: {result.error}", file=sys.stderr)
        return EXIT_ERROR

    if output_json:
        print(json.dumps(result.output, indent=2, default=str))
    else:
        print(result.text)
    return EXIT_SUCCESS


def crawl_recursive_cli(args: argparse.Namespace) -> int:
    """Execute the crawl-recursive command."""
    _configure_logging(args.verbose)
    return _run_tool(
        "crawl_recursive",
        {
            "url": args.url,
            "max_depth": args.max_depth,
            "max_pages": args.max_pages,
            "include_pattern": args.include_pattern,
            "exclude_pattern": args.exclude_pattern,
        },
        args.output_json,
    )


def extract_links_cli(args: argparse.Namespace) -> int:
    """Execute the extract-links command."""
    _configure_logging(args.verbose)
    return _run_tool(
        "extract_links",
        {"url": args.url, "categorize": not args.flat},
        args.output_json,
    )


def smart_crawl_cli(args: argparse.Namespace) -> int:
    """Execute the smart-crawl command."""
    _configure_logging(args.verbose)
    return _run_tool(
        "smart_crawl",
        {
            "url": args.url,
            "follow_links": args.follow_links,
            "max_depth": args.max_depth,
            "bypass_cache": args.bypass_cache,
        },
        args.output_json,
    )


def parse_sitemap_cli(args: argparse.Namespace) -> int:
    """Execute the parse-sitemap command."""
    _configure_logging(args.verbose)
    return _run_tool(
        "parse_sitemap",
        {"url": args.url, "filter_pattern": args.filter_pattern},
        args.output_json,
    )
