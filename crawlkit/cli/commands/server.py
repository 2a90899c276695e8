"""CLI command that runs the MCP server on stdio."""

from __future__ import annotations

import argparse
import logging
import sys

from crawlkit.config import ConfigError, get_config
from crawlkit.integrations.crawl4ai import get_crawl_client
from crawlkit.integrations.mcp import run_server, server_info
from crawlkit.orchestration.sessions import SessionStore
from crawlkit.orchestration.toolkit import build_registry

logger = logging.getLogger(__name__)


def register_commands(subparsers: argparse._SubParsersAction[argparse.ArgumentParser]) -> None:
    """Add the serve command to the main CLI parser."""
    parser = subparsers.add_parser(
        "serve",
        description=(
            "Serve the crawl tools over the Model Context Protocol on stdin/stdout. "
            "Requires CRAWL4AI_BASE_URL."
        ),
        help="Run the MCP server on stdio.",
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr output (default: CRAWLKIT_LOG_LEVEL or INFO).",
    )
    parser.set_defaults(func=serve_cli)


def serve_cli(args: argparse.Namespace) -> int:
    """Execute the serve command."""
    config = get_config()
    # stdout carries the protocol stream
    logging.basicConfig(
        level=getattr(logging, args.log_level or config.log_level, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    try:
        client = get_crawl_client(config)
    except ConfigError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    registry = build_registry(client=client, sessions=SessionStore())
    run_server(registry, info=server_info(config))
    return 0
