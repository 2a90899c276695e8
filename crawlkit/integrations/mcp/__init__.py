"""Model Context Protocol server over stdio."""

from .server import handle_request, run_server, server_info

__all__ = ["handle_request", "run_server", "server_info"]
