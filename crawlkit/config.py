"""Project configuration management.

Values come from the process environment. ``main.py`` loads a ``.env`` file
(via python-dotenv) before anything reads the configuration.
"""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Any, Mapping, Optional


class ConfigError(RuntimeError):
    """Raised when a required configuration value is missing or invalid."""


class ProjectConfig:
    """Access to project configuration values."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ
        self._data: dict[str, Any] = {}
        self._loaded = False

    def _ensure_loaded(self) -> None:
        if self._loaded:
            return
        source = os.environ if self._environ is None else self._environ
        self._data = {key: value for key, value in source.items() if value != ""}
        self._loaded = True

    @property
    def base_url(self) -> Optional[str]:
        """Root URL of the crawl server."""
        self._ensure_loaded()
        return self._data.get("CRAWL4AI_BASE_URL")

    @property
    def api_key(self) -> str:
        self._ensure_loaded()
        return self._data.get("CRAWL4AI_API_KEY", "")

    @property
    def request_timeout(self) -> float:
        """Request timeout in seconds, defaulting to 120."""
        self._ensure_loaded()
        raw = self._data.get("CRAWL4AI_TIMEOUT", "120")
        try:
            timeout = float(raw)
        except ValueError as exc:
            raise ConfigError(f"CRAWL4AI_TIMEOUT must be a number, got {raw!r}") from exc
        if timeout <= 0:
            raise ConfigError("CRAWL4AI_TIMEOUT must be positive")
        return timeout

    @property
    def server_name(self) -> str:
        self._ensure_loaded()
        return self._data.get("SERVER_NAME", "crawl4ai-mcp")

    @property
    def server_version(self) -> str:
        self._ensure_loaded()
        return self._data.get("SERVER_VERSION", "1.0.0")

    @property
    def log_level(self) -> str:
        self._ensure_loaded()
        return self._data.get("CRAWLKIT_LOG_LEVEL", "INFO").upper()

    def require_base_url(self) -> str:
        """Return the crawl server URL or raise if it is not configured."""
        base_url = self.base_url
        if not base_url:
            raise ConfigError(
                "CRAWL4AI_BASE_URL environment variable is required. "
                "Set it to your Crawl4AI server URL (e.g., http://localhost:11235)."
            )
        return base_url

    def get(self, key: str, default: Any = None) -> Any:
        """Get a raw configuration value."""
        self._ensure_loaded()
        return self._data.get(key, default)


@lru_cache(maxsize=1)
def get_config() -> ProjectConfig:
    """Get the singleton configuration instance."""
    return ProjectConfig()
