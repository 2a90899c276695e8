"""HTTP client for a Crawl4AI server.

All rendering, JavaScript execution and content cleaning happens on the
remote server. This client only shapes requests and parses responses.

Example:
    from crawlkit.integrations.crawl4ai import get_crawl_client

    client = get_crawl_client()
    page = client.fetch_page("https://example.com/")
    print(page.content)
"""

from __future__ import annotations

import logging
from typing import Any, Mapping, Sequence
from urllib.parse import quote

import requests

from crawlkit.config import ProjectConfig, get_config

from .models import CrawlResponse, CrawlResultItem

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
DOCUMENT_USER_AGENT = "Mozilla/5.0 (compatible; crawlkit/1.0)"
DOCUMENT_TIMEOUT = 30.0
HEAD_TIMEOUT = 10.0


class Crawl4AIError(RuntimeError):
    """Raised when the crawl server cannot be reached or returns an error."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def _error_detail(response: requests.Response) -> str:
    """Pull the most useful error text out of a failed response."""
    try:
        data = response.json()
    except ValueError:
        return response.text or f"HTTP {response.status_code}"
    if isinstance(data, Mapping) and data.get("detail"):
        return str(data["detail"])
    return str(data)


class Crawl4AIClient:
    """Thin wrapper over the crawl server's REST endpoints.

    Attributes:
        base_url: Root URL of the crawl server (e.g. ``http://localhost:11235``).
        api_key: Value sent as the ``X-API-Key`` header.
        timeout: Default request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        session: requests.Session | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({
            "X-API-Key": api_key,
            "Content-Type": "application/json",
        })

    @classmethod
    def from_config(cls, config: ProjectConfig) -> "Crawl4AIClient":
        return cls(
            base_url=config.require_base_url(),
            api_key=config.api_key,
            timeout=config.request_timeout,
        )

    # -------------------------------------------------------------------------
    # Transport
    # -------------------------------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        json: Any = None,
        timeout: float | None = None,
    ) -> Any:
        url = f"{self.base_url}{path}"
        try:
            response = self.session.request(
                method,
                url,
                json=json,
                timeout=timeout or self.timeout,
            )
        except requests.RequestException as exc:
            raise Crawl4AIError(str(exc)) from exc

        if response.status_code >= 400:
            raise Crawl4AIError(_error_detail(response), status_code=response.status_code)

        try:
            return response.json()
        except ValueError as exc:
            raise Crawl4AIError(f"Invalid JSON response from {path}") from exc

    # -------------------------------------------------------------------------
    # Crawling
    # -------------------------------------------------------------------------

    def crawl(
        self,
        urls: Sequence[str],
        *,
        crawler_config: Mapping[str, Any] | None = None,
        browser_config: Mapping[str, Any] | None = None,
        max_concurrent: int | None = None,
        timeout: float | None = None,
    ) -> CrawlResponse:
        """Crawl one or more URLs through ``POST /crawl``."""
        body: dict[str, Any] = {"urls": list(urls)}
        if crawler_config:
            body["crawler_config"] = dict(crawler_config)
        if browser_config:
            body["browser_config"] = dict(browser_config)
        if max_concurrent is not None:
            body["max_concurrent"] = max_concurrent

        payload = self._request("POST", "/crawl", json=body, timeout=timeout)
        if not isinstance(payload, Mapping):
            raise Crawl4AIError("Invalid response from server: expected a JSON object")
        return CrawlResponse.from_payload(payload)

    def fetch_page(self, url: str, bypass_cache: bool = True) -> CrawlResultItem:
        """Fetch a single URL and return its crawl result.

        Raises:
            Crawl4AIError: If the request fails or the server returns no result.
        """
        crawler_config = {"cache_mode": "BYPASS"} if bypass_cache else None
        response = self.crawl([url], crawler_config=crawler_config)
        if not response.results:
            raise Crawl4AIError("Invalid response from server: no results received")
        return response.results[0]

    def head_content_type(self, url: str) -> str:
        """Return the Content-Type header of ``url`` via a HEAD request.

        The request goes to the target URL itself, not the crawl server, and
        carries none of the session headers.
        """
        try:
            response = requests.head(
                url,
                timeout=HEAD_TIMEOUT,
                headers={"User-Agent": DOCUMENT_USER_AGENT},
                allow_redirects=True,
            )
        except requests.RequestException as exc:
            raise Crawl4AIError(str(exc)) from exc
        return response.headers.get("Content-Type", "")

    def fetch_document(self, url: str) -> str:
        """Download a document directly, bypassing the crawl server."""
        try:
            response = requests.get(
                url,
                timeout=DOCUMENT_TIMEOUT,
                headers={"User-Agent": DOCUMENT_USER_AGENT},
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            raise Crawl4AIError(str(exc)) from exc
        return response.text

    # -------------------------------------------------------------------------
    # One-shot endpoints
    # -------------------------------------------------------------------------

    def get_markdown(
        self,
        url: str,
        filter: str = "fit",
        query: str | None = None,
        cache: str = "0",
    ) -> dict[str, Any]:
        return self._request(
            "POST",
            "/md",
            json={"url": url, "f": filter, "q": query, "c": cache},
        )

    def get_html(self, url: str) -> dict[str, Any]:
        return self._request("POST", "/html", json={"url": url})

    def extract_with_llm(self, url: str, query: str) -> dict[str, Any]:
        """Ask the server's configured LLM a question about a page."""
        path = f"/llm/{quote(url, safe='')}?q={quote(query, safe='')}"
        try:
            return self._request("GET", path)
        except Crawl4AIError as exc:
            if exc.status_code == 504 or isinstance(exc.__cause__, requests.Timeout):
                raise Crawl4AIError(
                    "LLM extraction timed out. Try a simpler query or different URL.",
                    status_code=exc.status_code,
                ) from exc
            if exc.status_code == 401:
                raise Crawl4AIError(
                    "LLM extraction failed: No LLM provider configured on server. "
                    "Please ensure the server has an API key set.",
                    status_code=401,
                ) from exc
            raise Crawl4AIError(f"LLM extraction failed: {exc}", status_code=exc.status_code) from exc


def get_crawl_client(config: ProjectConfig | None = None) -> Crawl4AIClient:
    """Build a client from the project configuration.

    Raises:
        ConfigError: If ``CRAWL4AI_BASE_URL`` is not set.
    """
    client = Crawl4AIClient.from_config(config or get_config())
    logger.debug("Using crawl server at %s", client.base_url)
    return client
