"""URL helpers for recursive crawling.

This module provides the origin constraint used by the traversal engine -
ensuring that only URLs on the seed's exact hostname are ever followed - and
the canonical form under which URLs are tracked as visited.

Examples:
    >>> is_same_host("https://example.com/docs/guide", "https://example.com/")
    True
    >>> is_same_host("https://shop.example.com/", "https://example.com/")
    False
    >>> normalize_url("HTTPS://Example.com:443/docs#intro")
    'https://example.com/docs'
"""

from __future__ import annotations

from typing import NamedTuple
from urllib.parse import urljoin, urlparse, urlunparse

DEFAULT_PORTS = {"http": "80", "https": "443"}


class ParsedURL(NamedTuple):
    """Lowercased URL parts used for origin comparison."""
    scheme: str
    host: str
    port: str
    path: str
    query: str
    fragment: str


def parse_url(url: str) -> ParsedURL:
    """Split a URL into lowercased, userinfo-free components.

    The port stays as text ("" when absent) so callers can compare it with
    the scheme's default without re-validating it.
    """
    parsed = urlparse(url)
    netloc = parsed.netloc.rpartition("@")[2]

    host, port = netloc, ""
    if netloc.startswith("["):
        # Bracketed IPv6 literal, optionally followed by :port
        closing = netloc.find("]")
        if closing != -1:
            host, port = netloc[:closing + 1], netloc[closing + 2:]
    elif ":" in netloc:
        host, port = netloc.rsplit(":", 1)

    return ParsedURL(
        scheme=parsed.scheme.lower(),
        host=host.lower(),
        port=port,
        path=parsed.path or "/",
        query=parsed.query,
        fragment=parsed.fragment,
    )


def normalize_url(url: str, strip_fragment: bool = True) -> str:
    """Return the canonical form under which a URL is tracked as visited.

    Scheme and host are lowercased, the scheme's default port is dropped and
    an empty path becomes "/". The query is kept verbatim; the fragment is
    removed unless ``strip_fragment`` is False.
    """
    parts = parse_url(url)
    if parts.port in ("", DEFAULT_PORTS.get(parts.scheme)):
        netloc = parts.host
    else:
        netloc = f"{parts.host}:{parts.port}"

    return urlunparse((
        parts.scheme,
        netloc,
        parts.path,
        "",
        parts.query,
        "" if strip_fragment else parts.fragment,
    ))


def resolve_url(base_url: str, href: str) -> str | None:
    """Resolve a possibly relative href against the page it was found on.

    Returns:
        The absolute URL, or None when the href cannot be resolved

    Examples:
        >>> resolve_url("https://example.com/docs/guide", "../api/")
        'https://example.com/api/'
        >>> resolve_url("https://example.com/docs/", "/about")
        'https://example.com/about'
    """
    try:
        resolved = urljoin(base_url, href.strip())
        # Accessing the port validates it (raises ValueError when out of range)
        _ = urlparse(resolved).port
    except ValueError:
        return None
    return resolved


def get_hostname(url: str) -> str:
    """Return the lowercased hostname of a URL ("" when there is none)."""
    try:
        return (urlparse(url).hostname or "").lower()
    except ValueError:
        return ""


def is_same_host(url: str, other_url: str) -> bool:
    """Check whether two URLs share exactly the same hostname.

    Subdomains are distinct hosts; scheme and port are not compared.
    """
    host = get_hostname(url)
    return bool(host) and host == get_hostname(other_url)


def is_valid_http_url(url: str) -> bool:
    """Whether ``url`` is an absolute http(s) URL with a hostname.

    Surrounding whitespace makes a URL invalid rather than being trimmed.
    """
    if not isinstance(url, str) or not url or url != url.strip():
        return False
    try:
        parsed = urlparse(url)
        return parsed.scheme in ("http", "https") and bool(parsed.hostname)
    except ValueError:
        return False


def url_path(url: str) -> str:
    """Return the lowercased path component of a URL (without query)."""
    try:
        return urlparse(url).path.lower()
    except ValueError:
        return url.lower()
