"""Go module proxy client.

Purpose
-------
List the published versions of a module through the GOPROXY protocol
(``GET <proxy>/<escaped module>/@v/list``). All requests go through one
shared ``httpx.AsyncClient`` whose transport is rate limited.

Contents
--------
* :class:`GoProxyClient` - Async version lister with an in-memory cache
* :func:`build_http_client` - Shared, rate-limited HTTP client factory
* :func:`escape_module_path` - GOPROXY case-encoding of module paths
* :func:`proxy_from_env` - Pick the proxy URL from a GOPROXY value
* :class:`RegistryError` - Raised for failed or malformed lookups

System Role
-----------
The network boundary of the checker. A module that was never published
(404/410) yields an empty list rather than an error.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

import httpx

from . import __init__conf__
from .ratelimit import RateLimitedTransport, TokenBucket

logger = logging.getLogger(__name__)

DEFAULT_PROXY_URL = "https://proxy.golang.org"
VERSION_LIST_URL = "{proxy}/{module}/@v/list"
DEFAULT_TIMEOUT = 30.0
USER_AGENT = f"{__init__conf__.name}/{__init__conf__.version}"

# GOPROXY list entries that are keywords rather than URLs
_NON_URL_ENTRIES = frozenset({"direct", "off"})
_NOT_FOUND_STATUSES = frozenset({404, 410})
_RE_PROXY_SEPARATOR = re.compile(r"[,|]")
_RE_INVALID_MODULE_CHARS = re.compile(r"[\s!\"'`\\<>|*?:]")


class RegistryError(Exception):
    """Raised when the proxy cannot be queried or returns garbage."""


def escape_module_path(module_path: str) -> str:
    """Encode a module path for use in a proxy URL.

    Uppercase letters are replaced by ``!`` followed by the lowercase
    letter, so that case-insensitive file systems can serve the proxy.

    Raises:
        RegistryError: If the path is empty or contains characters or
            elements that no module path may contain.

    Example:
        >>> escape_module_path("github.com/BurntSushi/toml")
        'github.com/!burnt!sushi/toml'
    """
    if not module_path or module_path.startswith("/") or module_path.endswith("/"):
        raise RegistryError(f"invalid module path {module_path!r}")
    if _RE_INVALID_MODULE_CHARS.search(module_path):
        raise RegistryError(f"invalid module path {module_path!r}")
    if any(element in ("", ".", "..") for element in module_path.split("/")):
        raise RegistryError(f"invalid module path {module_path!r}")
    return "".join(f"!{ch.lower()}" if "A" <= ch <= "Z" else ch for ch in module_path)


def proxy_from_env(goproxy: str | None) -> str:
    """Return the proxy URL to query for a ``GOPROXY`` value.

    Only the first list entry is used. Empty values and the ``direct`` and
    ``off`` keywords fall back to :data:`DEFAULT_PROXY_URL`.

    Example:
        >>> proxy_from_env("https://goproxy.io,direct")
        'https://goproxy.io'
        >>> proxy_from_env("direct")
        'https://proxy.golang.org'
    """
    if not goproxy:
        return DEFAULT_PROXY_URL
    first = _RE_PROXY_SEPARATOR.split(goproxy, maxsplit=1)[0].strip()
    if not first or first in _NON_URL_ENTRIES:
        return DEFAULT_PROXY_URL
    return first.rstrip("/")


def build_http_client(
    limiter: TokenBucket,
    *,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create the shared HTTP client used for every proxy request.

    Args:
        limiter: Token bucket shared by all requests of the run.
        timeout: Per-request timeout in seconds.
        transport: Network transport to wrap (tests pass a mock).

    Returns:
        An ``httpx.AsyncClient`` whose requests are rate limited.
    """
    return httpx.AsyncClient(
        transport=RateLimitedTransport(limiter, transport),
        timeout=httpx.Timeout(timeout),
        headers={"User-Agent": USER_AGENT, "Accept": "text/plain"},
        follow_redirects=True,
    )


def _parse_version_list(url: str, content: bytes) -> list[str]:
    """Split a ``@v/list`` body into version strings.

    Raises:
        RegistryError: If the body is not UTF-8 text.
    """
    try:
        text = content.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise RegistryError(f"fetching {url}: malformed response: {exc}") from exc
    versions: list[str] = []
    for line in text.splitlines():
        fields = line.split()
        if fields:
            versions.append(fields[0])
    return versions


def _empty_cache() -> dict[str, tuple[str, ...]]:
    """Return an empty cache for dataclass defaults."""
    return {}


@dataclass
class GoProxyClient:
    """List module versions from a Go module proxy.

    Attributes:
        client: Shared HTTP client (see :func:`build_http_client`).
        base_url: Proxy base URL without trailing slash.
        cache: Version lists already fetched during this run, by module.
    """

    client: httpx.AsyncClient
    base_url: str = DEFAULT_PROXY_URL
    cache: dict[str, tuple[str, ...]] = field(default_factory=_empty_cache)

    def __post_init__(self) -> None:
        self.base_url = self.base_url.rstrip("/")

    def __repr__(self) -> str:
        return f"GoProxyClient(base_url={self.base_url!r}, cached={len(self.cache)})"

    def _version_list_url(self, module_path: str) -> str:
        return VERSION_LIST_URL.format(proxy=self.base_url, module=escape_module_path(module_path))

    async def list_versions(self, module_path: str) -> list[str]:
        """Return the published versions of ``module_path``.

        Args:
            module_path: Module path such as ``golang.org/x/tools``.

        Returns:
            Version strings in proxy order; empty when the module has never
            been published.

        Raises:
            RegistryError: On network failures, unexpected HTTP statuses,
                invalid module paths or undecodable responses.
        """
        if module_path in self.cache:
            return list(self.cache[module_path])

        url = self._version_list_url(module_path)
        logger.debug("Fetching %s", url)
        try:
            response = await self.client.get(url)
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            raise RegistryError(f"fetching {url}: {exc}") from exc

        if response.status_code in _NOT_FOUND_STATUSES:
            logger.debug("Module %s not found on proxy (%d)", module_path, response.status_code)
            versions: list[str] = []
        elif response.is_success:
            versions = _parse_version_list(url, response.content)
        else:
            raise RegistryError(f"fetching {url}: unexpected status {response.status_code}")

        self.cache[module_path] = tuple(versions)
        return versions


__all__ = [
    "DEFAULT_PROXY_URL",
    "DEFAULT_TIMEOUT",
    "GoProxyClient",
    "RegistryError",
    "USER_AGENT",
    "VERSION_LIST_URL",
    "build_http_client",
    "escape_module_path",
    "proxy_from_env",
]
