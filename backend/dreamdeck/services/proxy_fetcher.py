"""Allow-listed image fetcher.

FLUX result URLs are short-lived and served cross-origin from the delivery
CDN, so browsers cannot load them directly. The fetcher GETs them on the
server (or through a configured same-origin proxy endpoint) after checking
the host against an allow-list. Used by both the artifact materializer and
the ``/api/flux-image`` route.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable
from urllib.parse import urlsplit

import httpx

from dreamdeck.services.errors import DownloadError, UntrustedSourceError

logger = logging.getLogger(__name__)

IMAGE_ACCEPT = "image/png,image/jpeg,image/*"


@dataclass(frozen=True)
class ProxiedContent:
    data: bytes
    content_type: str


class ProxyFetchError(DownloadError):
    """Upstream answered with a non-2xx status."""

    def __init__(self, message: str, status_code: int, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


def is_allowed_host(url: str, allowed_hosts: Iterable[str]) -> bool:
    """True for http(s) URLs whose host is, or is a subdomain of, an allowed host."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return False
    if parts.scheme not in ("http", "https"):
        return False
    host = (parts.hostname or "").lower()
    if not host:
        return False
    for allowed in allowed_hosts:
        allowed = allowed.strip().lower()
        if allowed and (host == allowed or host.endswith("." + allowed)):
            return True
    return False


class ProxyFetcher:
    """Single GET against an allow-listed host, returning raw bytes."""

    def __init__(
        self,
        client: httpx.AsyncClient,
        allowed_hosts: Iterable[str],
        proxy_url: str | None = None,
    ) -> None:
        self._client = client
        self.allowed_hosts = tuple(allowed_hosts)
        self.proxy_url = proxy_url or None

    def check(self, url: str) -> None:
        if not is_allowed_host(url, self.allowed_hosts):
            raise UntrustedSourceError(f"Invalid host for image proxy: {url!r}")

    async def fetch(self, url: str) -> ProxiedContent:
        """Fetch ``url``; the allow-list is checked before any network call."""
        self.check(url)

        headers = {"Accept": IMAGE_ACCEPT, "Cache-Control": "no-cache"}
        try:
            if self.proxy_url:
                resp = await self._client.get(self.proxy_url, params={"url": url}, headers=headers)
            else:
                resp = await self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise DownloadError(f"Unable to download image through proxy: {e}") from e

        if resp.status_code < 200 or resp.status_code >= 300:
            body = resp.text[:500]
            raise ProxyFetchError(
                f"Proxy responded with {resp.status_code} {resp.reason_phrase}",
                status_code=resp.status_code,
                body=body,
            )

        content_type = resp.headers.get("content-type") or "application/octet-stream"
        logger.debug("Proxied %d bytes (%s)", len(resp.content), content_type)
        return ProxiedContent(data=resp.content, content_type=content_type)
