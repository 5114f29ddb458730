"""Turns a Ready job's result URL into an Artifact."""

from __future__ import annotations

import logging

from dreamdeck.schemas.generation import Artifact
from dreamdeck.services.errors import DownloadError, UntrustedSourceError
from dreamdeck.services.proxy_fetcher import ProxyFetcher

logger = logging.getLogger(__name__)

_MAGIC_TYPES: tuple[tuple[bytes, str], ...] = (
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"GIF8", "image/gif"),
)


def sniff_image_type(data: bytes) -> str | None:
    """Return the image MIME type implied by the leading bytes, if any."""
    for magic, mime in _MAGIC_TYPES:
        if data.startswith(magic):
            return mime
    if data[:4] == b"RIFF" and data[8:12] == b"WEBP":
        return "image/webp"
    return None


async def materialize(result_url: str, *, fetcher: ProxyFetcher) -> Artifact:
    """Download the ephemeral result through the proxy and wrap it as a real Artifact."""
    fetcher.check(result_url)

    try:
        content = await fetcher.fetch(result_url)
    except (DownloadError, UntrustedSourceError):
        raise
    except Exception as e:
        raise DownloadError(f"Failed to download generated image: {e}") from e

    if not content.data:
        raise DownloadError("Failed to download generated image: empty body")

    declared = content.content_type.split(";", 1)[0].strip().lower()
    sniffed = sniff_image_type(content.data)
    if sniffed:
        mime_type = sniffed
    elif declared.startswith("image/"):
        mime_type = declared
    else:
        raise DownloadError(f"Downloaded content is not an image (content-type={declared})")

    logger.info("Image downloaded: %d KB (%s)", round(len(content.data) / 1024), mime_type)
    return Artifact(kind="real", data=content.data, mime_type=mime_type)
