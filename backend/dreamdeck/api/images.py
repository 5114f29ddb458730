"""Image API — card generation and the same-origin FLUX image proxy."""
from __future__ import annotations

import logging

import httpx
from fastapi import APIRouter, Depends, Header, HTTPException, Query
from fastapi.responses import Response
from pydantic import BaseModel, model_validator

from dreamdeck.config import get_settings
from dreamdeck.schemas.generation import DreamAnalysis
from dreamdeck.services.cancellation import CancelToken
from dreamdeck.services.errors import ConfigurationError, DownloadError, UntrustedSourceError
from dreamdeck.services.image_gen import (
    CardImageResult,
    ProgressCallback,
    generate_dream_image,
    generate_image_from_prompt,
)
from dreamdeck.services.progress import ProgressSink
from dreamdeck.services.proxy_fetcher import ProxyFetcher, ProxyFetchError

logger = logging.getLogger(__name__)
router = APIRouter()
settings = get_settings()

NO_STORE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

# Module-level httpx client for connection reuse (lazy init)
_http_client: httpx.AsyncClient | None = None


def get_http_client() -> httpx.AsyncClient:
    """Return a module-level httpx.AsyncClient, creating it on first use."""
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(timeout=settings.FLUX_HTTP_TIMEOUT)
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


def get_proxy_fetcher(client: httpx.AsyncClient = Depends(get_http_client)) -> ProxyFetcher:
    return ProxyFetcher(client, settings.image_proxy_allowed_hosts)


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------

class GenerateImageRequest(BaseModel):
    prompt: str | None = None
    analysis: DreamAnalysis | None = None
    theme: str = "Minimal"
    title: str | None = None
    subtitle: str | None = None
    aspect_ratio: str | None = None

    @model_validator(mode="after")
    def _require_source(self) -> "GenerateImageRequest":
        if not (self.prompt and self.prompt.strip()) and self.analysis is None:
            raise ValueError("Either prompt or analysis is required")
        return self


class GenerateImageResponse(BaseModel):
    kind: str
    mime_type: str
    data_uri: str
    suggested_title: str
    suggested_subtitle: str

    @classmethod
    def from_result(cls, result: CardImageResult) -> "GenerateImageResponse":
        return cls(
            kind=result.artifact.kind,
            mime_type=result.artifact.mime_type,
            data_uri=result.artifact.data_uri,
            suggested_title=result.suggested_title,
            suggested_subtitle=result.suggested_subtitle,
        )


async def run_generation(
    req: GenerateImageRequest,
    api_key: str | None,
    *,
    http_client: httpx.AsyncClient | None = None,
    progress: ProgressSink | ProgressCallback | None = None,
    cancel_token: CancelToken | None = None,
) -> GenerateImageResponse:
    """Dispatch a request body to the prompt or analysis entry point."""
    options = dict(
        api_key=api_key,
        http_client=http_client,
        progress=progress,
        cancel_token=cancel_token,
        title=req.title,
        subtitle=req.subtitle,
        aspect_ratio=req.aspect_ratio,
    )
    if req.prompt and req.prompt.strip():
        result = await generate_image_from_prompt(req.prompt, req.analysis, theme=req.theme, **options)
    else:
        result = await generate_dream_image(req.analysis, req.theme, **options)
    return GenerateImageResponse.from_result(result)


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------

@router.post("/images/generate", response_model=GenerateImageResponse)
async def generate_image(
    req: GenerateImageRequest,
    x_key: str | None = Header(default=None),
    client: httpx.AsyncClient = Depends(get_http_client),
):
    """Generate a tarot card image; falls back to an SVG card on any upstream failure."""
    try:
        return await run_generation(req, x_key, http_client=client)
    except ConfigurationError as e:
        raise HTTPException(status_code=503, detail=str(e))


@router.get("/flux-image")
async def proxy_flux_image(
    url: str | None = Query(default=None),
    fetcher: ProxyFetcher = Depends(get_proxy_fetcher),
):
    """Stream image bytes from an allow-listed delivery host (bypasses CORS)."""
    if not url:
        return Response("Missing url parameter", status_code=400, media_type="text/plain")

    try:
        content = await fetcher.fetch(url)
    except UntrustedSourceError:
        return Response("Invalid host for image proxy", status_code=400, media_type="text/plain")
    except ProxyFetchError as e:
        return Response(e.body or "Failed to fetch image", status_code=e.status_code, media_type="text/plain")
    except DownloadError as e:
        logger.warning("Image proxy failed for %s: %s", url, e)
        return Response(f"Proxy error: {e}", status_code=502, media_type="text/plain")

    return Response(content.data, media_type=content.content_type, headers=NO_STORE_HEADERS)
