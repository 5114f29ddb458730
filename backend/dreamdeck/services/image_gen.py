"""Image generation service — FLUX job orchestration with a local fallback card.

Sequence: submit -> poll -> materialize. Any failure along the way is caught
once, reported as a terminal ``error`` progress event, and replaced by the SVG
fallback card, so callers always receive an Artifact. The only errors that
escape are ``ConfigurationError`` (no API key; raised before any network
call) and ``GenerationCancelledError`` (the caller cancelled).

Extends BaseGenService for fallback handling and metrics.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import httpx

from dreamdeck.config import get_settings
from dreamdeck.schemas.generation import (
    Artifact,
    DreamAnalysis,
    FallbackCard,
    GenerationRequest,
    ProgressEvent,
)
from dreamdeck.services.base_gen_service import BaseGenService
from dreamdeck.services.cancellation import CancelToken
from dreamdeck.services.card_prompt import build_card_prompt, fallback_card_for, suggested_names
from dreamdeck.services.errors import (
    ConfigurationError,
    GenerationCancelledError,
    JobLostError,
    PolicyError,
)
from dreamdeck.services.fallback_card import render_fallback_card
from dreamdeck.services.job_poller import poll_job
from dreamdeck.services.materializer import materialize
from dreamdeck.services.progress import ProgressReporter, ProgressSink
from dreamdeck.services.providers.flux_image import submit_generation
from dreamdeck.services.proxy_fetcher import ProxyFetcher

logger = logging.getLogger(__name__)
settings = get_settings()

ProgressCallback = Callable[[ProgressEvent], None]

_ERROR_MESSAGES: dict[type[Exception], str] = {
    PolicyError: "The path was barred by the wards.",
    JobLostError: "The thread of this vision was lost.",
}


@dataclass(frozen=True)
class CardImageResult:
    artifact: Artifact
    suggested_title: str
    suggested_subtitle: str


class ImageGenService(BaseGenService[Artifact]):
    """FLUX tarot-card generation; never retries, always falls back.

    Per-call state (job, reporter, HTTP client) travels in kwargs, so one
    instance serves any number of concurrent invocations.
    """

    service_name = "image_gen"
    fatal_errors = (ConfigurationError, GenerationCancelledError)

    async def _generate(self, **kwargs: Any) -> Artifact:
        client: httpx.AsyncClient | None = kwargs.get("http_client")
        if client is not None:
            return await self._run_pipeline(client, **kwargs)
        async with httpx.AsyncClient(timeout=kwargs["http_timeout"]) as own_client:
            return await self._run_pipeline(own_client, **kwargs)

    async def _run_pipeline(self, client: httpx.AsyncClient, **kwargs: Any) -> Artifact:
        request: GenerationRequest = kwargs["request"]
        reporter: ProgressReporter = kwargs["reporter"]
        cancel_token: CancelToken | None = kwargs.get("cancel_token")

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        reporter.report("request", 10)
        job = await submit_generation(
            request,
            api_key=kwargs["api_key"],
            client=client,
            base_url=kwargs["base_url"],
            model=kwargs["model"],
        )

        result_url = await poll_job(
            job,
            api_key=kwargs["api_key"],
            client=client,
            base_url=kwargs["base_url"],
            max_attempts=kwargs["max_attempts"],
            poll_interval=kwargs["poll_interval"],
            reporter=reporter,
            cancel_token=cancel_token,
        )

        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        reporter.report("downloading", 85)
        fetcher = ProxyFetcher(client, kwargs["allowed_hosts"], proxy_url=kwargs.get("proxy_url"))
        artifact = await materialize(result_url, fetcher=fetcher)

        reporter.report("complete", 100)
        logger.info("FLUX job %s complete (%d bytes)", job.job_id, len(artifact.data))
        return artifact

    def _on_failure(self, error: Exception, **kwargs: Any) -> None:
        message = next(
            (msg for exc_type, msg in _ERROR_MESSAGES.items() if isinstance(error, exc_type)),
            None,
        )
        kwargs["reporter"].report("error", message=message)

    async def _fallback(self, **kwargs: Any) -> Artifact:
        card: FallbackCard = kwargs["fallback_card"]
        logger.info("image_gen: rendering fallback card (theme=%s)", card.theme)
        return render_fallback_card(card)


# Module-level singleton for metrics aggregation
_image_service = ImageGenService()


def get_image_service() -> ImageGenService:
    """Return the singleton ImageGenService for metrics access."""
    return _image_service


async def generate_card_image(
    request: GenerationRequest,
    *,
    api_key: str | None = None,
    fallback_card: FallbackCard | None = None,
    progress: ProgressSink | ProgressCallback | None = None,
    cancel_token: CancelToken | None = None,
    http_client: httpx.AsyncClient | None = None,
    max_attempts: int | None = None,
    poll_interval: float | None = None,
    allowed_hosts: Iterable[str] | None = None,
    proxy_url: str | None = None,
    base_url: str | None = None,
    model: str | None = None,
) -> Artifact:
    """Public API — one Artifact per call, real or fallback.

    Raises ConfigurationError when no API key is available (explicit or
    FLUX_API_KEY), before any progress event or network call.
    ValueError for a max_attempts below 1, also before any network call.
    """
    api_key = api_key or settings.FLUX_API_KEY
    if not api_key:
        raise ConfigurationError("FLUX API key not configured")
    if max_attempts is None:
        max_attempts = settings.FLUX_POLL_MAX_ATTEMPTS
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    result = await _image_service.execute(
        request=request,
        api_key=api_key,
        fallback_card=fallback_card or FallbackCard(),
        reporter=ProgressReporter(progress),
        cancel_token=cancel_token,
        http_client=http_client,
        http_timeout=settings.FLUX_HTTP_TIMEOUT,
        max_attempts=max_attempts,
        poll_interval=settings.FLUX_POLL_INTERVAL if poll_interval is None else poll_interval,
        allowed_hosts=tuple(allowed_hosts) if allowed_hosts is not None else settings.image_proxy_allowed_hosts,
        proxy_url=proxy_url if proxy_url is not None else settings.IMAGE_PROXY_URL,
        base_url=base_url or settings.FLUX_API_BASE,
        model=model or settings.FLUX_MODEL,
    )
    if result.fallback_used:
        logger.warning("image_gen: returned fallback card (%s)", result.error)
    return result.data


async def generate_image_from_prompt(
    prompt: str,
    analysis: DreamAnalysis | None = None,
    *,
    theme: str = "Minimal",
    title: str | None = None,
    subtitle: str | None = None,
    aspect_ratio: str | None = None,
    **options: Any,
) -> CardImageResult:
    """Generate a card from an already-optimised prompt."""
    request = GenerationRequest(
        prompt=prompt,
        aspect_ratio=aspect_ratio or settings.FLUX_DEFAULT_ASPECT_RATIO,
        safety_tolerance=settings.FLUX_SAFETY_TOLERANCE,
    )
    artifact = await generate_card_image(
        request,
        fallback_card=fallback_card_for(analysis, theme, title, subtitle),
        **options,
    )
    suggested_title, suggested_subtitle = suggested_names(analysis)
    return CardImageResult(
        artifact=artifact,
        suggested_title=suggested_title,
        suggested_subtitle=suggested_subtitle,
    )


async def generate_dream_image(
    analysis: DreamAnalysis,
    theme: str = "Minimal",
    **options: Any,
) -> CardImageResult:
    """Generate a card straight from a dream analysis."""
    return await generate_image_from_prompt(
        build_card_prompt(analysis, theme),
        analysis,
        theme=theme,
        **options,
    )
