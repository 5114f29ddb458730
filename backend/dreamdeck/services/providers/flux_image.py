"""FLUX (Black Forest Labs) image generation provider.

Async task pattern: POST create task -> GET get_result?id= until terminal.
This module only wraps the two HTTP calls; the polling loop lives in
``dreamdeck.services.job_poller``.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

from dreamdeck.schemas.generation import GenerationJob, GenerationRequest, JobState
from dreamdeck.services.errors import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)

_DEFAULT_ENDPOINT = "https://api.bfl.ai/v1"
_DEFAULT_MODEL = "flux-kontext-pro"

_STATUS_MAP: dict[str, JobState] = {
    "Pending": JobState.PENDING,
    "Ready": JobState.READY,
    "Error": JobState.ERROR,
    "Request Moderated": JobState.MODERATED,
    "Content Moderated": JobState.MODERATED,
    "Task not found": JobState.NOT_FOUND,
}


def classify_status(status: str | None) -> JobState | None:
    """Map an upstream status string to a JobState (None if unrecognised)."""
    if not status:
        return None
    return _STATUS_MAP.get(status)


def _headers(api_key: str) -> dict[str, str]:
    return {
        "x-key": api_key,
        "Content-Type": "application/json",
        "Accept": "application/json",
    }


def _json_or_raise(resp: httpx.Response, what: str) -> dict[str, Any]:
    if resp.status_code < 200 or resp.status_code >= 300:
        raise UpstreamError(
            f"FLUX {what} failed ({resp.status_code}): {resp.text[:500]}",
            status_code=resp.status_code,
        )
    try:
        data = resp.json()
    except ValueError as e:
        raise UpstreamError(f"FLUX {what} returned invalid JSON") from e
    if not isinstance(data, dict):
        raise UpstreamError(f"FLUX {what} returned unexpected payload type {type(data).__name__}")
    return data


async def submit_generation(
    request: GenerationRequest,
    *,
    api_key: str,
    client: httpx.AsyncClient,
    base_url: str | None = None,
    model: str | None = None,
) -> GenerationJob:
    """Create a FLUX generation task.

    Returns a GenerationJob in state Requested.
    """
    if not api_key:
        raise ConfigurationError("FLUX API key not set. Please configure your API key.")

    endpoint = f"{(base_url or _DEFAULT_ENDPOINT).rstrip('/')}/{model or _DEFAULT_MODEL}"

    try:
        resp = await client.post(endpoint, json=request.to_payload(), headers=_headers(api_key))
    except httpx.HTTPError as e:
        raise UpstreamError(f"FLUX submit transport error: {e}") from e

    data = _json_or_raise(resp, "submit")
    job_id = data.get("id")
    if not job_id:
        raise UpstreamError("FLUX submit: no task id in response")

    logger.info("FLUX task created: %s (model=%s)", job_id, model or _DEFAULT_MODEL)
    return GenerationJob(job_id=str(job_id))


async def fetch_status(
    job_id: str,
    *,
    api_key: str,
    client: httpx.AsyncClient,
    base_url: str | None = None,
) -> dict[str, Any]:
    """Query a FLUX task once and return the raw status payload."""
    if not api_key:
        raise ConfigurationError("FLUX API key not set. Please configure your API key.")

    query_url = f"{(base_url or _DEFAULT_ENDPOINT).rstrip('/')}/get_result"
    try:
        resp = await client.get(query_url, params={"id": job_id}, headers=_headers(api_key))
    except httpx.HTTPError as e:
        raise UpstreamError(f"FLUX status transport error: {e}") from e

    return _json_or_raise(resp, "status")
