"""Status poller: drives a submitted FLUX job to a terminal state.

State machine::

    Requested -> Pending <-> Pending -> {Ready, Error, Moderated, NotFound}
                                     -> TimedOut (attempt budget exhausted)

Moderation and not-found are permanent outcomes and end the loop on the
first sighting. Transport failures during a poll are retried (the job may
still be progressing server-side) until the last attempt.
"""

from __future__ import annotations

import asyncio
import logging

import httpx

from dreamdeck.schemas.generation import GenerationJob, JobState
from dreamdeck.services.cancellation import CancelToken
from dreamdeck.services.errors import (
    GenerationError,
    JobLostError,
    PolicyError,
    PollTimeoutError,
    UpstreamError,
)
from dreamdeck.services.progress import ProgressReporter
from dreamdeck.services.providers.flux_image import classify_status, fetch_status

logger = logging.getLogger(__name__)

PROGRESS_FLOOR = 15
PROGRESS_CEILING = 80


def estimate_progress(attempt: int, max_attempts: int, reported: float | None = None) -> int:
    """Polling percent: upstream value when known, else scaled from attempts."""
    if isinstance(reported, (int, float)) and not isinstance(reported, bool):
        return int(round(max(PROGRESS_FLOOR, min(PROGRESS_CEILING, reported))))
    span = PROGRESS_CEILING - PROGRESS_FLOOR
    estimated = round(attempt / max(max_attempts, 1) * span) + PROGRESS_FLOOR
    return min(PROGRESS_CEILING, max(PROGRESS_FLOOR, estimated))


async def _wait(seconds: float, cancel_token: CancelToken | None) -> None:
    if cancel_token is not None:
        await cancel_token.sleep(seconds)
    else:
        await asyncio.sleep(seconds)


async def poll_job(
    job: GenerationJob,
    *,
    api_key: str,
    client: httpx.AsyncClient,
    base_url: str | None = None,
    max_attempts: int = 30,
    poll_interval: float = 5.0,
    reporter: ProgressReporter | None = None,
    cancel_token: CancelToken | None = None,
) -> str:
    """Poll until the job is Ready and return its ephemeral result URL."""
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    logger.info("Polling FLUX task %s (max_attempts=%d, interval=%.1fs)", job.job_id, max_attempts, poll_interval)

    for attempt in range(1, max_attempts + 1):
        if cancel_token is not None:
            cancel_token.raise_if_cancelled()
        job.attempts = attempt

        try:
            data = await fetch_status(job.job_id, api_key=api_key, client=client, base_url=base_url)
        except UpstreamError as e:
            if attempt >= max_attempts:
                raise
            logger.warning("Poll attempt %d/%d for %s failed: %s", attempt, max_attempts, job.job_id, e)
            await _wait(poll_interval, cancel_token)
            continue

        status = data.get("status")
        state = classify_status(status)

        if state is JobState.READY:
            job.state = JobState.READY
            sample = (data.get("result") or {}).get("sample")
            if not sample:
                raise UpstreamError("Image generation completed without data")
            job.result_url = sample
            logger.info("FLUX task %s ready after %d attempt(s)", job.job_id, attempt)
            return sample

        if state is JobState.PENDING:
            job.state = JobState.PENDING
            reported = data.get("progress")
            job.progress = reported if isinstance(reported, (int, float)) else None
            percent = estimate_progress(attempt, max_attempts, job.progress)
            logger.debug("FLUX task %s pending (progress=%s, percent=%d)", job.job_id, reported, percent)
            if reporter is not None:
                reporter.report("polling", percent)

        elif state is JobState.ERROR:
            job.state = JobState.ERROR
            details = data.get("details")
            raise GenerationError(f"Image generation failed: {details}", details=details)

        elif state is JobState.MODERATED:
            job.state = JobState.MODERATED
            raise PolicyError(f"Image generation was blocked due to content policy ({status})")

        elif state is JobState.NOT_FOUND:
            job.state = JobState.NOT_FOUND
            raise JobLostError(f"Generation task {job.job_id} not found")

        else:
            logger.warning("FLUX task %s returned unknown status: %r", job.job_id, status)

        if attempt < max_attempts:
            await _wait(poll_interval, cancel_token)

    job.state = JobState.TIMED_OUT
    raise PollTimeoutError(
        f"Image generation timed out after {max_attempts} attempts. Please try again."
    )
