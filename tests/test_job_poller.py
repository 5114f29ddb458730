from __future__ import annotations

import asyncio
import time

import httpx
import pytest

from conftest import CONNECT_ERROR
from dreamdeck.schemas.generation import GenerationJob, JobState
from dreamdeck.services.cancellation import CancelToken
from dreamdeck.services.errors import (
    GenerationCancelledError,
    GenerationError,
    JobLostError,
    PolicyError,
    PollTimeoutError,
    UpstreamError,
)
from dreamdeck.services.job_poller import estimate_progress, poll_job
from dreamdeck.services.progress import ProgressReporter

READY = {"status": "Ready", "result": {"sample": "https://delivery.example/abc.png"}}


async def _poll(fake, job=None, **kwargs):
    job = job or GenerationJob(job_id="abc")
    kwargs.setdefault("poll_interval", 0)
    async with fake.client() as client:
        return await poll_job(job, api_key="k", client=client, **kwargs)


@pytest.mark.asyncio
async def test_stops_on_ready_after_three_calls(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending"}, {"status": "Pending"}, READY])
    job = GenerationJob(job_id="abc")

    url = await _poll(fake, job)

    assert url == "https://delivery.example/abc.png"
    assert len(fake.status_calls) == 3
    assert job.state is JobState.READY
    assert job.attempts == 3
    assert job.result_url == url


@pytest.mark.asyncio
async def test_moderation_is_never_retried(fake_flux) -> None:
    fake = fake_flux([{"status": "Content Moderated"}, READY])
    job = GenerationJob(job_id="abc")

    with pytest.raises(PolicyError):
        await _poll(fake, job)

    assert len(fake.status_calls) == 1
    assert job.state is JobState.MODERATED


@pytest.mark.asyncio
async def test_request_moderation_is_policy_error(fake_flux) -> None:
    fake = fake_flux([{"status": "Request Moderated"}])
    with pytest.raises(PolicyError):
        await _poll(fake)
    assert len(fake.status_calls) == 1


@pytest.mark.asyncio
async def test_exhausted_budget_raises_timeout(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending"}])
    job = GenerationJob(job_id="abc")

    with pytest.raises(TimeoutError):
        await _poll(fake, job, max_attempts=3)

    assert len(fake.status_calls) == 3
    assert job.state is JobState.TIMED_OUT


@pytest.mark.asyncio
async def test_error_status_carries_details(fake_flux) -> None:
    fake = fake_flux([{"status": "Error", "details": {"reason": "gpu on fire"}}])

    with pytest.raises(GenerationError) as exc_info:
        await _poll(fake)

    assert exc_info.value.details == {"reason": "gpu on fire"}
    assert len(fake.status_calls) == 1


@pytest.mark.asyncio
async def test_task_not_found_is_job_lost(fake_flux) -> None:
    fake = fake_flux([{"status": "Task not found"}])
    with pytest.raises(JobLostError):
        await _poll(fake)
    assert len(fake.status_calls) == 1


@pytest.mark.asyncio
async def test_ready_without_sample_is_upstream_error(fake_flux) -> None:
    fake = fake_flux([{"status": "Ready", "result": {}}])
    with pytest.raises(UpstreamError, match="without data"):
        await _poll(fake)


@pytest.mark.asyncio
async def test_transport_failure_is_retried(fake_flux) -> None:
    fake = fake_flux([CONNECT_ERROR, httpx.Response(503, text="busy"), READY])

    url = await _poll(fake, max_attempts=5)

    assert url.endswith("abc.png")
    assert len(fake.status_calls) == 3


@pytest.mark.asyncio
async def test_transport_failure_on_last_attempt_propagates(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending"}, CONNECT_ERROR])

    with pytest.raises(UpstreamError):
        await _poll(fake, max_attempts=2)

    assert len(fake.status_calls) == 2


@pytest.mark.asyncio
async def test_unknown_status_keeps_polling(fake_flux) -> None:
    fake = fake_flux([{"status": "Queued"}, READY])
    reporter = ProgressReporter()

    await _poll(fake, reporter=reporter)

    assert len(fake.status_calls) == 2
    assert reporter.events == []


@pytest.mark.asyncio
async def test_pending_reports_upstream_progress(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending", "progress": 40}, {"status": "Pending", "progress": 95}, READY])
    reporter = ProgressReporter()
    job = GenerationJob(job_id="abc")

    await _poll(fake, job, reporter=reporter)

    assert [(e.phase, e.percent) for e in reporter.events] == [("polling", 40), ("polling", 80)]
    assert job.progress == 95


@pytest.mark.asyncio
async def test_cancelled_token_stops_before_polling(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending"}])
    token = CancelToken()
    token.cancel()

    with pytest.raises(GenerationCancelledError):
        await _poll(fake, cancel_token=token)

    assert fake.status_calls == []


@pytest.mark.asyncio
async def test_cancel_during_poll_delay_wakes_immediately(fake_flux) -> None:
    fake = fake_flux([{"status": "Pending"}])
    token = CancelToken()

    async def cancel_soon():
        await asyncio.sleep(0.05)
        token.cancel()

    canceller = asyncio.create_task(cancel_soon())
    started = time.monotonic()
    with pytest.raises(GenerationCancelledError):
        await asyncio.wait_for(_poll(fake, cancel_token=token, poll_interval=60), timeout=5)
    await canceller

    assert time.monotonic() - started < 5
    assert len(fake.status_calls) == 1


@pytest.mark.asyncio
async def test_sleeps_between_attempts_only(fake_flux, monkeypatch) -> None:
    delays: list[float] = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    monkeypatch.setattr("dreamdeck.services.job_poller.asyncio.sleep", fake_sleep)
    fake = fake_flux([{"status": "Pending"}])

    with pytest.raises(PollTimeoutError):
        await _poll(fake, max_attempts=3, poll_interval=5.0)

    assert delays == [5.0, 5.0]


def test_estimate_progress_prefers_reported_value() -> None:
    assert estimate_progress(1, 30, 40) == 40
    assert estimate_progress(1, 30, 2) == 15
    assert estimate_progress(1, 30, 99) == 80


def test_estimate_progress_from_attempts_stays_in_band() -> None:
    values = [estimate_progress(attempt, 30) for attempt in range(1, 31)]
    assert values == sorted(values)
    assert values[0] >= 15
    assert values[-1] == 80
