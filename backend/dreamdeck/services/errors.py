"""Exception hierarchy for the image generation pipeline.

Only ``ConfigurationError`` and ``GenerationCancelledError`` ever reach callers
of the orchestrator; every other error is converted into a fallback card.
"""

from __future__ import annotations

from typing import Any


class ImageGenError(RuntimeError):
    """Base class for image generation failures."""


class ConfigurationError(ImageGenError):
    """Missing or invalid local configuration (e.g. no API key)."""


class GenerationCancelledError(ImageGenError):
    """The caller cancelled the invocation."""


class UpstreamError(ImageGenError):
    """Submission or status request failed at the HTTP layer."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class GenerationError(ImageGenError):
    """The generation service reported the job as failed."""

    def __init__(self, message: str, details: Any = None):
        super().__init__(message)
        self.details = details


class PolicyError(ImageGenError):
    """The request or its output was moderated."""


class JobLostError(ImageGenError):
    """The generation service no longer knows the job id."""


class PollTimeoutError(ImageGenError, TimeoutError):
    """The polling attempt budget ran out while the job was still pending."""


class UntrustedSourceError(ImageGenError):
    """A result URL points at a host outside the proxy allow-list."""


class DownloadError(ImageGenError):
    """The result image could not be fetched or decoded."""
