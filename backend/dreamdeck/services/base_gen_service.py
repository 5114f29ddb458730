"""Base generation service — single attempt, fallback, and usage metrics."""
from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class GenResult(Generic[T]):
    """Standardized generation result."""
    data: T
    provider: str
    latency_ms: int
    fallback_used: bool = False
    error: str | None = None


class BaseGenService(ABC, Generic[T]):
    """Abstract base class for generation services.

    Provides:
    - Fallback strategy on failure
    - Usage metrics

    Exceptions listed in ``fatal_errors`` skip the fallback.
    Counters are per instance and only ever read through ``get_metrics``.
    """

    service_name: str = "unknown"
    fatal_errors: tuple[type[BaseException], ...] = ()
    fallback_enabled: bool = True

    def __init__(self) -> None:
        self._total_calls = 0
        self._total_errors = 0
        self._total_fallbacks = 0
        self._total_latency_ms = 0

    async def execute(self, **kwargs: Any) -> GenResult[T]:
        """Unified execution entry point with fallback/metrics."""
        self._total_calls += 1
        start = time.monotonic()

        try:
            result = await self._generate(**kwargs)
        except self.fatal_errors:
            raise
        except Exception as e:
            error = e
            self._total_errors += 1
            logger.warning("%s generation failed: %s", self.service_name, e)
        else:
            latency = int((time.monotonic() - start) * 1000)
            self._total_latency_ms += latency
            return GenResult(data=result, provider=self.service_name, latency_ms=latency)

        self._on_failure(error, **kwargs)

        if self.fallback_enabled:
            try:
                logger.info("%s: using fallback after %s", self.service_name, type(error).__name__)
                result = await self._fallback(**kwargs)
                latency = int((time.monotonic() - start) * 1000)
                self._total_latency_ms += latency
                self._total_fallbacks += 1
                return GenResult(
                    data=result,
                    provider=f"{self.service_name}_fallback",
                    latency_ms=latency,
                    fallback_used=True,
                    error=str(error),
                )
            except NotImplementedError:
                pass
            except Exception as fb_err:
                logger.error("%s fallback failed: %s", self.service_name, fb_err)

        raise RuntimeError(f"{self.service_name} failed: {error}") from error

    @abstractmethod
    async def _generate(self, **kwargs: Any) -> T:
        """Subclass implements actual generation logic."""
        ...

    async def _fallback(self, **kwargs: Any) -> T:
        """Optional fallback — override in subclass."""
        raise NotImplementedError(f"{self.service_name} has no fallback")

    def _on_failure(self, error: Exception, **kwargs: Any) -> None:
        """Hook run once after a failed attempt, before fallback."""

    def get_metrics(self) -> dict[str, Any]:
        """Return usage statistics for this service."""
        return {
            "service": self.service_name,
            "total_calls": self._total_calls,
            "total_errors": self._total_errors,
            "total_fallbacks": self._total_fallbacks,
            "error_rate": round(self._total_errors / max(self._total_calls, 1), 3),
            "avg_latency_ms": round(self._total_latency_ms / max(self._total_calls, 1)),
        }
