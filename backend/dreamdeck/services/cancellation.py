"""Cooperative cancellation for long-running generation invocations."""

from __future__ import annotations

import asyncio

from dreamdeck.services.errors import GenerationCancelledError


class CancelToken:
    """Set by a caller that lost interest; checked before every await point."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self) -> None:
        self._event.set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise GenerationCancelledError("Image generation cancelled by caller")

    async def sleep(self, seconds: float) -> None:
        """Sleep for ``seconds`` but wake early (and raise) on cancellation."""
        self.raise_if_cancelled()
        if seconds > 0:
            try:
                await asyncio.wait_for(self._event.wait(), timeout=seconds)
            except asyncio.TimeoutError:
                return
        self.raise_if_cancelled()
