"""Progress reporting for image generation.

Stages publish through a ProgressReporter, which clamps and orders percents
before handing events to a ProgressSink (a callback, an asyncio queue, a
WebSocket relay). Delivery is fire-and-forget: a failing sink never breaks
the generation.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Callable, Protocol

from dreamdeck.schemas.generation import ProgressEvent, ProgressPhase

logger = logging.getLogger(__name__)

# Messages shown to the dreamer for each phase
PHASE_MESSAGES: dict[str, str] = {
    "request": "Calling the canvas to life…",
    "polling": "The vision is taking shape…",
    "downloading": "Drawing the final veil…",
    "complete": "Your vision has arrived.",
    "error": "The vision faltered before forming.",
}


class ProgressSink(Protocol):
    def emit(self, event: ProgressEvent) -> None: ...


class CallbackSink:
    """Adapts a plain ``callable(event)`` to the sink interface."""

    def __init__(self, callback: Callable[[ProgressEvent], None]):
        self._callback = callback

    def emit(self, event: ProgressEvent) -> None:
        self._callback(event)


class QueueSink:
    """Pushes events onto an asyncio.Queue for a consumer task."""

    def __init__(self, queue: asyncio.Queue | None = None):
        self.queue: asyncio.Queue[ProgressEvent] = queue or asyncio.Queue()

    def emit(self, event: ProgressEvent) -> None:
        self.queue.put_nowait(event)


class ProgressReporter:
    """Per-invocation reporter keeping percent non-decreasing within [0, 100]."""

    def __init__(self, sink: ProgressSink | Callable[[ProgressEvent], None] | None = None):
        if sink is not None and not hasattr(sink, "emit"):
            sink = CallbackSink(sink)
        self._sink = sink
        self._percent = 0.0
        self.events: list[ProgressEvent] = []

    @property
    def percent(self) -> float:
        return self._percent

    def report(self, phase: ProgressPhase, percent: float | None = None, message: str | None = None) -> ProgressEvent:
        """Publish an event; percent never goes below the last published value."""
        if percent is None:
            percent = self._percent
        self._percent = max(self._percent, min(100.0, max(0.0, float(percent))))
        event = ProgressEvent(
            phase=phase,
            message=message or PHASE_MESSAGES[phase],
            percent=self._percent,
        )
        self.events.append(event)
        if self._sink is not None:
            try:
                self._sink.emit(event)
            except Exception:
                logger.warning("Progress sink rejected %s event", phase, exc_info=True)
        return event
