"""Pydantic v2 schemas package."""

from dreamdeck.schemas.generation import (
    Artifact,
    DreamAnalysis,
    FallbackCard,
    GenerationJob,
    GenerationRequest,
    JobState,
    ProgressEvent,
    TarotSuggestion,
)

__all__ = [
    "Artifact",
    "DreamAnalysis",
    "FallbackCard",
    "GenerationJob",
    "GenerationRequest",
    "JobState",
    "ProgressEvent",
    "TarotSuggestion",
]
