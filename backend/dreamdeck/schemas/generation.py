"""Data model for one image generation invocation.

GenerationRequest and ProgressEvent are Pydantic models (validated at the API
edge); GenerationJob and Artifact are plain dataclasses owned by the pipeline.
"""
from __future__ import annotations

import base64
import enum
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator
from pydantic.alias_generators import to_camel

_ASPECT_RATIO_RE = re.compile(r"^\d{1,2}:\d{1,2}$")

ProgressPhase = Literal["request", "polling", "downloading", "complete", "error"]


class GenerationRequest(BaseModel):
    """Immutable FLUX generation request."""

    prompt: str = Field(min_length=1)
    aspect_ratio: str = "2:3"
    output_format: Literal["png", "jpeg"] = "png"
    safety_tolerance: int = Field(default=2, ge=0, le=6)
    prompt_upsampling: bool = False
    seed: int | None = None

    model_config = {"frozen": True}

    @field_validator("prompt")
    @classmethod
    def _strip_prompt(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("prompt must not be blank")
        return value

    @field_validator("aspect_ratio")
    @classmethod
    def _check_aspect_ratio(cls, value: str) -> str:
        if not _ASPECT_RATIO_RE.match(value):
            raise ValueError(f"aspect_ratio must look like '2:3', got {value!r}")
        return value

    def to_payload(self) -> dict[str, Any]:
        """Wire body for the FLUX submit endpoint."""
        payload: dict[str, Any] = {
            "prompt": self.prompt,
            "aspect_ratio": self.aspect_ratio,
            "output_format": self.output_format,
            "safety_tolerance": self.safety_tolerance,
            "prompt_upsampling": self.prompt_upsampling,
        }
        if self.seed is not None:
            payload["seed"] = self.seed
        return payload


class JobState(str, enum.Enum):
    REQUESTED = "Requested"
    PENDING = "Pending"
    READY = "Ready"
    ERROR = "Error"
    MODERATED = "Moderated"
    NOT_FOUND = "NotFound"
    TIMED_OUT = "TimedOut"

    @property
    def is_terminal(self) -> bool:
        return self not in (JobState.REQUESTED, JobState.PENDING)


@dataclass
class GenerationJob:
    """Server-side job tracked by exactly one orchestrator invocation."""
    job_id: str
    state: JobState = JobState.REQUESTED
    attempts: int = 0
    progress: float | None = None
    result_url: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class Artifact:
    """Final image handed to the caller: a real render or a fallback card."""
    kind: Literal["real", "fallback"]
    data: bytes
    mime_type: str

    @property
    def is_fallback(self) -> bool:
        return self.kind == "fallback"

    @property
    def base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.base64}"


class ProgressEvent(BaseModel):
    """One progress notification; percent is clamped to [0, 100]."""

    phase: ProgressPhase
    message: str
    percent: float = 0

    model_config = {"frozen": True}

    @field_validator("percent")
    @classmethod
    def _clamp_percent(cls, value: float) -> float:
        return max(0.0, min(100.0, float(value)))


class FallbackCard(BaseModel):
    """Inputs of the locally rendered placeholder card."""

    theme: str = "Minimal"
    title: str = ""
    subtitle: str = ""
    keywords: list[str] = Field(default_factory=list)


class TarotSuggestion(BaseModel):
    title: str = ""
    subtitle: str = ""

    model_config = {"alias_generator": to_camel, "populate_by_name": True}


class DreamAnalysis(BaseModel):
    """Result of the (external) language-model dream analysis."""

    analysis: str = ""
    jungian_interpretation: str = ""
    symbols: list[str] = Field(default_factory=list)
    archetypes: list[str] = Field(default_factory=list)
    emotions: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    tarot_card: TarotSuggestion | None = None

    model_config = {"alias_generator": to_camel, "populate_by_name": True}
