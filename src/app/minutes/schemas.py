"""Pydantic v2 schemas for the minutes domain.

Defines the data contracts shared by chunk planning, topic extraction,
timeline aggregation, global-summary parsing and minutes assembly.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import AliasChoices, BaseModel, Field, field_validator, model_validator

from src.app.core.errors import ValidationError
from src.app.schemas.base import CamelModel

# ── Limits ───────────────────────────────────────────────────────────────────

MAX_INPUT_TOKENS = 30_000  # Global summary input is capped at half this in chars
MAX_OUTPUT_TOKENS = 8192
DEFAULT_CHUNK_SIZE = 8000  # characters
DEFAULT_CHUNK_OVERLAP = 500  # characters
MAX_KEY_POINTS = 5

UNKNOWN_VALUES = frozenset({"unknown", "不明", ""})


# ── Enums ────────────────────────────────────────────────────────────────────


class Priority(str, Enum):
    """Action item priority."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


# ── Chunking & Topics ────────────────────────────────────────────────────────


class TextChunk(CamelModel):
    """Contiguous, possibly overlapping window of the transcript text."""

    id: int
    text: str


class MeetingTopic(CamelModel):
    """Structured summary of the discussion inside one chunk."""

    id: int = 0
    title: str = Field(
        default="",
        validation_alias=AliasChoices("title", "topic"),
    )
    start_time: str = Field(
        default="",
        validation_alias=AliasChoices("start_time", "startTime"),
    )
    end_time: str = Field(
        default="",
        validation_alias=AliasChoices("end_time", "endTime"),
    )
    speakers: list[str] = Field(default_factory=list)
    summary: str = ""
    key_points: list[str] = Field(
        default_factory=list,
        validation_alias=AliasChoices("key_points", "keyPoints"),
    )

    @field_validator("start_time", "end_time", "title", "summary", mode="before")
    @classmethod
    def _none_to_empty(cls, value: object) -> object:
        return "" if value is None else value

    @field_validator("speakers", "key_points", mode="before")
    @classmethod
    def _coerce_list(cls, value: object) -> object:
        if value is None:
            return []
        if isinstance(value, str):
            return [value] if value.strip() else []
        return value

    @field_validator("key_points")
    @classmethod
    def _cap_key_points(cls, value: list[str]) -> list[str]:
        return value[:MAX_KEY_POINTS]


class MeetingTimeline(CamelModel):
    """Chronologically ordered topics plus their rendered markdown."""

    topics: list[MeetingTopic] = Field(default_factory=list)
    raw_markdown: str = ""


# ── Global Summary ───────────────────────────────────────────────────────────


class ActionItem(CamelModel):
    """Task parsed from the global summary's action section."""

    task: str
    assignee: str | None = None
    due_date: str | None = None
    priority: Priority | None = Priority.MEDIUM


class GlobalSummary(CamelModel):
    """Structured fields extracted from the whole-transcript summary."""

    purpose: str = "unknown"
    participants: list[str] = Field(default_factory=list)
    date: str = "unknown"
    location: str = "online"
    summary: str = ""
    decisions: list[str] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
    raw_markdown: str = ""


# ── Minutes ──────────────────────────────────────────────────────────────────


class MeetingMeta(CamelModel):
    """Meeting facts copied verbatim into the minutes document."""

    title: str = "無題会議"
    date: str = ""
    duration_minutes: int = 0
    category: str = "internalMeeting"


class MinutesDocument(CamelModel):
    """Final assembled minutes for one meeting."""

    title: str
    date: str
    category: str
    duration_minutes: int
    participant_count: int
    participants: list[str] = Field(default_factory=list)
    global_summary: GlobalSummary
    timeline: MeetingTimeline
    generated_at: datetime


# ── Options ──────────────────────────────────────────────────────────────────


class SummarizationOptions(BaseModel):
    """Knobs for chunking and per-chunk topic analysis."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    chunk_overlap: int = DEFAULT_CHUNK_OVERLAP
    max_topics: int = 5
    language: str = "ja"
    include_timestamps: bool = True
    include_speakers: bool = True

    @model_validator(mode="after")
    def _check_chunking(self) -> SummarizationOptions:
        validate_chunking(self.chunk_size, self.chunk_overlap)
        return self


def validate_chunking(chunk_size: int, chunk_overlap: int) -> None:
    """Reject chunk settings that cannot make forward progress.

    Raises:
        ValidationError: If chunk_size is not positive, chunk_overlap is
            negative, or chunk_overlap >= chunk_size.
    """
    if chunk_size <= 0:
        raise ValidationError(f"chunk_size must be positive, got {chunk_size}")
    if chunk_overlap < 0:
        raise ValidationError(f"chunk_overlap must not be negative, got {chunk_overlap}")
    if chunk_overlap >= chunk_size:
        raise ValidationError(
            f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})"
        )
