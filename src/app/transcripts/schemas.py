"""Pydantic v2 schemas for structured transcripts."""

from __future__ import annotations

from pydantic import BaseModel, Field

from src.app.schemas.base import CamelModel


class TranscriptEntry(CamelModel):
    """One caption cue: a time span, an optional speaker and its text."""

    start_time: str = Field(description="Cue start, HH:MM:SS.mmm")
    end_time: str = Field(description="Cue end, HH:MM:SS.mmm")
    speaker: str | None = None
    text: str


class TranscriptMetadata(CamelModel):
    """Meeting-level metadata attached to a parsed transcript."""

    meeting_id: str
    topic: str | None = None
    date: str | None = None
    duration_seconds: int | None = None
    speaker_count: int | None = None
    speakers: list[str] | None = None


class StructuredTranscript(CamelModel):
    """Parsed transcript.

    ``raw_text`` is always the newline-joined text of ``entries``.
    """

    metadata: TranscriptMetadata
    entries: list[TranscriptEntry] = Field(default_factory=list)
    raw_text: str = ""


class ParseOptions(BaseModel):
    """Caption parsing switches."""

    extract_speakers: bool = True
    combine_lines: bool = True
    remove_filler: bool = False
