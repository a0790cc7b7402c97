"""Pydantic v2 schemas for minutes jobs.

A job is created from the meeting platform's recording-completed webhook
payload. The payload keeps the platform's snake_case field names; the job
record itself is stored and served with camelCase aliases.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from pydantic import BaseModel, Field

from src.app.classification.schemas import MeetingCategory
from src.app.minutes.schemas import ActionItem, MinutesDocument
from src.app.schemas.base import CamelModel


# ── Enums ────────────────────────────────────────────────────────────────────


class JobStatus(str, Enum):
    """Lifecycle status of a minutes job."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


# ── Recording Payload ────────────────────────────────────────────────────────


class RecordingFile(BaseModel):
    """One file attached to a cloud recording."""

    id: str
    file_type: str
    recording_type: str | None = None
    download_url: str | None = None
    status: str | None = None
    recording_start: str | None = None
    recording_end: str | None = None
    file_name: str | None = None


class MeetingObject(BaseModel):
    """Meeting section of the recording-completed payload."""

    uuid: str
    id: str | int | None = None
    topic: str = ""
    host_id: str | None = None
    start_time: str | None = None
    duration: int = Field(default=0, description="Meeting length in minutes")
    recording_files: list[RecordingFile] = Field(default_factory=list)


class RecordingPayload(BaseModel):
    """Recording-completed webhook payload."""

    object: MeetingObject


# ── Job Records ──────────────────────────────────────────────────────────────


class CreateJobRequest(CamelModel):
    """Body of POST /api/v1/jobs."""

    payload: RecordingPayload
    download_token: str = ""


class JobRecord(CamelModel):
    """Stored job document -- single source of truth for processing state."""

    job_id: str
    created_at: datetime
    payload: RecordingPayload
    download_token: str = ""
    status: JobStatus = JobStatus.PENDING
    processing_started_at: datetime | None = None
    completed_at: datetime | None = None
    category: MeetingCategory | None = None
    reason: str | None = None
    output_page_id: str | None = None
    output_page_url: str | None = None
    error: str | None = None


class JobUpdate(BaseModel):
    """Partial job update; only explicitly set fields are applied."""

    status: JobStatus | None = None
    category: MeetingCategory | None = None
    reason: str | None = None
    output_page_id: str | None = None
    output_page_url: str | None = None
    error: str | None = None


# ── API Responses ────────────────────────────────────────────────────────────


class JobStatusResponse(CamelModel):
    """Public view of a job (no payload, no download token)."""

    job_id: str
    status: JobStatus
    created_at: datetime
    processing_started_at: datetime | None = None
    completed_at: datetime | None = None
    category: MeetingCategory | None = None
    reason: str | None = None
    output_page_id: str | None = None
    output_page_url: str | None = None
    error: str | None = None

    @classmethod
    def from_record(cls, record: JobRecord) -> JobStatusResponse:
        return cls.model_validate(
            record.model_dump(exclude={"payload", "download_token"})
        )


class JobList(CamelModel):
    """Response body of GET /api/v1/jobs."""

    jobs: list[JobStatusResponse] = Field(default_factory=list)
    total: int = 0


class TranscriptIngestResponse(CamelModel):
    """Response body of POST /api/v1/jobs/{id}/transcript."""

    job_id: str
    entry_count: int
    speaker_count: int


class ProcessResponse(CamelModel):
    """Response body of POST /api/v1/jobs/{id}/process."""

    job_id: str
    accepted: bool
    message: str


class MinutesResponse(CamelModel):
    """Response body of GET /api/v1/jobs/{id}/minutes."""

    job_id: str
    minutes: MinutesDocument
    markdown: str


class HighlightsResponse(CamelModel):
    """Response body of POST /api/v1/jobs/{id}/highlights."""

    job_id: str
    decisions: list[str] = Field(default_factory=list)
    action_items: list[ActionItem] = Field(default_factory=list)
