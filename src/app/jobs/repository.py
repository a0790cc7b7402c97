"""JobRepository -- job records and derived artifacts in the KV store.

Key layout (before the store's namespace prefix):

    job:<jobId>         JobRecord JSON
    transcript:<jobId>  StructuredTranscript JSON
    minutes:<jobId>     MinutesDocument JSON

``update_job`` is a plain read-modify-write. Two concurrent updates to the
same job can interleave and the later write wins; callers rely on status
and category checks to make re-runs safe instead.
"""

from __future__ import annotations

import asyncio
import uuid
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TypeVar

import structlog
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.app.core.errors import NotFoundError, ParseError
from src.app.core.monitoring import record_job_transition
from src.app.core.redis import KVStore
from src.app.jobs.schemas import (
    CreateJobRequest,
    JobList,
    JobRecord,
    JobStatus,
    JobStatusResponse,
    JobUpdate,
)
from src.app.jobs.state import apply_update
from src.app.minutes.schemas import MinutesDocument
from src.app.transcripts.schemas import StructuredTranscript

logger = structlog.get_logger(__name__)

M = TypeVar("M", bound=BaseModel)

JOB_PREFIX = "job:"
TRANSCRIPT_PREFIX = "transcript:"
MINUTES_PREFIX = "minutes:"
DEFAULT_LIST_LIMIT = 100


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class JobRepository:
    """Reads and writes jobs, transcripts and minutes.

    Args:
        store: Key-value store holding the JSON documents.
        clock: Source of "now" for created/started/completed timestamps.
    """

    def __init__(
        self,
        store: KVStore,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._clock = clock

    async def _load(self, key: str, model: type[M]) -> M | None:
        raw = await self._store.get(key)
        if raw is None:
            return None
        try:
            return model.model_validate_json(raw)
        except PydanticValidationError as exc:
            raise ParseError(f"Stored document {key} is not a valid {model.__name__}") from exc

    # ── Jobs ─────────────────────────────────────────────────────────────

    async def create_job(self, request: CreateJobRequest) -> str:
        """Store a new PENDING job and return its id."""
        job_id = str(uuid.uuid4())
        record = JobRecord(
            job_id=job_id,
            created_at=self._clock(),
            payload=request.payload,
            download_token=request.download_token,
            status=JobStatus.PENDING,
        )
        await self._store.put(f"{JOB_PREFIX}{job_id}", record.to_json())
        record_job_transition(JobStatus.PENDING.value)

        logger.info(
            "jobs.created",
            job_id=job_id,
            meeting_uuid=request.payload.object.uuid,
            topic=request.payload.object.topic,
        )
        return job_id

    async def get_raw_job(self, job_id: str) -> JobRecord | None:
        """Full stored record, or None when absent."""
        return await self._load(f"{JOB_PREFIX}{job_id}", JobRecord)

    async def get_job(self, job_id: str) -> JobStatusResponse | None:
        """Public projection of the job, or None when absent."""
        record = await self.get_raw_job(job_id)
        if record is None:
            return None
        return JobStatusResponse.from_record(record)

    async def update_job(self, job_id: str, update: JobUpdate) -> JobRecord:
        """Apply a partial update to a stored job.

        Raises:
            NotFoundError: If the job does not exist.
        """
        record = await self.get_raw_job(job_id)
        if record is None:
            raise NotFoundError(f"Job {job_id} not found")

        updated = apply_update(record, update, self._clock())
        await self._store.put(f"{JOB_PREFIX}{job_id}", updated.to_json())

        if update.status is not None and update.status != record.status:
            record_job_transition(update.status.value)
            logger.info(
                "jobs.status_changed",
                job_id=job_id,
                from_status=record.status.value,
                to_status=update.status.value,
            )
        return updated

    async def list_jobs(self, limit: int = DEFAULT_LIST_LIMIT) -> JobList:
        """Up to limit jobs, newest first."""
        keys = await self._store.list_keys(JOB_PREFIX, limit=limit)
        records = await asyncio.gather(
            *(self.get_raw_job(key[len(JOB_PREFIX) :]) for key in keys)
        )
        jobs = sorted(
            (JobStatusResponse.from_record(r) for r in records if r is not None),
            key=lambda job: job.created_at,
            reverse=True,
        )
        return JobList(jobs=jobs, total=len(jobs))

    # ── Artifacts ────────────────────────────────────────────────────────

    async def save_transcript(self, job_id: str, transcript: StructuredTranscript) -> None:
        await self._store.put(f"{TRANSCRIPT_PREFIX}{job_id}", transcript.to_json())

    async def get_transcript(self, job_id: str) -> StructuredTranscript | None:
        return await self._load(f"{TRANSCRIPT_PREFIX}{job_id}", StructuredTranscript)

    async def save_minutes(self, job_id: str, minutes: MinutesDocument) -> None:
        await self._store.put(f"{MINUTES_PREFIX}{job_id}", minutes.to_json())

    async def get_minutes(self, job_id: str) -> MinutesDocument | None:
        return await self._load(f"{MINUTES_PREFIX}{job_id}", MinutesDocument)

    async def delete_minutes(self, job_id: str) -> None:
        await self._store.delete(f"{MINUTES_PREFIX}{job_id}")
