"""REST endpoints for minutes jobs.

Job lifecycle over HTTP:
1. POST /api/v1/jobs                    -- create from a recording payload
2. POST /api/v1/jobs/{id}/transcript    -- upload the caption file (text body)
3. POST /api/v1/jobs/{id}/process       -- run the pipeline in the background
4. GET  /api/v1/jobs/{id}               -- poll status
5. GET  /api/v1/jobs/{id}/minutes       -- fetch the result

POST /api/v1/jobs/{id}/highlights extracts decisions and action items from
the transcript alone, outside the job lifecycle.
"""

from __future__ import annotations

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse

import structlog

from src.app.api.deps import get_job_repository, get_pipeline
from src.app.jobs.pipeline import MinutesPipeline
from src.app.jobs.repository import DEFAULT_LIST_LIMIT, JobRepository
from src.app.jobs.schemas import (
    CreateJobRequest,
    HighlightsResponse,
    JobList,
    JobStatusResponse,
    MinutesResponse,
    ProcessResponse,
    TranscriptIngestResponse,
)
from src.app.minutes.templates import render_minutes_markdown
from src.app.transcripts.schemas import StructuredTranscript
from src.app.transcripts.segmenter import transcript_to_markdown

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/jobs", tags=["jobs"])


def _not_found(what: str, job_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"{what} for job {job_id} not found",
    )


@router.post("/", response_model=JobStatusResponse, status_code=status.HTTP_201_CREATED)
async def create_job(
    body: CreateJobRequest,
    repository: JobRepository = Depends(get_job_repository),
) -> JobStatusResponse:
    """Create a PENDING job from a recording-completed payload."""
    job_id = await repository.create_job(body)
    job = await repository.get_job(job_id)
    if job is None:
        raise _not_found("Job", job_id)
    return job


@router.get("/", response_model=JobList)
async def list_jobs(
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=1000),
    repository: JobRepository = Depends(get_job_repository),
) -> JobList:
    """List jobs, newest first."""
    return await repository.list_jobs(limit=limit)


@router.get("/{job_id}", response_model=JobStatusResponse)
async def get_job(
    job_id: str,
    repository: JobRepository = Depends(get_job_repository),
) -> JobStatusResponse:
    """Get job status by ID."""
    job = await repository.get_job(job_id)
    if job is None:
        raise _not_found("Job", job_id)
    return job


@router.post("/{job_id}/transcript", response_model=TranscriptIngestResponse)
async def upload_transcript(
    job_id: str,
    request: Request,
    pipeline: MinutesPipeline = Depends(get_pipeline),
) -> TranscriptIngestResponse:
    """Parse and store a caption file sent as the raw request body."""
    caption_text = (await request.body()).decode("utf-8", errors="replace")
    if not caption_text.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Caption body is empty",
        )

    transcript = await pipeline.ingest_transcript(job_id, caption_text)
    return TranscriptIngestResponse(
        job_id=job_id,
        entry_count=len(transcript.entries),
        speaker_count=transcript.metadata.speaker_count or 0,
    )


@router.get("/{job_id}/transcript", response_model=StructuredTranscript)
async def get_transcript(
    job_id: str,
    repository: JobRepository = Depends(get_job_repository),
) -> StructuredTranscript:
    """Get the parsed transcript of a job."""
    transcript = await repository.get_transcript(job_id)
    if transcript is None:
        raise _not_found("Transcript", job_id)
    return transcript


@router.get("/{job_id}/transcript/markdown", response_class=PlainTextResponse)
async def get_transcript_markdown(
    job_id: str,
    repository: JobRepository = Depends(get_job_repository),
) -> PlainTextResponse:
    """Get the parsed transcript rendered as markdown."""
    transcript = await repository.get_transcript(job_id)
    if transcript is None:
        raise _not_found("Transcript", job_id)
    return PlainTextResponse(
        transcript_to_markdown(transcript), media_type="text/markdown; charset=utf-8"
    )


@router.post("/{job_id}/highlights", response_model=HighlightsResponse)
async def extract_highlights(
    job_id: str,
    pipeline: MinutesPipeline = Depends(get_pipeline),
) -> HighlightsResponse:
    """Extract decisions and action items directly from the transcript.

    Independent of minutes generation; works for a job in any status.
    """
    decisions, action_items = await pipeline.extract_highlights(job_id)
    return HighlightsResponse(job_id=job_id, decisions=decisions, action_items=action_items)


@router.post(
    "/{job_id}/process",
    response_model=ProcessResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def process_job(
    job_id: str,
    background_tasks: BackgroundTasks,
    repository: JobRepository = Depends(get_job_repository),
    pipeline: MinutesPipeline = Depends(get_pipeline),
) -> ProcessResponse:
    """Queue the job for processing after the response is sent.

    Returns 202 when queued, 400 when the job is already finished, 404 when
    it does not exist.
    """
    if await repository.get_raw_job(job_id) is None:
        raise _not_found("Job", job_id)

    accepted, message = await pipeline.start_processing(job_id)
    if not accepted:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=message)

    background_tasks.add_task(pipeline.process_job, job_id)
    logger.info("jobs.processing_queued", job_id=job_id)
    return ProcessResponse(job_id=job_id, accepted=True, message=message)


@router.get("/{job_id}/minutes", response_model=MinutesResponse)
async def get_minutes(
    job_id: str,
    toc: bool = Query(default=True, description="Include a table of contents"),
    repository: JobRepository = Depends(get_job_repository),
) -> MinutesResponse:
    """Get the generated minutes as structured JSON plus rendered markdown."""
    minutes = await repository.get_minutes(job_id)
    if minutes is None:
        raise _not_found("Minutes", job_id)
    return MinutesResponse(
        job_id=job_id,
        minutes=minutes,
        markdown=render_minutes_markdown(minutes, add_table_of_contents=toc),
    )
