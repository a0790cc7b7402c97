"""MinutesPipeline -- drives one job from transcript to published minutes.

Stages, in order:
1. Mark the job PROCESSING
2. Classify the stored transcript (an existing category is reused)
3. Route to SKIPPED when the category is not processed
4. Generate minutes, or reuse the stored minutes document
5. Publish, unless the job already has an output page
6. Mark the job COMPLETED

Every stage is safe to repeat, so a FAILED job can simply be processed
again. ``process_job`` is the boundary that turns stage errors into FAILED
job state; it raises only when the job itself does not exist.
"""

from __future__ import annotations

import structlog

from src.app.classification.classifier import MeetingClassifier
from src.app.core.errors import NotFoundError, ValidationError
from src.app.jobs.repository import JobRepository
from src.app.jobs.schemas import JobRecord, JobStatus, JobStatusResponse, JobUpdate
from src.app.jobs.state import FINAL_STATUSES
from src.app.minutes.extraction import extract_action_items, extract_decisions
from src.app.minutes.generator import MinutesGenerator
from src.app.minutes.schemas import (
    ActionItem,
    MeetingMeta,
    MinutesDocument,
    SummarizationOptions,
)
from src.app.minutes.templates import render_minutes_markdown
from src.app.services.llm import TextGenerator
from src.app.services.notion import MinutesPublisher
from src.app.transcripts.schemas import ParseOptions, StructuredTranscript, TranscriptMetadata
from src.app.transcripts.segmenter import format_entries_as_text, parse_captions

logger = structlog.get_logger(__name__)

INGEST_OPTIONS = ParseOptions(extract_speakers=True, combine_lines=True, remove_filler=True)


def meeting_meta_from_record(record: JobRecord) -> MeetingMeta:
    """Minutes header facts taken from the job's recording payload."""
    meeting = record.payload.object
    return MeetingMeta(
        title=meeting.topic or "無題会議",
        date=meeting.start_time or "",
        duration_minutes=meeting.duration,
        category=(record.category.value if record.category else "internalMeeting"),
    )


class MinutesPipeline:
    """Runs classification, generation and publishing for stored jobs.

    Args:
        repository: Job and artifact store.
        llm: Text-generation service shared by classification and generation.
        publisher: Optional destination for finished minutes.
        options: Chunking and topic-analysis settings.
    """

    def __init__(
        self,
        repository: JobRepository,
        llm: TextGenerator,
        publisher: MinutesPublisher | None = None,
        options: SummarizationOptions | None = None,
    ) -> None:
        self._repository = repository
        self._llm = llm
        self._classifier = MeetingClassifier(llm, repository)
        self._generator = MinutesGenerator(llm)
        self._publisher = publisher
        self._options = options or SummarizationOptions()

    # ── Ingest ───────────────────────────────────────────────────────────

    async def ingest_transcript(self, job_id: str, caption_text: str) -> StructuredTranscript:
        """Parse caption text and store it as the job's transcript.

        Replacing the transcript of a PENDING or FAILED job discards
        everything derived from the previous one: stored minutes, the
        classification and any output page recorded for it.

        Raises:
            NotFoundError: If the job does not exist.
            ValidationError: If the job is already COMPLETED or SKIPPED.
        """
        record = await self._repository.get_raw_job(job_id)
        if record is None:
            raise NotFoundError(f"Job {job_id} not found")
        if record.status in FINAL_STATUSES:
            raise ValidationError(
                f"Job {job_id} is already {record.status.value}; transcript cannot be replaced"
            )

        meeting = record.payload.object
        metadata = TranscriptMetadata(
            meeting_id=meeting.uuid,
            topic=meeting.topic or None,
            date=meeting.start_time,
            duration_seconds=meeting.duration * 60,
        )
        transcript = parse_captions(caption_text, metadata, INGEST_OPTIONS)
        replaced = await self._repository.get_transcript(job_id) is not None
        await self._repository.save_transcript(job_id, transcript)

        if replaced:
            await self._repository.delete_minutes(job_id)
            await self._repository.update_job(
                job_id,
                JobUpdate(category=None, reason=None, output_page_id=None, output_page_url=None),
            )
            logger.info("pipeline.derived_state_cleared", job_id=job_id)

        logger.info(
            "pipeline.transcript_ingested",
            job_id=job_id,
            entries=len(transcript.entries),
            speakers=transcript.metadata.speaker_count,
            replaced=replaced,
        )
        return transcript

    async def extract_highlights(self, job_id: str) -> tuple[list[str], list[ActionItem]]:
        """Decisions and action items extracted straight from the transcript.

        Runs independently of minutes generation and does not touch job state.

        Raises:
            NotFoundError: If the job has no transcript.
            UpstreamError: If a generation call fails.
            ParseError: If the action-item response is not a JSON array.
        """
        transcript = await self._repository.get_transcript(job_id)
        if transcript is None:
            raise NotFoundError(f"Transcript for job {job_id} not found")

        text = format_entries_as_text(transcript.entries)
        decisions = await extract_decisions(self._llm, text)
        action_items = await extract_action_items(self._llm, text)
        logger.info(
            "pipeline.highlights_extracted",
            job_id=job_id,
            decisions=len(decisions),
            action_items=len(action_items),
        )
        return decisions, action_items

    # ── Processing ───────────────────────────────────────────────────────

    async def start_processing(self, job_id: str) -> tuple[bool, str]:
        """Check whether a job can be processed now.

        Returns:
            (accepted, message). Missing jobs and jobs already COMPLETED or
            SKIPPED are refused.
        """
        record = await self._repository.get_raw_job(job_id)
        if record is None:
            return False, f"Job {job_id} not found"
        if record.status in FINAL_STATUSES:
            return False, f"Job {job_id} is already {record.status.value}"
        return True, f"Job {job_id} accepted for processing"

    async def process_job(self, job_id: str) -> JobStatusResponse:
        """Run the whole pipeline for one job.

        Stage failures are recorded on the job as FAILED and not raised.

        Raises:
            NotFoundError: If the job does not exist.
        """
        record = await self._repository.get_raw_job(job_id)
        if record is None:
            raise NotFoundError(f"Job {job_id} not found")

        if record.status in FINAL_STATUSES:
            logger.info("pipeline.already_final", job_id=job_id, status=record.status.value)
            return JobStatusResponse.from_record(record)

        log = logger.bind(job_id=job_id)
        log.info("pipeline.started", status=record.status.value)

        try:
            record = await self._repository.update_job(
                job_id, JobUpdate(status=JobStatus.PROCESSING, error=None)
            )

            transcript = await self._repository.get_transcript(job_id)
            if transcript is None:
                raise NotFoundError(f"Transcript for job {job_id} not found")

            classification, should_process = await self._classifier.classify_job(job_id)
            if not should_process:
                record = await self._repository.update_job(
                    job_id,
                    JobUpdate(
                        status=JobStatus.SKIPPED,
                        category=classification.category,
                        reason=classification.reason,
                    ),
                )
                log.info("pipeline.skipped", category=classification.category.value)
                return JobStatusResponse.from_record(record)

            record = await self._repository.get_raw_job(job_id) or record
            minutes = await self._ensure_minutes(record, transcript)

            if self._publisher is not None and not record.output_page_id:
                markdown = render_minutes_markdown(minutes)
                page = await self._publisher.publish(minutes, markdown)
                record = await self._repository.update_job(
                    job_id,
                    JobUpdate(output_page_id=page.page_id, output_page_url=page.url),
                )
                log.info("pipeline.published", page_id=page.page_id)

            record = await self._repository.update_job(
                job_id, JobUpdate(status=JobStatus.COMPLETED)
            )
            log.info("pipeline.completed")
        except Exception as exc:
            log.error("pipeline.failed", error=str(exc), error_type=type(exc).__name__)
            record = await self._repository.update_job(
                job_id, JobUpdate(status=JobStatus.FAILED, error=str(exc))
            )

        return JobStatusResponse.from_record(record)

    async def _ensure_minutes(
        self,
        record: JobRecord,
        transcript: StructuredTranscript,
    ) -> MinutesDocument:
        """Stored minutes for the job, generating and storing them if absent."""
        existing = await self._repository.get_minutes(record.job_id)
        if existing is not None:
            logger.info("pipeline.minutes_reused", job_id=record.job_id)
            return existing

        minutes = await self._generator.generate(
            format_entries_as_text(transcript.entries),
            meeting_meta_from_record(record),
            self._options,
        )
        await self._repository.save_minutes(record.job_id, minutes)
        return minutes
