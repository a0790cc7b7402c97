"""MeetingClassifier -- decide whether a meeting is worth minutes.

Classification never fails a job: if the generation call or its JSON is
bad, the meeting is classified as OTHER with a reason saying so, which
routes the job to SKIPPED.
"""

from __future__ import annotations

from datetime import datetime, timezone

import structlog

from src.app.classification.prompts import (
    DEFAULT_SAMPLE_LENGTH,
    SampleMethod,
    build_classification_prompt,
    prepare_text_sample,
)
from src.app.classification.schemas import (
    ClassificationResult,
    MeetingCategory,
    parse_meeting_category,
    should_process_meeting,
)
from src.app.core.errors import NotFoundError
from src.app.jobs.repository import JobRepository
from src.app.jobs.schemas import JobStatus, JobUpdate
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)

CLASSIFICATION_TEMPERATURE = 0.1
FALLBACK_REASON = "分類処理中にエラーが発生したためその他カテゴリとしました"
REUSED_REASON = "既存の分類結果を使用"


class MeetingClassifier:
    """Classifies transcripts and records the outcome on the job.

    Args:
        llm: Text-generation service.
        repository: Job store used by ``classify_job``.
        sample_length: Maximum characters of transcript sent to the model.
        sample_method: Which part of a long transcript to send.
    """

    def __init__(
        self,
        llm: TextGenerator,
        repository: JobRepository,
        sample_length: int = DEFAULT_SAMPLE_LENGTH,
        sample_method: SampleMethod = "start",
    ) -> None:
        self._llm = llm
        self._repository = repository
        self._sample_length = sample_length
        self._sample_method = sample_method

    async def classify_text(self, text: str) -> ClassificationResult:
        """Classify transcript text. Never raises for generation failures."""
        sample = prepare_text_sample(text, self._sample_length, self._sample_method)
        now = datetime.now(timezone.utc)

        try:
            data = await self._llm.generate_structured(
                build_classification_prompt(sample),
                temperature=CLASSIFICATION_TEMPERATURE,
                purpose="classification",
            )
        except Exception as exc:
            logger.warning("classification.failed", error=str(exc))
            return ClassificationResult(
                category=MeetingCategory.OTHER,
                reason=FALLBACK_REASON,
                timestamp=now,
            )

        if not isinstance(data, dict):
            logger.warning("classification.unexpected_shape", type=type(data).__name__)
            return ClassificationResult(
                category=MeetingCategory.OTHER,
                reason=FALLBACK_REASON,
                timestamp=now,
            )

        category = parse_meeting_category(str(data.get("category", "")))
        reason = str(data.get("reason") or "").strip() or f"分類結果: {category.value}"

        logger.info("classification.completed", category=category.value, reason=reason)
        return ClassificationResult(category=category, reason=reason, timestamp=now)

    async def classify_job(self, job_id: str) -> tuple[ClassificationResult, bool]:
        """Classify a job's stored transcript and persist the result.

        A job that already carries a category is not re-classified.

        Returns:
            (result, should_process) where should_process is False when the
            job has been routed to SKIPPED.

        Raises:
            NotFoundError: If the job or its transcript does not exist.
        """
        record = await self._repository.get_raw_job(job_id)
        if record is None:
            raise NotFoundError(f"Job {job_id} not found")

        if record.category is not None:
            logger.info("classification.reused", job_id=job_id, category=record.category.value)
            result = ClassificationResult(
                category=record.category,
                reason=record.reason or REUSED_REASON,
                timestamp=record.processing_started_at or datetime.now(timezone.utc),
            )
            return result, should_process_meeting(result.category)

        transcript = await self._repository.get_transcript(job_id)
        if transcript is None:
            raise NotFoundError(f"Transcript for job {job_id} not found")

        result = await self.classify_text(transcript.raw_text)
        result = result.model_copy(update={"raw_text": transcript.raw_text})
        should_process = should_process_meeting(result.category)

        await self._repository.update_job(
            job_id,
            JobUpdate(
                category=result.category,
                reason=result.reason,
                status=JobStatus.PROCESSING if should_process else JobStatus.SKIPPED,
            ),
        )

        logger.info(
            "classification.job_classified",
            job_id=job_id,
            category=result.category.value,
            should_process=should_process,
        )
        return result, should_process
