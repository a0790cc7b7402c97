"""Unit tests for meeting classification."""

from __future__ import annotations

import pytest

from src.app.classification.classifier import FALLBACK_REASON, REUSED_REASON, MeetingClassifier
from src.app.classification.prompts import prepare_text_sample
from src.app.classification.schemas import (
    MeetingCategory,
    parse_meeting_category,
    should_process_meeting,
)
from src.app.core.errors import NotFoundError, UpstreamError
from src.app.jobs.schemas import JobStatus, JobUpdate
from src.app.transcripts.schemas import TranscriptMetadata
from src.app.transcripts.segmenter import parse_captions
from tests.fakes import SAMPLE_VTT, FakeTextGenerator, classification_json, make_create_request


class TestCategoryHelpers:
    """Tests for should_process_meeting and parse_meeting_category."""

    def test_only_internal_meetings_are_processed(self):
        assert should_process_meeting(MeetingCategory.INTERNAL_MEETING) is True
        assert should_process_meeting(MeetingCategory.SMALL_TALK) is False
        assert should_process_meeting(MeetingCategory.PRIVATE) is False
        assert should_process_meeting(MeetingCategory.OTHER) is False

    @pytest.mark.parametrize(
        ("label", "expected"),
        [
            ("internalMeeting", MeetingCategory.INTERNAL_MEETING),
            ("Business review", MeetingCategory.INTERNAL_MEETING),
            ("smallTalk", MeetingCategory.SMALL_TALK),
            ("casual chat", MeetingCategory.SMALL_TALK),
            ("PRIVATE", MeetingCategory.PRIVATE),
            ("personal", MeetingCategory.PRIVATE),
            ("other", MeetingCategory.OTHER),
            ("", MeetingCategory.OTHER),
        ],
    )
    def test_parse_meeting_category(self, label, expected):
        assert parse_meeting_category(label) == expected


class TestPrepareTextSample:
    """Tests for prepare_text_sample."""

    def test_short_text_unchanged(self):
        assert prepare_text_sample("short", 100, "all") == "short"

    def test_start_middle_end(self):
        text = "".join(str(i % 10) for i in range(100))

        assert prepare_text_sample(text, 10, "start") == text[:10]
        assert prepare_text_sample(text, 10, "end") == text[-10:]
        assert prepare_text_sample(text, 10, "middle") == text[45:55]

    def test_all_samples_each_window(self):
        text = "x" * 20_000

        sample = prepare_text_sample(text, 8000, "all")

        assert sample.count("\n...\n") == 3
        assert len(sample) == 3 * (500 + len("\n...\n"))


class TestClassifyText:
    """Tests for MeetingClassifier.classify_text."""

    @pytest.mark.asyncio
    async def test_category_and_reason(self, repository):
        llm = FakeTextGenerator({"classification": classification_json("smallTalk", "週末の話題")})

        result = await MeetingClassifier(llm, repository).classify_text("text")

        assert result.category == MeetingCategory.SMALL_TALK
        assert result.reason == "週末の話題"
        assert llm.calls[0]["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_missing_reason_gets_default(self, repository):
        llm = FakeTextGenerator({"classification": '{"category": "private"}'})

        result = await MeetingClassifier(llm, repository).classify_text("text")

        assert result.category == MeetingCategory.PRIVATE
        assert result.reason == "分類結果: private"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "response",
        [UpstreamError("down"), TimeoutError("read timed out"), "no json at all", "[1, 2]"],
    )
    async def test_failures_fall_back_to_other(self, repository, response):
        llm = FakeTextGenerator({"classification": response})

        result = await MeetingClassifier(llm, repository).classify_text("text")

        assert result.category == MeetingCategory.OTHER
        assert result.reason == FALLBACK_REASON

    @pytest.mark.asyncio
    async def test_only_sample_is_sent(self, repository):
        llm = FakeTextGenerator({"classification": classification_json()})

        await MeetingClassifier(llm, repository, sample_length=10).classify_text("0123456789ABCDEF")

        prompt = llm.calls[0]["prompt"]
        assert "0123456789" in prompt
        assert "0123456789A" not in prompt


class TestClassifyJob:
    """Tests for MeetingClassifier.classify_job."""

    async def _job_with_transcript(self, repository) -> str:
        job_id = await repository.create_job(make_create_request())
        transcript = parse_captions(SAMPLE_VTT, TranscriptMetadata(meeting_id="meeting-uuid-1"))
        await repository.save_transcript(job_id, transcript)
        return job_id

    @pytest.mark.asyncio
    async def test_internal_meeting_moves_to_processing(self, repository):
        job_id = await self._job_with_transcript(repository)
        llm = FakeTextGenerator({"classification": classification_json("internalMeeting")})

        result, should_process = await MeetingClassifier(llm, repository).classify_job(job_id)

        assert should_process is True
        assert result.raw_text is not None
        record = await repository.get_raw_job(job_id)
        assert record.status == JobStatus.PROCESSING
        assert record.category == MeetingCategory.INTERNAL_MEETING
        assert record.reason == "業務の進捗共有"

    @pytest.mark.asyncio
    async def test_small_talk_moves_to_skipped(self, repository):
        job_id = await self._job_with_transcript(repository)
        llm = FakeTextGenerator({"classification": classification_json("smallTalk")})

        _, should_process = await MeetingClassifier(llm, repository).classify_job(job_id)

        assert should_process is False
        record = await repository.get_raw_job(job_id)
        assert record.status == JobStatus.SKIPPED
        assert record.completed_at is not None

    @pytest.mark.asyncio
    async def test_existing_category_reused(self, repository):
        job_id = await self._job_with_transcript(repository)
        await repository.update_job(job_id, JobUpdate(category=MeetingCategory.INTERNAL_MEETING))
        llm = FakeTextGenerator()

        result, should_process = await MeetingClassifier(llm, repository).classify_job(job_id)

        assert should_process is True
        assert result.reason == REUSED_REASON
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_missing_job(self, repository):
        with pytest.raises(NotFoundError):
            await MeetingClassifier(FakeTextGenerator(), repository).classify_job("nope")

    @pytest.mark.asyncio
    async def test_missing_transcript(self, repository):
        job_id = await repository.create_job(make_create_request())

        with pytest.raises(NotFoundError):
            await MeetingClassifier(FakeTextGenerator(), repository).classify_job(job_id)
