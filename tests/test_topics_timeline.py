"""Unit tests for TopicExtractor and TimelineAggregator."""

from __future__ import annotations

import asyncio

import pytest

from src.app.core.errors import ParseError, UpstreamError
from src.app.minutes.schemas import MeetingTopic, SummarizationOptions, TextChunk
from src.app.minutes.timeline import TimelineAggregator, sort_topics
from src.app.minutes.topics import MAX_CONCURRENT_ANALYSES, TopicExtractor
from tests.fakes import TIMELINE_MARKDOWN, FakeTextGenerator, topic_json


def _chunks(n: int) -> list[TextChunk]:
    return [TextChunk(id=i, text=f"chunk {i}") for i in range(n)]


class ConcurrencyTracker:
    """TextGenerator double that records how many calls overlap.

    The chunk named by ``fail_on_chunk`` fails at once; every other call
    sleeps first, so ``finished`` shows which calls ran to completion.
    """

    def __init__(self, fail_on_chunk: int | None = None) -> None:
        self.active = 0
        self.max_active = 0
        self.started: list[int] = []
        self.finished: list[int] = []
        self.fail_on_chunk = fail_on_chunk

    async def generate(self, prompt, temperature=0.2, max_output_tokens=8192, purpose="generate"):
        raise AssertionError("not used")

    async def generate_structured(self, prompt, temperature=0.1, response_model=None, purpose="structured"):
        chunk_id = int(prompt.split("チャンク #")[1].split("）")[0])
        self.started.append(chunk_id)
        if chunk_id == self.fail_on_chunk:
            raise UpstreamError("boom")
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(0.01)
        finally:
            self.active -= 1
        self.finished.append(chunk_id)
        return MeetingTopic(id=999, title=f"topic {chunk_id}", start_time=f"00:0{chunk_id}:00")


class TestTopicExtractor:
    """Tests for per-chunk topic analysis."""

    @pytest.mark.asyncio
    async def test_topic_id_forced_to_chunk_id(self):
        llm = FakeTextGenerator({"topic": topic_json()})
        extractor = TopicExtractor(llm)

        topic = await extractor.analyze(TextChunk(id=7, text="hello"))

        assert topic.id == 7
        assert topic.title == "リリース計画"
        assert topic.start_time == "00:00:00"
        assert topic.key_points == ["日程", "体制"]

    @pytest.mark.asyncio
    async def test_key_points_truncated_to_five(self):
        llm = FakeTextGenerator({
            "topic": '{"topic": "t", "keyPoints": ["1", "2", "3", "4", "5", "6", "7"]}'
        })

        topic = await TopicExtractor(llm).analyze(TextChunk(id=0, text="x"))

        assert topic.key_points == ["1", "2", "3", "4", "5"]

    @pytest.mark.asyncio
    async def test_prompt_reflects_options(self):
        llm = FakeTextGenerator({"topic": topic_json()})
        options = SummarizationOptions(language="en", include_speakers=False)

        await TopicExtractor(llm).analyze(TextChunk(id=0, text="x"), options)

        prompt = llm.calls[0]["prompt"]
        assert "Please provide all output in English." in prompt
        assert '"speakers": []' in prompt

    @pytest.mark.asyncio
    async def test_invalid_json_raises_parse_error(self):
        llm = FakeTextGenerator({"topic": "I could not find a topic."})

        with pytest.raises(ParseError):
            await TopicExtractor(llm).analyze(TextChunk(id=0, text="x"))

    @pytest.mark.asyncio
    async def test_analyze_all_preserves_order_and_batches(self):
        tracker = ConcurrencyTracker()

        topics = await TopicExtractor(tracker).analyze_all(_chunks(7))

        assert [t.id for t in topics] == list(range(7))
        assert tracker.max_active == MAX_CONCURRENT_ANALYSES
        assert sorted(tracker.started[:3]) == [0, 1, 2]
        assert sorted(tracker.started[3:6]) == [3, 4, 5]

    @pytest.mark.asyncio
    async def test_analyze_all_fails_whole_run(self):
        tracker = ConcurrencyTracker(fail_on_chunk=4)

        with pytest.raises(UpstreamError):
            await TopicExtractor(tracker).analyze_all(_chunks(7))
        await asyncio.sleep(0.05)

        # The rest of the failing batch is cancelled and the next batch never starts.
        assert sorted(tracker.finished) == [0, 1, 2]
        assert tracker.active == 0
        assert 6 not in tracker.started

    @pytest.mark.asyncio
    async def test_analyze_all_empty(self):
        assert await TopicExtractor(ConcurrencyTracker()).analyze_all([]) == []


class TestTimeline:
    """Tests for topic ordering and timeline rendering."""

    def _topic(self, id: int, start: str) -> MeetingTopic:
        return MeetingTopic(id=id, title=f"t{id}", start_time=start)

    def test_sort_by_start_time_then_id(self):
        topics = [
            self._topic(2, "00:10:00"),
            self._topic(0, "00:05:00"),
            self._topic(1, "00:05:00"),
        ]

        assert [t.id for t in sort_topics(topics)] == [0, 1, 2]

    def test_untimed_topics_last_by_id(self):
        topics = [
            self._topic(3, ""),
            self._topic(1, "00:20:00"),
            self._topic(0, ""),
            self._topic(2, "00:01:00"),
        ]

        assert [t.id for t in sort_topics(topics)] == [2, 1, 0, 3]

    def test_sort_is_idempotent(self):
        topics = [self._topic(i, s) for i, s in enumerate(["00:03:00", "", "00:01:00", "00:03:00"])]

        once = sort_topics(topics)

        assert sort_topics(once) == once

    @pytest.mark.asyncio
    async def test_build_timeline_keeps_topics_and_markdown(self):
        llm = FakeTextGenerator({"timeline": TIMELINE_MARKDOWN})
        topics = [self._topic(1, "00:10:00"), self._topic(0, "00:00:00")]

        timeline = await TimelineAggregator(llm).build_timeline(topics)

        assert [t.id for t in timeline.topics] == [0, 1]
        assert timeline.raw_markdown == TIMELINE_MARKDOWN
        call = llm.calls[0]
        assert call["temperature"] == 0.2
        assert call["max_output_tokens"] == 4096
        # Sorted topics are sent to the model as JSON.
        assert call["prompt"].index('"t0"') < call["prompt"].index('"t1"')

    @pytest.mark.asyncio
    async def test_build_timeline_propagates_upstream_error(self):
        llm = FakeTextGenerator({"timeline": UpstreamError("down")})

        with pytest.raises(UpstreamError):
            await TimelineAggregator(llm).build_timeline([self._topic(0, "")])
