"""MinutesGenerator -- transcript text to MinutesDocument.

Pipeline:
1. Split the transcript text into overlapping chunks
2. Concurrently: generate the global summary, and analyze every chunk into
   a topic then aggregate the topics into a timeline
3. Parse the global summary markdown
4. Assemble the minutes document

The global summary and topic stages are both fatal: any UpstreamError or
ParseError propagates to the caller, which owns job state. The first failure
cancels the other stage, so no further generation calls are made.
"""

from __future__ import annotations

import asyncio
import time

import structlog

from src.app.minutes.assembler import assemble_minutes
from src.app.minutes.chunking import split_text_into_chunks
from src.app.minutes.schemas import (
    MeetingMeta,
    MeetingTimeline,
    MinutesDocument,
    SummarizationOptions,
    TextChunk,
)
from src.app.minutes.summary import GlobalSummaryGenerator, parse_global_summary
from src.app.minutes.timeline import TimelineAggregator
from src.app.minutes.topics import TopicExtractor
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)


class MinutesGenerator:
    """Generates structured meeting minutes from transcript text.

    Args:
        llm: Text-generation service shared by every stage.
    """

    def __init__(self, llm: TextGenerator) -> None:
        self._summary_generator = GlobalSummaryGenerator(llm)
        self._topic_extractor = TopicExtractor(llm)
        self._timeline_aggregator = TimelineAggregator(llm)

    async def _build_timeline(
        self,
        chunks: list[TextChunk],
        options: SummarizationOptions,
    ) -> MeetingTimeline:
        topics = await self._topic_extractor.analyze_all(chunks, options)
        return await self._timeline_aggregator.build_timeline(topics)

    async def generate(
        self,
        full_text: str,
        meeting_meta: MeetingMeta,
        options: SummarizationOptions | None = None,
    ) -> MinutesDocument:
        """Generate minutes for a whole transcript.

        Args:
            full_text: Transcript text, one utterance per line.
            meeting_meta: Title, date, duration and category of the meeting.
            options: Chunking and topic-analysis settings.

        Returns:
            Assembled MinutesDocument.

        Raises:
            UpstreamError: If any generation call fails.
            ParseError: If a topic response holds no valid JSON.
        """
        opts = options or SummarizationOptions()
        started = time.monotonic()

        chunks = split_text_into_chunks(full_text, opts.chunk_size, opts.chunk_overlap)
        logger.info(
            "minutes.generation_started",
            title=meeting_meta.title,
            chars=len(full_text),
            chunks=len(chunks),
        )

        try:
            async with asyncio.TaskGroup() as tg:
                summary_task = tg.create_task(
                    self._summary_generator.generate(
                        full_text,
                        date=meeting_meta.date or None,
                        topic=meeting_meta.title,
                    )
                )
                timeline_task = tg.create_task(self._build_timeline(chunks, opts))
        except ExceptionGroup as group:
            logger.warning("minutes.generation_failed", title=meeting_meta.title)
            raise group.exceptions[0] from None

        summary_markdown = summary_task.result()
        timeline = timeline_task.result()

        global_summary = parse_global_summary(summary_markdown)
        minutes = assemble_minutes(global_summary, timeline, meeting_meta)

        logger.info(
            "minutes.generation_completed",
            title=meeting_meta.title,
            topics=len(timeline.topics),
            participants=minutes.participant_count,
            duration_ms=int((time.monotonic() - started) * 1000),
        )
        return minutes
