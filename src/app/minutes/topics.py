"""TopicExtractor -- one structured analysis call per transcript chunk.

Chunks are analyzed in fixed-width batches: every chunk in a batch is sent
concurrently and the next batch starts only after the whole batch has
resolved. A failure in any chunk aborts ``analyze_all``: the rest of its
batch is cancelled and results already obtained are discarded.
"""

from __future__ import annotations

import asyncio

import structlog

from src.app.minutes.prompts import build_topic_analysis_prompt
from src.app.minutes.schemas import MeetingTopic, SummarizationOptions, TextChunk
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)

MAX_CONCURRENT_ANALYSES = 3
TOPIC_TEMPERATURE = 0.2


class TopicExtractor:
    """Analyzes transcript chunks into MeetingTopic records.

    Args:
        llm: Text-generation service used for the per-chunk calls.
    """

    def __init__(self, llm: TextGenerator) -> None:
        self._llm = llm

    async def analyze(
        self,
        chunk: TextChunk,
        options: SummarizationOptions | None = None,
    ) -> MeetingTopic:
        """Analyze a single chunk.

        The returned topic's id is always the chunk id, whatever the model
        response claims.

        Raises:
            UpstreamError: If the generation call fails.
            ParseError: If the response holds no valid topic JSON.
        """
        prompt = build_topic_analysis_prompt(chunk, options)
        topic = await self._llm.generate_structured(
            prompt,
            temperature=TOPIC_TEMPERATURE,
            response_model=MeetingTopic,
            purpose="topic",
        )
        return topic.model_copy(update={"id": chunk.id})

    async def analyze_all(
        self,
        chunks: list[TextChunk],
        options: SummarizationOptions | None = None,
    ) -> list[MeetingTopic]:
        """Analyze every chunk in batches of MAX_CONCURRENT_ANALYSES.

        Returns:
            One topic per chunk, in input order.
        """
        topics: list[MeetingTopic] = []
        total = len(chunks)

        logger.info("topics.analysis_started", chunks=total)

        for i in range(0, total, MAX_CONCURRENT_ANALYSES):
            batch = chunks[i : i + MAX_CONCURRENT_ANALYSES]
            try:
                async with asyncio.TaskGroup() as tg:
                    tasks = [tg.create_task(self.analyze(chunk, options)) for chunk in batch]
            except ExceptionGroup as group:
                logger.warning("topics.batch_failed", first_chunk=batch[0].id, total=total)
                raise group.exceptions[0] from None
            topics.extend(task.result() for task in tasks)

            logger.info(
                "topics.batch_completed",
                completed=min(i + MAX_CONCURRENT_ANALYSES, total),
                total=total,
            )

        return topics
