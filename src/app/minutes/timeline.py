"""TimelineAggregator -- merge per-chunk topics into one ordered timeline.

Topic start times are zero-padded ``HH:MM:SS``-prefixed strings, so plain
string comparison is chronological. Topics with no usable start time keep
chunk order after the timed ones.
"""

from __future__ import annotations

import structlog

from src.app.minutes.prompts import build_timeline_integration_prompt
from src.app.minutes.schemas import MeetingTimeline, MeetingTopic
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)

TIMELINE_TEMPERATURE = 0.2
TIMELINE_MAX_OUTPUT_TOKENS = 4096


def _sort_key(topic: MeetingTopic) -> tuple[int, str, int]:
    start = topic.start_time.strip()
    if start:
        return (0, start, topic.id)
    return (1, "", topic.id)


def sort_topics(topics: list[MeetingTopic]) -> list[MeetingTopic]:
    """Return topics ordered by start time, ties and untimed topics by id."""
    return sorted(topics, key=_sort_key)


class TimelineAggregator:
    """Builds a MeetingTimeline from analyzed topics.

    Args:
        llm: Text-generation service used to render the timeline markdown.
    """

    def __init__(self, llm: TextGenerator) -> None:
        self._llm = llm

    async def build_timeline(self, topics: list[MeetingTopic]) -> MeetingTimeline:
        """Sort topics and render them to markdown.

        The structured topic list is kept alongside the markdown so callers
        never need to parse the rendering.
        """
        sorted_topics = sort_topics(topics)

        logger.info("timeline.render_started", topics=len(sorted_topics))

        markdown = await self._llm.generate(
            build_timeline_integration_prompt(sorted_topics),
            temperature=TIMELINE_TEMPERATURE,
            max_output_tokens=TIMELINE_MAX_OUTPUT_TOKENS,
            purpose="timeline",
        )

        return MeetingTimeline(topics=sorted_topics, raw_markdown=markdown)
