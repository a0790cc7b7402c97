"""Pydantic v2 schemas for meeting classification."""

from __future__ import annotations

from datetime import datetime
from enum import Enum

from src.app.schemas.base import CamelModel


class MeetingCategory(str, Enum):
    """Closed set of meeting categories."""

    INTERNAL_MEETING = "internalMeeting"
    SMALL_TALK = "smallTalk"
    PRIVATE = "private"
    OTHER = "other"


class ClassificationResult(CamelModel):
    """Outcome of classifying one transcript."""

    category: MeetingCategory
    reason: str
    raw_text: str | None = None
    timestamp: datetime


# Only business meetings continue to minutes generation.
_PROCESSABLE = {
    MeetingCategory.INTERNAL_MEETING: True,
    MeetingCategory.SMALL_TALK: False,
    MeetingCategory.PRIVATE: False,
    MeetingCategory.OTHER: False,
}


def should_process_meeting(category: MeetingCategory) -> bool:
    """Whether minutes should be generated for a meeting of this category."""
    return _PROCESSABLE[category]


def parse_meeting_category(value: str) -> MeetingCategory:
    """Map a free-text category label to a MeetingCategory.

    Matching is case-insensitive substring search, checked in order:
    internal/business, small/chat, private/personal; anything else is OTHER.
    """
    normalized = (value or "").lower()
    if "internal" in normalized or "business" in normalized:
        return MeetingCategory.INTERNAL_MEETING
    if "small" in normalized or "chat" in normalized:
        return MeetingCategory.SMALL_TALK
    if "private" in normalized or "personal" in normalized:
        return MeetingCategory.PRIVATE
    return MeetingCategory.OTHER
