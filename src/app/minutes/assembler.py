"""MinutesAssembler -- combine summary, timeline and meeting facts."""

from __future__ import annotations

from datetime import datetime, timezone

from src.app.minutes.schemas import (
    UNKNOWN_VALUES,
    GlobalSummary,
    MeetingMeta,
    MeetingTimeline,
    MinutesDocument,
)


def collect_participants(
    global_summary: GlobalSummary,
    timeline: MeetingTimeline,
) -> list[str]:
    """Ordered union of topic speakers then summary participants.

    Unknown markers and empty names are excluded.
    """
    participants: list[str] = []
    names = [s for topic in timeline.topics for s in topic.speakers]
    names.extend(global_summary.participants)
    for name in names:
        cleaned = name.strip()
        if cleaned.lower() in UNKNOWN_VALUES or cleaned in participants:
            continue
        participants.append(cleaned)
    return participants


def assemble_minutes(
    global_summary: GlobalSummary,
    timeline: MeetingTimeline,
    meeting_meta: MeetingMeta,
    now: datetime | None = None,
) -> MinutesDocument:
    """Build the final MinutesDocument. Pure apart from the default clock."""
    participants = collect_participants(global_summary, timeline)
    return MinutesDocument(
        title=meeting_meta.title,
        date=meeting_meta.date,
        category=meeting_meta.category,
        duration_minutes=meeting_meta.duration_minutes,
        participant_count=len(participants),
        participants=participants,
        global_summary=global_summary,
        timeline=timeline,
        generated_at=now or datetime.now(timezone.utc),
    )
