"""Global summary -- whole-transcript summary generation and parsing.

``GlobalSummaryGenerator`` asks the model for a markdown summary with fixed
section headings (see ``build_global_summary_prompt``).
``parse_global_summary`` turns that markdown back into a GlobalSummary.

Parsing is best-effort: model output drifts, so any section whose heading is
missing yields its default instead of an error. Headings are matched by the
literal Japanese marker or its English equivalent:

    目的 / Purpose, 参加者 / Participants, 決まったこと / Decisions,
    サマリ / Summary, ネクストアクション / Action Items

A section body runs from its heading to the next ``#`` or ``##`` heading.
"""

from __future__ import annotations

import re

import structlog

from src.app.minutes.prompts import build_global_summary_prompt
from src.app.minutes.schemas import MAX_INPUT_TOKENS, ActionItem, GlobalSummary, Priority
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)

SUMMARY_TEMPERATURE = 0.2
SUMMARY_MAX_OUTPUT_TOKENS = 4096
MAX_SUMMARY_INPUT_CHARS = MAX_INPUT_TOKENS // 2
TRUNCATION_MARKER = "\n...(以下省略)..."

# ── Markers ──────────────────────────────────────────────────────────────────

PURPOSE_MARKERS = ("目的", "Purpose")
PARTICIPANT_MARKERS = ("参加者", "Participants")
DECISION_MARKERS = ("決まったこと", "決定事項", "Decisions")
SUMMARY_MARKERS = ("サマリ", "Summary")
ACTION_MARKERS = ("ネクストアクション", "アクションアイテム", "Action Items")

_HEADING = re.compile(r"^#{1,2}(?!#)\s*(.*?)\s*$", re.MULTILINE)
_BULLET_PREFIXES = ("- ", "* ")
_JAPANESE = re.compile(r"[぀-ヿ一-鿿]")
_ASSIGNEE = re.compile(r"\[(.*?)\]")
_DUE_DATE = re.compile(r"(?:期限|Due)\s*[:：]\s*([^,，、)）|]+)", re.IGNORECASE)

_OVERVIEW_LABELS = {
    "purpose": ("ミーティングの目的", "会議の目的", "目的", "Purpose"),
    "participants": ("参加者", "Participants"),
    "date": ("日時", "Date"),
    "location": ("場所", "Location"),
}

_PLACEHOLDERS = frozenset({"不明", "unknown", "なし", "特になし", "none", "n/a", "未定", "tbd"})
NO_DECISION_PHRASES = ("決定事項はありません", "no decisions", "no clear decisions")

_PRIORITY_LABEL = re.compile(r"(?:優先度|priority)\s*[:：]\s*([^,，、)）|\s]+)", re.IGNORECASE)
_HIGH_PRIORITY = re.compile(r"高|重要|\b(?:urgent|high)\b", re.IGNORECASE)
_LOW_PRIORITY = re.compile(r"低|\b(?:minor|low)\b", re.IGNORECASE)


# ── Section Helpers ──────────────────────────────────────────────────────────


def _split_sections(markdown: str) -> list[tuple[str, str]]:
    """Return (heading, body) pairs for every # / ## heading."""
    matches = list(_HEADING.finditer(markdown))
    sections: list[tuple[str, str]] = []
    for idx, match in enumerate(matches):
        body_end = matches[idx + 1].start() if idx + 1 < len(matches) else len(markdown)
        sections.append((match.group(1), markdown[match.end() : body_end]))
    return sections


def _find_section(sections: list[tuple[str, str]], markers: tuple[str, ...]) -> str | None:
    for heading, body in sections:
        lowered = heading.lower()
        if any(marker.lower() in lowered for marker in markers):
            return body
    return None


def bullet_lines(body: str) -> list[str]:
    """Lines starting with ``- `` or ``* ``, marker stripped."""
    items = []
    for line in body.splitlines():
        stripped = line.strip()
        if stripped.startswith(_BULLET_PREFIXES):
            item = stripped[2:].strip()
            if item:
                items.append(item)
    return items


def _overview_value(markdown: str, labels: tuple[str, ...]) -> str | None:
    """Value of the first ``label: value`` line for any of labels."""
    for label in labels:
        pattern = re.compile(
            rf"^\s*(?:[-*]\s*)?(?:\*\*)?{re.escape(label)}(?:\*\*)?\s*[:：]\s*(.+?)\s*$",
            re.MULTILINE | re.IGNORECASE,
        )
        match = pattern.search(markdown)
        if match:
            return match.group(1).strip()
    return None


def _is_placeholder(value: str) -> bool:
    return value.strip().strip("[]「」").lower() in _PLACEHOLDERS


def _split_names(value: str) -> list[str]:
    names = [n.strip() for n in re.split(r"[,、，/]", value)]
    return [n for n in names if n and not _is_placeholder(n)]


# ── Action Items ─────────────────────────────────────────────────────────────


def classify_priority(text: str) -> Priority:
    """Map free-text priority hints to a Priority (default medium).

    When the text carries a ``優先度:`` / ``priority:`` label only its value is
    inspected. English keywords match whole words, so "follow" is not "low".
    """
    label = _PRIORITY_LABEL.search(text)
    hint = label.group(1) if label else text
    if _HIGH_PRIORITY.search(hint):
        return Priority.HIGH
    if _LOW_PRIORITY.search(hint):
        return Priority.LOW
    return Priority.MEDIUM


def parse_action_item(text: str) -> ActionItem:
    """Build an ActionItem from one bullet line of the action section."""
    assignee = None
    task = text
    assignee_match = _ASSIGNEE.search(text)
    if assignee_match:
        candidate = assignee_match.group(1).strip()
        if candidate and not _is_placeholder(candidate):
            assignee = candidate
        task = (text[: assignee_match.start()] + text[assignee_match.end() :]).strip()

    due_match = _DUE_DATE.search(text)
    due_date = due_match.group(1).strip() if due_match else None

    return ActionItem(
        task=task or text,
        assignee=assignee,
        due_date=due_date,
        priority=classify_priority(task),
    )


# ── Parser ───────────────────────────────────────────────────────────────────


def parse_global_summary(markdown: str) -> GlobalSummary:
    """Extract structured fields from global-summary markdown.

    Never raises; absent sections produce defaults ("unknown"/"不明" for
    scalar fields depending on the document language, empty lists).
    """
    japanese = bool(_JAPANESE.search(markdown))
    unknown = "不明" if japanese else "unknown"
    default_location = "オンライン" if japanese else "online"

    sections = _split_sections(markdown)

    # Purpose: overview line first, then a dedicated section.
    purpose = _overview_value(markdown, _OVERVIEW_LABELS["purpose"])
    if purpose is None:
        body = _find_section(sections, PURPOSE_MARKERS)
        if body is not None:
            lines = [ln.strip().lstrip("-* ").strip() for ln in body.splitlines()]
            purpose = next((ln for ln in lines if ln), None)
    if not purpose or _is_placeholder(purpose):
        purpose = unknown

    participants: list[str] = []
    participants_line = _overview_value(markdown, _OVERVIEW_LABELS["participants"])
    if participants_line is not None:
        participants = _split_names(participants_line)
    else:
        body = _find_section(sections, PARTICIPANT_MARKERS)
        if body is not None:
            for item in bullet_lines(body):
                participants.extend(_split_names(item))

    date = _overview_value(markdown, _OVERVIEW_LABELS["date"])
    if not date or _is_placeholder(date):
        date = unknown

    location = _overview_value(markdown, _OVERVIEW_LABELS["location"])
    if not location or _is_placeholder(location):
        location = default_location

    summary_body = _find_section(sections, SUMMARY_MARKERS)
    summary = summary_body.strip() if summary_body is not None else ""

    decisions_body = _find_section(sections, DECISION_MARKERS)
    decisions = [
        item
        for item in bullet_lines(decisions_body or "")
        if not any(phrase in item.lower() for phrase in NO_DECISION_PHRASES)
        and not _is_placeholder(item)
    ]

    actions_body = _find_section(sections, ACTION_MARKERS)
    action_items = [
        parse_action_item(item)
        for item in bullet_lines(actions_body or "")
        if not _is_placeholder(item)
    ]

    return GlobalSummary(
        purpose=purpose,
        participants=participants,
        date=date,
        location=location,
        summary=summary,
        decisions=decisions,
        action_items=action_items,
        raw_markdown=markdown,
    )


# ── Generator ────────────────────────────────────────────────────────────────


class GlobalSummaryGenerator:
    """Produces the whole-transcript summary markdown.

    Args:
        llm: Text-generation service.
    """

    def __init__(self, llm: TextGenerator) -> None:
        self._llm = llm

    async def generate(
        self,
        full_text: str,
        date: str | None = None,
        topic: str | None = None,
    ) -> str:
        """Generate summary markdown for the (possibly truncated) transcript.

        Raises:
            UpstreamError: If the generation call fails.
        """
        text = full_text
        if len(full_text) > MAX_SUMMARY_INPUT_CHARS:
            text = full_text[:MAX_SUMMARY_INPUT_CHARS] + TRUNCATION_MARKER
            logger.info(
                "summary.input_truncated",
                original_chars=len(full_text),
                kept_chars=MAX_SUMMARY_INPUT_CHARS,
            )

        logger.info("summary.generation_started", topic=topic)

        return await self._llm.generate(
            build_global_summary_prompt(text, date=date, topic=topic),
            temperature=SUMMARY_TEMPERATURE,
            max_output_tokens=SUMMARY_MAX_OUTPUT_TOKENS,
            purpose="global_summary",
        )
