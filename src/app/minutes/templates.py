"""Markdown rendering of a MinutesDocument.

The rendered document has a title, an optional table of contents and five
sections in fixed order: overview, summary, decisions, action items and
timeline. Every section but the last ends with a horizontal rule.
"""

from __future__ import annotations

from src.app.minutes.schemas import ActionItem, MinutesDocument, Priority

SECTION_TITLES = ("会議概要", "サマリ", "決定事項", "アクションアイテム", "タイムライン")

PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}
PRIORITY_EMOJI = {Priority.HIGH: "🔴", Priority.MEDIUM: "🟡", Priority.LOW: "🟢"}

NO_PARTICIPANTS = "- 参加者情報なし"
NO_DECISIONS = "特に決定事項はありませんでした。"
NO_ACTION_ITEMS = "特にアクションアイテムはありませんでした。"


def format_duration(duration_minutes: int) -> str:
    """90 -> "1時間30分"."""
    hours, minutes = divmod(max(duration_minutes, 0), 60)
    return f"{hours}時間{minutes}分"


def render_table_of_contents() -> str:
    lines = ["## 目次", ""]
    lines += [f"- [{title}](#{title})" for title in SECTION_TITLES]
    lines += ["", "---"]
    return "\n".join(lines)


def render_overview_section(minutes: MinutesDocument) -> str:
    participants = (
        "\n".join(f"- {p}" for p in minutes.participants)
        if minutes.participants
        else NO_PARTICIPANTS
    )
    return "\n".join([
        "## 会議概要",
        "",
        f"- **会議名**: {minutes.title}",
        f"- **日時**: {minutes.date}",
        f"- **所要時間**: {format_duration(minutes.duration_minutes)}",
        f"- **カテゴリ**: {minutes.category}",
        f"- **参加者** ({minutes.participant_count}名):",
        participants,
        "",
        "---",
    ])


def render_summary_section(minutes: MinutesDocument) -> str:
    return f"## サマリ\n\n{minutes.global_summary.summary}\n\n---"


def render_decisions_section(minutes: MinutesDocument) -> str:
    decisions = minutes.global_summary.decisions
    body = "\n".join(f"- {d}" for d in decisions) if decisions else NO_DECISIONS
    return f"## 決定事項\n\n{body}\n\n---"


def sort_action_items(items: list[ActionItem]) -> list[ActionItem]:
    """Stable sort high -> medium -> low; missing priority counts as medium."""
    return sorted(items, key=lambda item: PRIORITY_ORDER[item.priority or Priority.MEDIUM])


def format_action_item(item: ActionItem) -> str:
    priority = item.priority or Priority.MEDIUM
    meta = []
    if item.assignee:
        meta.append(f"**担当者**: {item.assignee}")
    if item.due_date:
        meta.append(f"**期限**: {item.due_date}")
    meta.append(f"**優先度**: {PRIORITY_EMOJI[priority]} {priority.value}")
    return f"- {item.task}\n  {' | '.join(meta)}"


def render_action_items_section(minutes: MinutesDocument) -> str:
    items = sort_action_items(minutes.global_summary.action_items)
    body = "\n".join(format_action_item(i) for i in items) if items else NO_ACTION_ITEMS
    return f"## アクションアイテム\n\n{body}\n\n---"


def render_timeline_section(minutes: MinutesDocument) -> str:
    return f"## タイムライン\n\n{minutes.timeline.raw_markdown}"


def render_minutes_markdown(
    minutes: MinutesDocument,
    add_table_of_contents: bool = True,
) -> str:
    """Render the full minutes document as markdown."""
    parts = [f"# {minutes.title}"]
    if add_table_of_contents:
        parts.append(render_table_of_contents())
    parts += [
        render_overview_section(minutes),
        render_summary_section(minutes),
        render_decisions_section(minutes),
        render_action_items_section(minutes),
        render_timeline_section(minutes),
    ]
    return "\n\n".join(parts) + "\n"
