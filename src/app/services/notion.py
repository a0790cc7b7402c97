"""Notion publisher -- writes finished minutes as a page in a Notion database.

Key implementation details:
- All API calls wrapped with tenacity retry + exponential backoff (rate limiting)
- Page properties mirror the minutes header (title, date, category, duration,
  participants, summary); the body is the rendered minutes markdown
- Markdown is converted to headings, bullets and paragraphs; Notion accepts
  at most 100 children per append and 2000 characters per text object
"""

from __future__ import annotations

import re
from typing import Any, Protocol

import structlog
from notion_client import AsyncClient
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.app.config import get_settings
from src.app.core.errors import UpstreamError
from src.app.minutes.schemas import MinutesDocument

logger = structlog.get_logger(__name__)

MAX_TEXT_LENGTH = 2000
MAX_BLOCKS_PER_REQUEST = 100

CATEGORY_EMOJI = {
    "internalMeeting": "📊",
    "smallTalk": "☕",
    "private": "🔒",
    "other": "❓",
}
DEFAULT_EMOJI = "📝"

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}")


class PublishedPage(BaseModel):
    """Identity of a published minutes page."""

    page_id: str
    url: str


class MinutesPublisher(Protocol):
    """Destination for finished minutes."""

    async def publish(self, minutes: MinutesDocument, markdown: str) -> PublishedPage: ...


# ── Markdown -> Blocks ───────────────────────────────────────────────────────


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [
        {"type": "text", "text": {"content": content[i : i + MAX_TEXT_LENGTH]}}
        for i in range(0, max(len(content), 1), MAX_TEXT_LENGTH)
    ]


def _block(block_type: str, content: str) -> dict[str, Any]:
    return {
        "object": "block",
        "type": block_type,
        block_type: {"rich_text": _rich_text(content)},
    }


def markdown_to_blocks(markdown: str) -> list[dict[str, Any]]:
    """Convert minutes markdown to Notion block objects.

    Handles ``#``/``##``/``###`` headings, ``- ``/``* `` bullets, ``---``
    dividers and paragraphs (consecutive plain lines are merged).
    """
    blocks: list[dict[str, Any]] = []
    paragraph: list[str] = []

    def _flush_paragraph() -> None:
        if paragraph:
            blocks.append(_block("paragraph", "\n".join(paragraph)))
            paragraph.clear()

    for raw_line in markdown.splitlines():
        line = raw_line.rstrip()
        stripped = line.strip()

        if not stripped:
            _flush_paragraph()
            continue

        if stripped == "---":
            _flush_paragraph()
            blocks.append({"object": "block", "type": "divider", "divider": {}})
        elif stripped.startswith("### "):
            _flush_paragraph()
            blocks.append(_block("heading_3", stripped[4:]))
        elif stripped.startswith("## "):
            _flush_paragraph()
            blocks.append(_block("heading_2", stripped[3:]))
        elif stripped.startswith("# "):
            _flush_paragraph()
            blocks.append(_block("heading_1", stripped[2:]))
        elif stripped.startswith(("- ", "* ")):
            _flush_paragraph()
            blocks.append(_block("bulleted_list_item", stripped[2:]))
        else:
            paragraph.append(stripped)

    _flush_paragraph()
    return blocks


def build_page_properties(minutes: MinutesDocument) -> dict[str, Any]:
    """Map the minutes header onto database properties."""
    emoji = CATEGORY_EMOJI.get(minutes.category, "")
    properties: dict[str, Any] = {
        "Title": {"title": [{"text": {"content": f"{emoji} {minutes.title}".strip()}}]},
        "Category": {"select": {"name": minutes.category}},
        "Duration": {"number": minutes.duration_minutes},
        "Participant Count": {"number": minutes.participant_count},
        "Participants": {"rich_text": _rich_text(", ".join(minutes.participants))[:1]},
        "Summary": {"rich_text": _rich_text(minutes.global_summary.summary)[:1]},
    }
    if _ISO_DATE.match(minutes.date):
        properties["Date"] = {"date": {"start": minutes.date}}
    return properties


# ── Publisher ────────────────────────────────────────────────────────────────


class NotionMinutesPublisher:
    """Creates one Notion database page per minutes document.

    Args:
        token: Notion integration token (internal integration secret).
        database_id: Notion database receiving the minutes pages.
    """

    def __init__(self, token: str, database_id: str, client: AsyncClient | None = None) -> None:
        self._client = client or AsyncClient(auth=token)
        self._database_id = database_id

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    async def _create_page(self, minutes: MinutesDocument) -> dict[str, Any]:
        return await self._client.pages.create(
            parent={"database_id": self._database_id},
            properties=build_page_properties(minutes),
            icon={"type": "emoji", "emoji": CATEGORY_EMOJI.get(minutes.category, DEFAULT_EMOJI)},
        )

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    async def _append_blocks(self, page_id: str, blocks: list[dict[str, Any]]) -> None:
        await self._client.blocks.children.append(block_id=page_id, children=blocks)

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(Exception),
        reraise=True,
    )
    async def _archive_page(self, page_id: str) -> None:
        await self._client.pages.update(page_id=page_id, archived=True)

    async def _discard_page(self, page_id: str) -> None:
        try:
            await self._archive_page(page_id)
        except Exception as exc:
            logger.warning("notion.archive_failed", page_id=page_id, error=str(exc))
            return
        logger.info("notion.page_archived", page_id=page_id)

    async def publish(self, minutes: MinutesDocument, markdown: str) -> PublishedPage:
        """Create the page and append the rendered minutes as its body.

        When the body cannot be appended the half-written page is archived,
        so a later retry does not leave an orphan next to the new page.

        Raises:
            UpstreamError: If Notion still rejects a call after retries.
        """
        try:
            page = await self._create_page(minutes)
        except Exception as exc:
            logger.error("notion.publish_failed", title=minutes.title, error=str(exc))
            raise UpstreamError(f"Notion page creation failed: {exc}") from exc
        page_id = page["id"]

        blocks = markdown_to_blocks(markdown)
        try:
            for i in range(0, len(blocks), MAX_BLOCKS_PER_REQUEST):
                await self._append_blocks(page_id, blocks[i : i + MAX_BLOCKS_PER_REQUEST])
        except Exception as exc:
            logger.error(
                "notion.append_failed", title=minutes.title, page_id=page_id, error=str(exc)
            )
            await self._discard_page(page_id)
            raise UpstreamError(f"Notion page body append failed: {exc}") from exc

        url = page.get("url") or f"https://www.notion.so/{page_id.replace('-', '')}"
        logger.info(
            "notion.minutes_published",
            page_id=page_id,
            database_id=self._database_id,
            blocks=len(blocks),
        )
        return PublishedPage(page_id=page_id, url=url)


def get_minutes_publisher() -> NotionMinutesPublisher | None:
    """Publisher from settings, or None when Notion output is not configured."""
    settings = get_settings()
    if not settings.NOTION_TOKEN or not settings.NOTION_DATABASE_ID:
        return None
    return NotionMinutesPublisher(settings.NOTION_TOKEN, settings.NOTION_DATABASE_ID)
