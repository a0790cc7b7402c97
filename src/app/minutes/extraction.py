"""Standalone decision and action-item extraction from transcript text.

These are independent of the global summary and are used when only one of
the two lists is wanted for a transcript.
"""

from __future__ import annotations

import structlog
from pydantic import TypeAdapter
from pydantic import ValidationError as PydanticValidationError

from src.app.core.errors import ParseError
from src.app.minutes.prompts import (
    build_action_item_extraction_prompt,
    build_decision_extraction_prompt,
)
from src.app.minutes.schemas import ActionItem
from src.app.minutes.summary import NO_DECISION_PHRASES, bullet_lines, classify_priority
from src.app.services.llm import TextGenerator

logger = structlog.get_logger(__name__)

EXTRACTION_TEMPERATURE = 0.1

_action_items_adapter = TypeAdapter(list[ActionItem])


async def extract_decisions(llm: TextGenerator, text: str) -> list[str]:
    """Return decisions found in the transcript as plain strings."""
    response = await llm.generate(
        build_decision_extraction_prompt(text),
        temperature=EXTRACTION_TEMPERATURE,
        purpose="decisions",
    )
    decisions = [
        item
        for item in bullet_lines(response)
        if not any(phrase in item.lower() for phrase in NO_DECISION_PHRASES)
    ]
    logger.info("extraction.decisions_extracted", count=len(decisions))
    return decisions


async def extract_action_items(llm: TextGenerator, text: str) -> list[ActionItem]:
    """Return action items found in the transcript.

    Priorities the model leaves out, or spells in words such as 高/低, are
    normalized with the same keyword rules as the summary parser.

    Raises:
        UpstreamError: If the generation call fails.
        ParseError: If the response holds no valid JSON array.
    """
    raw = await llm.generate_structured(
        build_action_item_extraction_prompt(text),
        temperature=EXTRACTION_TEMPERATURE,
        purpose="action_items",
    )
    if not isinstance(raw, list):
        raise ParseError("Expected a JSON array of action items", raw_text=str(raw))

    normalized = []
    for item in raw:
        if isinstance(item, dict):
            item = dict(item)
            item["priority"] = classify_priority(str(item.get("priority") or ""))
        normalized.append(item)

    try:
        items = _action_items_adapter.validate_python(normalized)
    except PydanticValidationError as exc:
        raise ParseError(f"Invalid action item payload: {exc}", raw_text=str(raw)) from exc

    logger.info("extraction.action_items_extracted", count=len(items))
    return items
