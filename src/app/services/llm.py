"""Text-generation service via LiteLLM Router.

Provides the two operations the minutes pipeline consumes:
- generate(): free-text completion for a single prompt
- generate_structured(): completion whose first JSON object/array is
  extracted (tolerating markdown fencing) and optionally validated against
  a pydantic model

Provider order follows configured keys: Gemini first, then Claude, then
GPT-4o. Generation calls are not retried; a failed call surfaces as
UpstreamError and malformed JSON as ParseError.
"""

from __future__ import annotations

import json
import re
from typing import Any, Protocol, TypeVar

import structlog
from litellm import Router
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from src.app.config import get_settings
from src.app.core.errors import ParseError, UpstreamError
from src.app.core.monitoring import track_llm_call

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=BaseModel)

MODEL_GROUP = "minutes"
DEFAULT_MAX_OUTPUT_TOKENS = 8192

_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)


# ── JSON Extraction ──────────────────────────────────────────────────────────


def extract_json(text: str) -> Any:
    """Return the first well-formed JSON object or array found in text.

    Fenced ``json`` blocks are tried first, then every ``{`` / ``[`` position
    in the raw text is tried with a streaming decoder so nested structures
    and trailing prose are handled.

    Raises:
        ParseError: If no JSON value can be decoded.
    """
    decoder = json.JSONDecoder()

    for match in _FENCED_JSON.finditer(text):
        candidate = match.group(1).strip()
        try:
            return json.loads(candidate)
        except json.JSONDecodeError:
            continue

    for idx, char in enumerate(text):
        if char not in "{[":
            continue
        try:
            value, _ = decoder.raw_decode(text, idx)
        except json.JSONDecodeError:
            continue
        return value

    raise ParseError("No JSON object found in model response", raw_text=text)


# ── Interface ────────────────────────────────────────────────────────────────


class TextGenerator(Protocol):
    """Request/response contract of the external text-generation capability."""

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.2,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        purpose: str = "generate",
    ) -> str: ...

    async def generate_structured(
        self,
        prompt: str,
        temperature: float = 0.1,
        response_model: type[BaseModel] | None = None,
        purpose: str = "structured",
    ) -> Any: ...


# ── LLM Service ──────────────────────────────────────────────────────────────


class LLMService:
    """LiteLLM Router backed implementation of TextGenerator."""

    def __init__(self, router: Router | None = None) -> None:
        if router is not None:
            self.router = router
            return

        settings = get_settings()
        model_list = []

        if settings.GEMINI_API_KEY:
            model_list.append({
                "model_name": MODEL_GROUP,
                "litellm_params": {
                    "model": f"gemini/{settings.GEMINI_MODEL_NAME}",
                    "api_key": settings.GEMINI_API_KEY,
                },
            })

        if settings.ANTHROPIC_API_KEY:
            model_list.append({
                "model_name": MODEL_GROUP,
                "litellm_params": {
                    "model": "anthropic/claude-sonnet-4-20250514",
                    "api_key": settings.ANTHROPIC_API_KEY,
                },
            })

        if settings.OPENAI_API_KEY:
            model_list.append({
                "model_name": MODEL_GROUP,
                "litellm_params": {
                    "model": "openai/gpt-4o",
                    "api_key": settings.OPENAI_API_KEY,
                },
            })

        if not model_list:
            logger.warning("llm.no_api_keys_configured")
            self.router = None
            return

        self.router = Router(
            model_list=model_list,
            num_retries=0,
            timeout=settings.LLM_TIMEOUT,
        )

    async def generate(
        self,
        prompt: str,
        temperature: float = 0.2,
        max_output_tokens: int = DEFAULT_MAX_OUTPUT_TOKENS,
        purpose: str = "generate",
    ) -> str:
        """Send a single-prompt completion and return the response text.

        Raises:
            UpstreamError: If no provider is configured, the call fails, or
                the response carries no text.
        """
        if not self.router:
            raise UpstreamError("No LLM API keys configured")

        async with track_llm_call(MODEL_GROUP, purpose) as tracker:
            try:
                response = await self.router.acompletion(
                    model=MODEL_GROUP,
                    messages=[{"role": "user", "content": prompt}],
                    max_tokens=max_output_tokens,
                    temperature=temperature,
                )
            except Exception as exc:
                logger.error("llm.call_failed", purpose=purpose, error=str(exc))
                raise UpstreamError(f"Text generation failed: {exc}") from exc

            usage = getattr(response, "usage", None)
            if usage:
                tracker["prompt_tokens"] = usage.prompt_tokens
                tracker["completion_tokens"] = usage.completion_tokens

        if not response.choices or not response.choices[0].message.content:
            raise UpstreamError("No response content from text generation")

        content = response.choices[0].message.content
        logger.debug(
            "llm.call_completed",
            purpose=purpose,
            model=getattr(response, "model", MODEL_GROUP),
            response_chars=len(content),
        )
        return content

    async def generate_structured(
        self,
        prompt: str,
        temperature: float = 0.1,
        response_model: type[T] | None = None,
        purpose: str = "structured",
    ) -> Any:
        """Generate text and extract the first JSON value from it.

        Args:
            prompt: Prompt asking for a JSON answer.
            temperature: Sampling temperature; kept low for JSON output.
            response_model: Optional pydantic model the JSON must satisfy.
            purpose: Metrics label.

        Returns:
            The decoded JSON value, or a validated response_model instance.

        Raises:
            UpstreamError: If the underlying call fails.
            ParseError: If no JSON is present or validation fails.
        """
        text = await self.generate(prompt, temperature=temperature, purpose=purpose)
        try:
            data = extract_json(text)
        except ParseError:
            logger.error("llm.json_parse_failed", purpose=purpose, raw_preview=text[:200])
            raise

        if response_model is None:
            return data

        try:
            return response_model.model_validate(data)
        except PydanticValidationError as exc:
            raise ParseError(
                f"Model response does not match {response_model.__name__}: {exc}",
                raw_text=text,
            ) from exc


# ── Singleton ─────────────────────────────────────────────────────────────────

_llm_service: LLMService | None = None


def get_llm_service() -> LLMService:
    """Get or create the LLM service singleton."""
    global _llm_service
    if _llm_service is None:
        _llm_service = LLMService()
    return _llm_service
