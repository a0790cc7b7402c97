"""Prometheus metrics for text-generation calls and job transitions.

Provides:
- track_llm_call(): Context manager for LLM call metrics
- record_job_transition(): Counter bump for every persisted status change
- get_metrics_response(): Starlette response for /metrics
"""

from __future__ import annotations

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from prometheus_client import REGISTRY, Counter, Histogram, generate_latest
from starlette.responses import Response

# ── LLM Metrics ──────────────────────────────────────────────────────────────

llm_requests_total = Counter(
    "minutes_llm_requests_total",
    "Total text-generation requests",
    ["model", "purpose", "status"],
)

llm_request_duration_seconds = Histogram(
    "minutes_llm_request_duration_seconds",
    "Text-generation request duration in seconds",
    ["model", "purpose"],
    buckets=(0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0),
)

llm_tokens_used_total = Counter(
    "minutes_llm_tokens_used_total",
    "Total LLM tokens consumed",
    ["model", "token_type"],
)

# ── Job Metrics ──────────────────────────────────────────────────────────────

job_transitions_total = Counter(
    "minutes_job_transitions_total",
    "Job status transitions persisted",
    ["status"],
)


@asynccontextmanager
async def track_llm_call(
    model: str,
    purpose: str = "generate",
) -> AsyncGenerator[dict[str, Any], None]:
    """Context manager that tracks LLM call metrics.

    Usage:
        async with track_llm_call("gemini/gemini-1.5-pro", "topic") as tracker:
            response = await router.acompletion(...)
            tracker["prompt_tokens"] = response.usage.prompt_tokens
            tracker["completion_tokens"] = response.usage.completion_tokens
    """
    tracker: dict[str, Any] = {
        "prompt_tokens": 0,
        "completion_tokens": 0,
    }
    start_time = time.perf_counter()
    status = "success"

    try:
        yield tracker
    except Exception:
        status = "error"
        raise
    finally:
        duration = time.perf_counter() - start_time

        llm_requests_total.labels(model=model, purpose=purpose, status=status).inc()
        llm_request_duration_seconds.labels(model=model, purpose=purpose).observe(duration)

        if tracker.get("prompt_tokens"):
            llm_tokens_used_total.labels(model=model, token_type="prompt").inc(
                tracker["prompt_tokens"]
            )
        if tracker.get("completion_tokens"):
            llm_tokens_used_total.labels(model=model, token_type="completion").inc(
                tracker["completion_tokens"]
            )


def record_job_transition(status: str) -> None:
    """Count a persisted job status change."""
    job_transitions_total.labels(status=status).inc()


def get_metrics_response() -> Response:
    """Generate Prometheus exposition format response."""
    return Response(
        content=generate_latest(REGISTRY),
        media_type="text/plain; version=0.0.4; charset=utf-8",
    )
