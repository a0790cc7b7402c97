"""FastAPI dependency injection for the job store and the processing pipeline.

Endpoints receive these through ``Depends`` so tests can swap in in-memory
stores and scripted text generators via ``app.dependency_overrides``.
"""

from __future__ import annotations

from fastapi import Depends

from src.app.config import get_settings
from src.app.core.redis import get_kv_store
from src.app.jobs.pipeline import MinutesPipeline
from src.app.jobs.repository import JobRepository
from src.app.minutes.schemas import SummarizationOptions
from src.app.services.llm import get_llm_service
from src.app.services.notion import get_minutes_publisher


async def get_job_repository() -> JobRepository:
    """Job repository over the shared Redis store."""
    return JobRepository(get_kv_store())


async def get_pipeline(
    repository: JobRepository = Depends(get_job_repository),
) -> MinutesPipeline:
    """Minutes pipeline wired from settings."""
    settings = get_settings()
    return MinutesPipeline(
        repository,
        get_llm_service(),
        publisher=get_minutes_publisher(),
        options=SummarizationOptions(
            chunk_size=settings.CHUNK_SIZE,
            chunk_overlap=settings.CHUNK_OVERLAP,
            language=settings.SUMMARY_LANGUAGE,
        ),
    )
