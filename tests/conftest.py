"""Test fixtures.

Provides:
- In-memory KV store, stepping clock and scripted text generator
- JobRepository / MinutesPipeline wired to the doubles
- FastAPI app with dependency overrides and an httpx AsyncClient
"""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator

# litellm fetches its model cost map over the network at import time; offline,
# the failure path deadlocks under pytest's log capture. Use the bundled copy.
os.environ.setdefault("LITELLM_LOCAL_MODEL_COST_MAP", "True")

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from src.app.api.deps import get_job_repository, get_pipeline
from src.app.jobs.pipeline import MinutesPipeline
from src.app.jobs.repository import JobRepository
from src.app.main import create_app
from tests.fakes import FakeTextGenerator, InMemoryKVStore, SteppingClock, full_responses


# ── Fixtures ─────────────────────────────────────────────────────────────────


@pytest.fixture
def kv_store() -> InMemoryKVStore:
    return InMemoryKVStore()


@pytest.fixture
def clock() -> SteppingClock:
    return SteppingClock()


@pytest.fixture
def repository(kv_store: InMemoryKVStore, clock: SteppingClock) -> JobRepository:
    return JobRepository(kv_store, clock=clock)


@pytest.fixture
def fake_llm() -> FakeTextGenerator:
    return FakeTextGenerator(full_responses())


@pytest.fixture
def pipeline(repository: JobRepository, fake_llm: FakeTextGenerator) -> MinutesPipeline:
    return MinutesPipeline(repository, fake_llm)


@pytest.fixture
def app(repository: JobRepository, pipeline: MinutesPipeline):
    """FastAPI app whose dependencies use the in-memory doubles."""
    application = create_app()

    async def _repository() -> JobRepository:
        return repository

    async def _pipeline() -> MinutesPipeline:
        return pipeline

    application.dependency_overrides[get_job_repository] = _repository
    application.dependency_overrides[get_pipeline] = _pipeline
    return application


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for testing the API."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
