"""Shared test fixtures for the marketplace lifecycle core test suite.

Provides:
    - In-memory fakes for the guard's state reader and audit writer
    - File-backed SQLite (aiosqlite) engine and sessions per test
    - Factory functions for creating worker statistics
    - Async test support via pytest-asyncio
"""

from __future__ import annotations

from dataclasses import replace

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from marketplace_core.config import Settings
from marketplace_core.domain.guard import AuditRecord
from marketplace_core.domain.worker_scoring import WorkerStats
from marketplace_core.infrastructure.database.orm_models import Base
from marketplace_core.infrastructure.database.repositories import IsolatedAuditLogWriter

# ---------------------------------------------------------------------------
# Guard Fakes
# ---------------------------------------------------------------------------


class InMemoryStateReader:
    """ResourceStateReader backed by a dict keyed by (resource_type, resource_id)."""

    def __init__(self) -> None:
        self.statuses: dict[tuple[str, str], str] = {}
        self.reads = 0

    def set(self, resource_type: str, resource_id: str, status: str) -> None:
        self.statuses[(resource_type, resource_id)] = status

    async def get_status(self, resource_type: str, resource_id: str) -> str | None:
        self.reads += 1
        return self.statuses.get((resource_type, resource_id))


class RecordingAuditWriter:
    """AuditLogWriter that keeps every appended record in a list."""

    def __init__(self) -> None:
        self.records: list[AuditRecord] = []

    async def append(self, record: AuditRecord) -> None:
        self.records.append(record)


class FailingAuditWriter:
    """AuditLogWriter whose store is down."""

    def __init__(self) -> None:
        self.attempts = 0

    async def append(self, record: AuditRecord) -> None:
        self.attempts += 1
        raise ConnectionError("audit store unavailable")


@pytest.fixture
def state_reader() -> InMemoryStateReader:
    return InMemoryStateReader()


@pytest.fixture
def audit_log() -> RecordingAuditWriter:
    return RecordingAuditWriter()


@pytest.fixture
def failing_audit_log() -> FailingAuditWriter:
    return FailingAuditWriter()


# ---------------------------------------------------------------------------
# Database Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'marketplace_test.db'}"


@pytest.fixture
def test_settings(database_url: str) -> Settings:
    """Settings pointing at the per-test SQLite database."""
    return Settings(
        app_env="development",
        app_log_level="DEBUG",
        database_url=database_url,
        guard_audit_accepted=False,
        matching_top_n=5,
    )


@pytest_asyncio.fixture
async def db_engine(database_url: str):
    engine = create_async_engine(database_url)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(db_engine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )


@pytest_asyncio.fixture
async def db_session(session_factory):
    async with session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def isolated_audit_writer(session_factory) -> IsolatedAuditLogWriter:
    return IsolatedAuditLogWriter(session_factory)


# ---------------------------------------------------------------------------
# Worker Statistics Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def top_worker_stats() -> WorkerStats:
    """An experienced, highly rated, fast worker."""
    return WorkerStats(
        worker_id="worker-top",
        total_completed=10,
        avg_rating=4.8,
        response_time_minutes=10,
        completion_rate=0.95,
        cancellation_rate=0.02,
        on_time_rate=0.92,
    )


@pytest.fixture
def make_stats(top_worker_stats: WorkerStats):
    """Factory: copy of the top worker with selected fields overridden."""

    def _make(**overrides) -> WorkerStats:
        return replace(top_worker_stats, **overrides)

    return _make
