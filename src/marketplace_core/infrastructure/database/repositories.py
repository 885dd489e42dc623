"""Repository classes for database access.

Repositories encapsulate all SQL queries and provide a clean interface
to the service layer. They accept an AsyncSession and never manage
their own transactions (that's the caller's responsibility).

The one exception is IsolatedAuditLogWriter: rejection audit records must
survive the rollback of the request that was rejected, so it commits in a
session of its own.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any

from sqlalchemy import select, update
from sqlalchemy.exc import OperationalError, SQLAlchemyError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from marketplace_core.domain.enums import ResourceType
from marketplace_core.domain.exceptions import (
    ResourceStateUnavailableError,
    UnknownResourceTypeError,
)
from marketplace_core.domain.guard import AuditRecord
from marketplace_core.domain.worker_scoring import WorkerStats
from marketplace_core.infrastructure.database.orm_models import (
    RESOURCE_MODELS,
    Base,
    TransitionAuditEntry,
    WorkerStatsRecord,
)
from marketplace_core.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

logger = get_logger(__name__)

_AUDIT_COLUMNS = TransitionAuditEntry.__table__.c


def _model_for(resource_type: str) -> type[Base]:
    try:
        return RESOURCE_MODELS[ResourceType(resource_type)]
    except (ValueError, KeyError):
        raise UnknownResourceTypeError(resource_type) from None


class ResourceStatusRepository:
    """Status access for every guarded resource table.

    Implements the guard's ResourceStateReader protocol.
    """

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_status(self, resource_type: str, resource_id: str) -> str | None:
        """Return the persisted status, or None if no such row exists."""
        model = _model_for(resource_type)
        try:
            result = await self._session.execute(
                select(model.status).where(model.id == resource_id)
            )
        except SQLAlchemyError as exc:
            logger.error(
                "database.status_read_failed",
                resource_type=resource_type,
                resource_id=resource_id,
                error=str(exc),
            )
            raise ResourceStateUnavailableError(resource_type) from exc
        return result.scalar_one_or_none()

    async def get_record(self, resource_type: str, resource_id: str) -> Any | None:
        """Fetch the full ORM row of a resource."""
        model = _model_for(resource_type)
        result = await self._session.execute(
            select(model)
            .where(model.id == resource_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one_or_none()

    async def create(self, record: Base) -> Base:
        """Insert a new resource row."""
        self._session.add(record)
        await self._session.flush()
        return record

    async def compare_and_set_status(
        self,
        resource_type: str,
        resource_id: str,
        expected_status: str,
        new_status: str,
        **values: Any,
    ) -> bool:
        """Write ``new_status`` only if the row still has ``expected_status``.

        Extra column values (e.g. ``sla_deadline``) are written in the same
        statement. Returns False when the row changed in the meantime.
        """
        model = _model_for(resource_type)
        result = await self._session.execute(
            update(model)
            .where(model.id == resource_id, model.status == expected_status)
            .values(status=new_status, updated_at=datetime.now(UTC), **values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


class AuditLogRepository:
    """Data access for the append-only transition audit log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append(self, record: AuditRecord) -> TransitionAuditEntry:
        """Append a new audit entry. This is the ONLY write operation allowed.

        Rejected targets come from callers unchecked, so free-text fields are
        cut to their column width instead of failing the insert.
        """
        entry = TransitionAuditEntry(
            resource_type=record.resource_type,
            record_id=record.record_id,
            event_type=record.event_type,
            actor=_clip(record.actor, _AUDIT_COLUMNS.actor),
            actor_id=_clip(record.actor_id, _AUDIT_COLUMNS.actor_id),
            status_before=_clip(record.status_before, _AUDIT_COLUMNS.status_before),
            status_after=_clip(record.status_after, _AUDIT_COLUMNS.status_after),
            metadata_json=dict(record.metadata) or None,
            created_at=record.created_at,
        )
        self._session.add(entry)
        await self._session.flush()
        return entry

    async def list_for_record(self, resource_type: str, record_id: str) -> list[AuditRecord]:
        """Fetch all entries for one resource in chronological order."""
        result = await self._session.execute(
            select(TransitionAuditEntry)
            .where(
                TransitionAuditEntry.resource_type == resource_type,
                TransitionAuditEntry.record_id == record_id,
            )
            .order_by(TransitionAuditEntry.created_at.asc(), TransitionAuditEntry.id.asc())
        )
        return [_to_audit_record(entry) for entry in result.scalars().all()]


class IsolatedAuditLogWriter:
    """AuditLogWriter that commits each record in its own session.

    Transient operational errors (lock timeouts, dropped connections) are
    retried briefly; anything else propagates to the guard.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    @retry(
        retry=retry_if_exception_type(OperationalError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=1),
        reraise=True,
    )
    async def append(self, record: AuditRecord) -> None:
        async with self._session_factory() as session:
            await AuditLogRepository(session).append(record)
            await session.commit()


class WorkerStatsRepository:
    """Read access to the aggregated worker statistics."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get(self, worker_id: str) -> WorkerStats | None:
        result = await self._session.execute(
            select(WorkerStatsRecord).where(WorkerStatsRecord.worker_id == worker_id)
        )
        row = result.scalar_one_or_none()
        return _to_worker_stats(row) if row is not None else None

    async def list_for_workers(self, worker_ids: Sequence[str]) -> list[WorkerStats]:
        """Fetch stats for the given workers, in the order the ids were given.

        Unknown ids are skipped.
        """
        if not worker_ids:
            return []
        result = await self._session.execute(
            select(WorkerStatsRecord).where(WorkerStatsRecord.worker_id.in_(worker_ids))
        )
        by_id = {row.worker_id: row for row in result.scalars().all()}
        return [_to_worker_stats(by_id[wid]) for wid in dict.fromkeys(worker_ids) if wid in by_id]

    async def list_all(self) -> list[WorkerStats]:
        result = await self._session.execute(
            select(WorkerStatsRecord).order_by(WorkerStatsRecord.worker_id.asc())
        )
        return [_to_worker_stats(row) for row in result.scalars().all()]

    async def upsert(self, stats: WorkerStats) -> WorkerStatsRecord:
        """Insert or overwrite a worker's stats row (used by loaders and fixtures)."""
        result = await self._session.execute(
            select(WorkerStatsRecord).where(WorkerStatsRecord.worker_id == stats.worker_id)
        )
        row = result.scalar_one_or_none()
        if row is None:
            row = WorkerStatsRecord(worker_id=stats.worker_id)
            self._session.add(row)
        row.total_completed = stats.total_completed
        row.avg_rating = stats.avg_rating
        row.response_time_minutes = stats.response_time_minutes
        row.completion_rate = stats.completion_rate
        row.cancellation_rate = stats.cancellation_rate
        row.on_time_rate = stats.on_time_rate
        await self._session.flush()
        return row


def _clip(value: str | None, column: Any) -> str | None:
    if value is None:
        return None
    return value[: column.type.length]


def _to_audit_record(entry: TransitionAuditEntry) -> AuditRecord:
    return AuditRecord(
        resource_type=entry.resource_type,
        record_id=entry.record_id,
        event_type=entry.event_type,
        status_before=entry.status_before,
        status_after=entry.status_after,
        actor=entry.actor,
        actor_id=entry.actor_id,
        metadata=dict(entry.metadata_json or {}),
        created_at=entry.created_at,
    )


def _to_worker_stats(row: WorkerStatsRecord) -> WorkerStats:
    return WorkerStats(
        worker_id=row.worker_id,
        total_completed=row.total_completed,
        avg_rating=row.avg_rating,
        response_time_minutes=row.response_time_minutes,
        completion_rate=row.completion_rate,
        cancellation_rate=row.cancellation_rate,
        on_time_rate=row.on_time_rate,
    )
