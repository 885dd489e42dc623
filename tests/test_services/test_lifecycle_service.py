"""Tests for the LifecycleService and its repositories on SQLite (aiosqlite).

Each test gets its own database file. Data is committed before the service
runs, as it would be by an earlier request.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError, SQLAlchemyError

from marketplace_core.domain.enums import AuditEventType
from marketplace_core.domain.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
    ResourceStateUnavailableError,
    StaleTransitionError,
    TerminalStateViolationError,
    UnknownResourceTypeError,
)
from marketplace_core.domain.guard import AuditRecord
from marketplace_core.infrastructure.database.orm_models import (
    EscrowTransaction,
    Offer,
    Task,
    TransitionAuditEntry,
)
from marketplace_core.infrastructure.database.repositories import (
    AuditLogRepository,
    IsolatedAuditLogWriter,
    ResourceStatusRepository,
)
from marketplace_core.services.lifecycle_service import LifecycleService


@pytest.fixture
def service(db_session, isolated_audit_writer, test_settings) -> LifecycleService:
    return LifecycleService(db_session, audit_writer=isolated_audit_writer, settings=test_settings)


async def _seed(session, *records) -> None:
    session.add_all(records)
    await session.commit()


def _escrow(escrow_id: str = "esc-1", status: str = "pending") -> EscrowTransaction:
    return EscrowTransaction(
        id=escrow_id,
        customer_id="cust-1",
        partner_id="partner-1",
        amount_total_cents=12_000,
        status=status,
    )


def _task(task_id: str = "task-1", priority: str = "medium") -> Task:
    return Task(id=task_id, customer_id="cust-1", title="Fix leaking sink", priority=priority)


def _naive_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes.
    return value.astimezone(UTC).replace(tzinfo=None) if value.tzinfo else value


class TestEscrowScenario:
    @pytest.mark.asyncio
    async def test_pay_release_then_refund_is_terminal(self, service, db_session) -> None:
        await _seed(db_session, _escrow())

        await service.apply_transition("escrow", "esc-1", "paid", actor="cust-1")
        await db_session.commit()
        await service.apply_transition("escrow", "esc-1", "released", actor="admin")
        await db_session.commit()

        with pytest.raises(TerminalStateViolationError) as exc_info:
            await service.apply_transition("escrow", "esc-1", "refunded")
        await db_session.rollback()

        assert exc_info.value.code == 409
        assert "terminal state" in exc_info.value.error

        status = await service.get_status("escrow", "esc-1")
        assert status.status == "released"
        assert status.is_terminal is True
        assert status.allowed_targets == ()

        trail = await service.get_audit_trail("escrow", "esc-1")
        assert [(r.event_type, r.status_before, r.status_after) for r in trail] == [
            (AuditEventType.STATUS_CHANGED, "pending", "paid"),
            (AuditEventType.STATUS_CHANGED, "paid", "released"),
            (AuditEventType.TRANSITION_REJECTED, "released", "refunded"),
        ]
        assert trail[0].actor == "cust-1"
        assert trail[2].reason == "TERMINAL_STATE"


class TestCheckTransition:
    @pytest.mark.asyncio
    async def test_check_does_not_write(self, service, db_session) -> None:
        await _seed(db_session, _escrow())

        observed = await service.check_transition("escrow", "esc-1", "paid")

        assert observed == "pending"
        assert (await service.get_status("escrow", "esc-1")).status == "pending"
        assert await service.get_audit_trail("escrow", "esc-1") == []

    @pytest.mark.asyncio
    async def test_missing_resource(self, service) -> None:
        with pytest.raises(ResourceNotFoundError, match="not found"):
            await service.check_transition("inquiry", "nope", "closed")

    @pytest.mark.asyncio
    async def test_unknown_resource_type(self, service) -> None:
        with pytest.raises(UnknownResourceTypeError):
            await service.check_transition("invoice", "inv-1", "paid")

    @pytest.mark.asyncio
    async def test_offer_statuses_are_persisted_values(self, service, db_session) -> None:
        await _seed(db_session, Offer(id="off-1", partner_id="p-1"))

        result = await service.apply_transition("offer", "off-1", "sprejeta")

        assert result.previous_status == "poslana"
        assert result.status == "sprejeta"


class TestRejectionAudit:
    @pytest.mark.asyncio
    async def test_rejection_record_survives_request_rollback(
        self, service, db_session, session_factory
    ) -> None:
        await _seed(db_session, _escrow())

        with pytest.raises(InvalidTransitionError):
            await service.apply_transition("escrow", "esc-1", "released")
        await db_session.rollback()

        async with session_factory() as fresh:
            trail = await AuditLogRepository(fresh).list_for_record("escrow", "esc-1")

        assert len(trail) == 1
        assert trail[0].event_type == AuditEventType.TRANSITION_REJECTED
        assert trail[0].status_before == "pending"
        assert trail[0].status_after == "released"
        assert trail[0].actor == "system"
        assert trail[0].actor_id == "state-machine"
        assert trail[0].metadata == {"reason": "INVALID_TRANSITION"}

    @pytest.mark.asyncio
    async def test_audit_log_is_append_only(self, db_session) -> None:
        entry = TransitionAuditEntry(
            resource_type="escrow",
            record_id="esc-1",
            event_type="transition_rejected",
            status_before="pending",
            status_after="released",
        )
        await _seed(db_session, entry)

        entry.status_after = "paid"
        with pytest.raises(PermissionError):
            await db_session.flush()
        await db_session.rollback()

        await db_session.delete(entry)
        with pytest.raises(PermissionError):
            await db_session.flush()

    @pytest.mark.asyncio
    async def test_long_rejected_target_is_still_audited(
        self, service, db_session, session_factory
    ) -> None:
        await _seed(db_session, _escrow())
        target = "released-after-manual-check-by-the-support-team-" * 3

        with pytest.raises(InvalidTransitionError):
            await service.check_transition("escrow", "esc-1", target)

        async with session_factory() as fresh:
            trail = await AuditLogRepository(fresh).list_for_record("escrow", "esc-1")

        assert len(trail) == 1
        assert trail[0].status_after == target[:64]

    @pytest.mark.asyncio
    async def test_trail_keeps_insert_order_on_equal_timestamps(self, db_session) -> None:
        stamp = datetime(2026, 1, 5, 12, 0, tzinfo=UTC)
        repo = AuditLogRepository(db_session)
        for target in ("released", "refunded", "paid"):
            await repo.append(
                AuditRecord(
                    resource_type="escrow",
                    record_id="esc-7",
                    event_type="transition_rejected",
                    status_before="cancelled",
                    status_after=target,
                    created_at=stamp,
                )
            )
        await db_session.commit()

        trail = await repo.list_for_record("escrow", "esc-7")

        assert [r.status_after for r in trail] == ["released", "refunded", "paid"]

    @pytest.mark.asyncio
    async def test_isolated_writer_retries_locked_database(self, session_factory) -> None:
        calls = 0

        def flaky_factory():
            nonlocal calls
            calls += 1
            if calls == 1:
                raise OperationalError("INSERT", {}, Exception("database is locked"))
            return session_factory()

        writer = IsolatedAuditLogWriter(flaky_factory)
        await writer.append(
            AuditRecord(
                resource_type="offer",
                record_id="o-1",
                event_type="transition_rejected",
                status_before="sprejeta",
                status_after="poslana",
                metadata={"reason": "TERMINAL_STATE"},
            )
        )

        async with session_factory() as fresh:
            trail = await AuditLogRepository(fresh).list_for_record("offer", "o-1")
        assert calls == 2
        assert [r.reason for r in trail] == ["TERMINAL_STATE"]


class TestConditionalWrite:
    @pytest.mark.asyncio
    async def test_compare_and_set(self, db_session) -> None:
        await _seed(db_session, _escrow())
        repo = ResourceStatusRepository(db_session)

        assert await repo.compare_and_set_status("escrow", "esc-1", "paid", "released") is False
        assert await repo.compare_and_set_status("escrow", "esc-1", "pending", "paid") is True
        assert await repo.get_status("escrow", "esc-1") == "paid"

    @pytest.mark.asyncio
    async def test_lost_race_raises_stale_transition(self, service, db_session) -> None:
        # Another writer cancelled the escrow after the guard read 'pending'.
        await _seed(db_session, _escrow(status="cancelled"))

        with patch.object(
            service._status_repo, "get_status", new_callable=AsyncMock
        ) as mock_read:
            mock_read.return_value = "pending"
            with pytest.raises(StaleTransitionError) as exc_info:
                await service.apply_transition("escrow", "esc-1", "paid")

        assert exc_info.value.code == 409
        assert "changed concurrently" in exc_info.value.error
        assert await ResourceStatusRepository(db_session).get_status("escrow", "esc-1") == "cancelled"

    @pytest.mark.asyncio
    async def test_read_failure_is_state_unavailable(self, service, db_session) -> None:
        with patch.object(
            db_session, "execute", new_callable=AsyncMock
        ) as mock_execute:
            mock_execute.side_effect = SQLAlchemyError("connection reset")
            with pytest.raises(ResourceStateUnavailableError) as exc_info:
                await service.check_transition("escrow", "esc-1", "paid")

        assert exc_info.value.code == 500
        assert exc_info.value.error == "Failed to verify escrow state"


class TestPublishTask:
    @pytest.mark.asyncio
    async def test_default_sla_from_priority(self, service, db_session) -> None:
        await _seed(db_session, _task(priority="urgent"))
        before = datetime.now(UTC)

        result = await service.publish_task("task-1")
        await db_session.commit()

        deadline = result.values["sla_deadline"]
        assert result.status == "published"
        assert before + timedelta(hours=4) <= deadline <= datetime.now(UTC) + timedelta(hours=4)

        task = await ResourceStatusRepository(db_session).get_record("task", "task-1")
        assert task.status == "published"
        assert _naive_utc(task.sla_deadline) == _naive_utc(deadline)

    @pytest.mark.asyncio
    async def test_explicit_sla_hours(self, service, db_session) -> None:
        await _seed(db_session, _task())
        before = datetime.now(UTC)

        result = await service.publish_task("task-1", sla_hours=2)

        assert result.values["sla_deadline"] - before < timedelta(hours=2, minutes=1)

    @pytest.mark.asyncio
    async def test_publish_twice_rejected(self, service, db_session) -> None:
        await _seed(db_session, _task())
        await service.publish_task("task-1")
        await db_session.commit()

        with pytest.raises(InvalidTransitionError):
            await service.publish_task("task-1")

    @pytest.mark.asyncio
    async def test_missing_task(self, service) -> None:
        with pytest.raises(ResourceNotFoundError):
            await service.publish_task("ghost")

    @pytest.mark.asyncio
    async def test_status_change_recorded_with_deadline(self, service, db_session) -> None:
        await _seed(db_session, _task())
        await service.publish_task("task-1")
        await db_session.commit()

        rows = (
            await db_session.execute(
                select(TransitionAuditEntry).where(TransitionAuditEntry.record_id == "task-1")
            )
        ).scalars().all()
        assert len(rows) == 1
        assert rows[0].event_type == "status_changed"
        assert "sla_deadline" in rows[0].metadata_json

    @pytest.mark.asyncio
    async def test_claimed_task_not_republished(self, service, db_session, session_factory) -> None:
        claimed = _task()
        claimed.status = "claimed"
        claimed.worker_id = "w-1"
        await _seed(db_session, claimed)

        with pytest.raises(InvalidTransitionError, match="claimed -> published"):
            await service.publish_task("task-1")
        await db_session.rollback()

        async with session_factory() as fresh:
            task = await fresh.get(Task, "task-1")
            trail = await AuditLogRepository(fresh).list_for_record("task", "task-1")

        assert task.status == "claimed"
        assert task.worker_id == "w-1"
        assert task.sla_deadline is None
        assert len(trail) == 1
        assert trail[0].status_before == "claimed"
        assert trail[0].reason == "INVALID_TRANSITION"

    @pytest.mark.asyncio
    async def test_claim_release_still_allowed(self, service, db_session) -> None:
        claimed = _task()
        claimed.status = "claimed"
        await _seed(db_session, claimed)

        result = await service.apply_transition("task", "task-1", "published", worker_id=None)

        assert result.previous_status == "claimed"
        assert result.status == "published"
