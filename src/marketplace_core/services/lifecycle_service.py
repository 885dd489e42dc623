"""Lifecycle Service — guarded status changes for every resource type.

This is the application layer that coordinates between:
    - TransitionGuard (pre-flight check, rejection audit)
    - ResourceStatusRepository (conditional status write)
    - AuditLogRepository (status_changed entries, same transaction as the write)

The guard only reads. A status change is written with a compare-and-set on
the status the guard observed; if another writer got there first the update
matches no row and StaleTransitionError tells the caller to check again.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

from marketplace_core.config import Settings, get_settings
from marketplace_core.domain.constants import SLA_HOURS
from marketplace_core.domain.enums import (
    AuditEventType,
    ResourceType,
    TaskPriority,
    TaskStatus,
)
from marketplace_core.domain.exceptions import (
    ResourceNotFoundError,
    StaleTransitionError,
)
from marketplace_core.domain.guard import SYSTEM_ACTOR, AuditRecord, TransitionGuard
from marketplace_core.domain.transitions import get_transition_table
from marketplace_core.infrastructure.database.engine import get_session_factory
from marketplace_core.infrastructure.database.repositories import (
    AuditLogRepository,
    IsolatedAuditLogWriter,
    ResourceStatusRepository,
)
from marketplace_core.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Collection

    from sqlalchemy.ext.asyncio import AsyncSession

    from marketplace_core.domain.guard import AuditLogWriter

logger = get_logger(__name__)


@dataclass(frozen=True)
class ResourceStatus:
    """Current status of a resource and where it may go next."""

    resource_type: str
    resource_id: str
    status: str
    is_terminal: bool
    allowed_targets: tuple[str, ...]


@dataclass(frozen=True)
class TransitionResult:
    """Outcome of a successful guarded status write."""

    resource_type: str
    resource_id: str
    previous_status: str
    status: str
    changed_at: datetime
    values: dict[str, Any] = field(default_factory=dict)


class LifecycleService:
    """Checks and applies status transitions for escrows, inquiries, offers and tasks."""

    def __init__(
        self,
        session: AsyncSession,
        audit_writer: AuditLogWriter | None = None,
        settings: Settings | None = None,
    ) -> None:
        self._session = session
        self._settings = settings or get_settings()
        self._status_repo = ResourceStatusRepository(session)
        self._audit_repo = AuditLogRepository(session)
        self._audit_writer = audit_writer or IsolatedAuditLogWriter(get_session_factory())
        self._guard = TransitionGuard(
            self._status_repo,
            self._audit_writer,
            audit_accepted=self._settings.guard_audit_accepted,
        )

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def check_transition(
        self,
        resource_type: str,
        resource_id: str,
        target_status: str,
        actor_id: str | None = None,
        from_statuses: Collection[str] | None = None,
    ) -> str:
        """Run the guard only. Returns the status the decision was based on."""
        return await self._guard.check(
            resource_type,
            resource_id,
            target_status,
            actor_id=actor_id or self._settings.guard_actor_id,
            from_statuses=from_statuses,
        )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def apply_transition(
        self,
        resource_type: str,
        resource_id: str,
        target_status: str,
        actor: str = SYSTEM_ACTOR,
        actor_id: str | None = None,
        from_statuses: Collection[str] | None = None,
        **values: Any,
    ) -> TransitionResult:
        """Guard the transition, then write it conditionally.

        Extra keyword values are written to the resource row in the same
        UPDATE statement. ``from_statuses`` restricts the statuses the write
        may start from.

        Raises:
            LifecycleError subclasses from the guard.
            StaleTransitionError: the status changed between check and write.
        """
        actor_id = actor_id or self._settings.guard_actor_id
        resource_type = get_transition_table(resource_type).resource_type

        observed = await self.check_transition(
            resource_type,
            resource_id,
            target_status,
            actor_id=actor_id,
            from_statuses=from_statuses,
        )
        written = await self._status_repo.compare_and_set_status(
            resource_type, resource_id, observed, target_status, **values
        )
        if not written:
            logger.warning(
                "lifecycle.stale_transition",
                resource_type=resource_type,
                resource_id=resource_id,
                expected=observed,
                target=target_status,
            )
            raise StaleTransitionError(resource_type, resource_id, observed)

        changed_at = datetime.now(UTC)
        await self._audit_repo.append(
            AuditRecord(
                resource_type=resource_type,
                record_id=resource_id,
                event_type=AuditEventType.STATUS_CHANGED.value,
                status_before=observed,
                status_after=target_status,
                actor=actor,
                actor_id=actor_id,
                metadata=_json_safe(values),
                created_at=changed_at,
            )
        )

        logger.info(
            "lifecycle.transition_applied",
            resource_type=resource_type,
            resource_id=resource_id,
            previous=observed,
            status=target_status,
            actor=actor,
        )
        return TransitionResult(
            resource_type=resource_type,
            resource_id=resource_id,
            previous_status=observed,
            status=target_status,
            changed_at=changed_at,
            values=dict(values),
        )

    async def publish_task(
        self,
        task_id: str,
        sla_hours: float | None = None,
        actor: str = SYSTEM_ACTOR,
    ) -> TransitionResult:
        """Move a task from pending to published and start its SLA clock.

        Only pending tasks are published here. A claimed task also has an edge
        to published (the claim is released), but that is a release and is
        rejected with InvalidTransitionError. Without ``sla_hours`` the window
        comes from the task's priority.
        """
        task = await self._status_repo.get_record(ResourceType.TASK.value, task_id)
        if task is None:
            raise ResourceNotFoundError(ResourceType.TASK.value, task_id)

        if sla_hours is None:
            sla_hours = SLA_HOURS[TaskPriority(task.priority)]
        sla_deadline = datetime.now(UTC) + timedelta(hours=sla_hours)

        result = await self.apply_transition(
            ResourceType.TASK.value,
            task_id,
            TaskStatus.PUBLISHED.value,
            actor=actor,
            from_statuses=(TaskStatus.PENDING.value,),
            sla_deadline=sla_deadline,
        )
        logger.info(
            "lifecycle.task_published",
            task_id=task_id,
            priority=task.priority,
            sla_hours=sla_hours,
            sla_deadline=sla_deadline.isoformat(),
        )
        return result

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    async def get_status(self, resource_type: str, resource_id: str) -> ResourceStatus:
        table = get_transition_table(resource_type)
        status = await self._status_repo.get_status(table.resource_type, resource_id)
        if status is None:
            raise ResourceNotFoundError(table.resource_type, resource_id)
        return ResourceStatus(
            resource_type=table.resource_type,
            resource_id=resource_id,
            status=status,
            is_terminal=table.is_terminal(status),
            allowed_targets=tuple(sorted(table.allowed_targets(status))),
        )

    async def get_audit_trail(self, resource_type: str, resource_id: str) -> list[AuditRecord]:
        """All audit entries of a resource, oldest first."""
        table = get_transition_table(resource_type)
        return await self._audit_repo.list_for_record(table.resource_type, resource_id)


def _json_safe(values: dict[str, Any]) -> dict[str, Any]:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in values.items()
    }
