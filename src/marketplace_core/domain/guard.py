"""Transition Guard.

Pre-flight check for resource status changes. Given a resource type, id and
desired target status it fetches the current status, applies the terminal-state
and table-membership rules, raises a structured LifecycleError on violation and
appends an audit record for every rejected attempt.

The guard never writes the resource's status. Callers perform the actual
update afterwards, with a conditional write on the status the guard observed
(see services/lifecycle_service.py). Runs AFTER permission checks, BEFORE any
side-effecting call such as payment capture.

The domain layer has ZERO imports from SQLAlchemy or FastAPI; the store is
reached through the ResourceStateReader and AuditLogWriter protocols.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from marketplace_core.domain.enums import AuditEventType, RejectionReason
from marketplace_core.domain.exceptions import (
    InvalidTransitionError,
    ResourceNotFoundError,
    TerminalStateViolationError,
)
from marketplace_core.domain.transitions import get_transition_table
from marketplace_core.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Collection

logger = get_logger(__name__)

SYSTEM_ACTOR = "system"
GUARD_ACTOR_ID = "state-machine"


@dataclass(frozen=True)
class AuditRecord:
    """One append-only audit log entry.

    Attributes:
        resource_type: ResourceType value of the audited resource.
        record_id: Id of the audited resource.
        event_type: AuditEventType value.
        status_before: Status observed when the attempt was made.
        status_after: Requested target (the attempted one, even on rejection).
        actor: "system" for guard-originated records, else a user/service id.
        actor_id: Identifier of the component or caller that made the attempt.
        metadata: Extra context. Holds "reason" on rejections.
        created_at: UTC timestamp of the attempt.
    """

    resource_type: str
    record_id: str
    event_type: str
    status_before: str | None
    status_after: str
    actor: str = SYSTEM_ACTOR
    actor_id: str = GUARD_ACTOR_ID
    metadata: dict = field(default_factory=dict)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    @property
    def reason(self) -> str | None:
        return self.metadata.get("reason")

    def to_dict(self) -> dict:
        return {
            "resource_type": self.resource_type,
            "record_id": self.record_id,
            "event_type": self.event_type,
            "status_before": self.status_before,
            "status_after": self.status_after,
            "actor": self.actor,
            "actor_id": self.actor_id,
            "metadata": dict(self.metadata),
            "created_at": self.created_at.isoformat(),
        }


@runtime_checkable
class ResourceStateReader(Protocol):
    """Loads the current persisted status of a resource."""

    async def get_status(self, resource_type: str, resource_id: str) -> str | None:
        """Return the current status, or None if the resource does not exist."""
        ...


@runtime_checkable
class AuditLogWriter(Protocol):
    """Appends immutable audit records."""

    async def append(self, record: AuditRecord) -> None:
        ...


class TransitionGuard:
    """Validates and audits requested status transitions.

    Usage:
        guard = TransitionGuard(reader, audit_writer)
        await guard.assert_transition("escrow", escrow_id, "paid")  # raises on violation

    Set ``audit_accepted=True`` to also record a ``transition_accepted`` entry
    for approved checks. Off by default: only rejections are audited here,
    accepted changes are recorded by whoever performs the status write.
    """

    def __init__(
        self,
        reader: ResourceStateReader,
        audit_writer: AuditLogWriter,
        *,
        audit_accepted: bool = False,
    ) -> None:
        self._reader = reader
        self._audit_writer = audit_writer
        self._audit_accepted = audit_accepted

    async def assert_transition(
        self,
        resource_type: str,
        resource_id: str,
        target_status: str,
        *,
        actor_id: str = GUARD_ACTOR_ID,
        from_statuses: Collection[str] | None = None,
    ) -> None:
        """Check that ``resource_id`` may move to ``target_status``.

        ``from_statuses`` narrows the table: the edge is only allowed when the
        current status is one of them.

        Raises:
            UnknownResourceTypeError: 400, type not registered. Nothing audited.
            ResourceNotFoundError: 404, id does not exist. Nothing audited.
            TerminalStateViolationError: 409, current status is terminal.
            InvalidTransitionError: 409, target not allowed from current status.
            ResourceStateUnavailableError: 500, the store could not be read.
        """
        await self.check(
            resource_type,
            resource_id,
            target_status,
            actor_id=actor_id,
            from_statuses=from_statuses,
        )

    async def check(
        self,
        resource_type: str,
        resource_id: str,
        target_status: str,
        *,
        actor_id: str = GUARD_ACTOR_ID,
        from_statuses: Collection[str] | None = None,
    ) -> str:
        """Same as assert_transition, but returns the status the decision was based on.

        Callers that perform the status write use the returned value as the
        expected status of their conditional update.
        """
        table = get_transition_table(resource_type)
        resource_type = table.resource_type

        current_status = await self._reader.get_status(resource_type, resource_id)
        if current_status is None:
            raise ResourceNotFoundError(resource_type, resource_id)

        # Terminal check comes first: once terminal, always terminal.
        if table.is_terminal(current_status):
            logger.warning(
                "state_machine.transition_rejected",
                resource_type=resource_type,
                resource_id=resource_id,
                current=current_status,
                attempted=target_status,
                reason=RejectionReason.TERMINAL_STATE.value,
            )
            await self._record_rejection(
                resource_type,
                resource_id,
                current_status,
                target_status,
                RejectionReason.TERMINAL_STATE,
                actor_id,
            )
            raise TerminalStateViolationError(current_status, target_status)

        allowed = table.allowed_targets(current_status)
        if from_statuses is not None and current_status not in from_statuses:
            allowed = frozenset()

        if target_status not in allowed:
            logger.warning(
                "state_machine.transition_rejected",
                resource_type=resource_type,
                resource_id=resource_id,
                current=current_status,
                attempted=target_status,
                reason=RejectionReason.INVALID_TRANSITION.value,
            )
            await self._record_rejection(
                resource_type,
                resource_id,
                current_status,
                target_status,
                RejectionReason.INVALID_TRANSITION,
                actor_id,
            )
            raise InvalidTransitionError(current_status, target_status)

        logger.debug(
            "state_machine.transition_valid",
            resource_type=resource_type,
            resource_id=resource_id,
            current=current_status,
            target=target_status,
        )
        if self._audit_accepted:
            await self._safe_append(
                AuditRecord(
                    resource_type=resource_type,
                    record_id=resource_id,
                    event_type=AuditEventType.TRANSITION_ACCEPTED.value,
                    status_before=current_status,
                    status_after=target_status,
                    actor_id=actor_id,
                )
            )
        return current_status

    async def _record_rejection(
        self,
        resource_type: str,
        resource_id: str,
        current_status: str,
        target_status: str,
        reason: RejectionReason,
        actor_id: str,
    ) -> None:
        await self._safe_append(
            AuditRecord(
                resource_type=resource_type,
                record_id=resource_id,
                event_type=AuditEventType.TRANSITION_REJECTED.value,
                status_before=current_status,
                status_after=target_status,
                actor_id=actor_id,
                metadata={"reason": reason.value},
            )
        )

    async def _safe_append(self, record: AuditRecord) -> None:
        # An audit failure must never replace the guard's decision.
        try:
            await self._audit_writer.append(record)
        except Exception as exc:
            logger.error(
                "state_machine.audit_write_failed",
                resource_type=record.resource_type,
                resource_id=record.record_id,
                event_type=record.event_type,
                error=str(exc),
                exc_info=True,
            )


async def assert_transition(
    reader: ResourceStateReader,
    audit_writer: AuditLogWriter,
    resource_type: str,
    resource_id: str,
    target_status: str,
) -> None:
    """One-shot convenience wrapper around TransitionGuard.assert_transition."""
    guard = TransitionGuard(reader, audit_writer)
    await guard.assert_transition(resource_type, resource_id, target_status)
