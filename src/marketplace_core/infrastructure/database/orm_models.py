"""SQLAlchemy 2.0 ORM models for the marketplace lifecycle core.

Tables:
    1. escrow_transactions  — Held customer payments.
    2. inquiries            — Customer service requests.
    3. offers               — Craftworker offers on inquiries.
    4. tasks                — Dispatchable tasks claimed by workers.
    5. worker_stats         — Rolling worker statistics, written by the external aggregator.
    6. transition_audit_log — Append-only audit of transition attempts.

Design decisions:
    - Opaque string ids (UUID4 text by default) so every resource type is
      addressed the same way by the guard.
    - CHECK constraint on every status column, generated from the registered
      transition table so the database and the guard agree on the vocabulary.
    - JSON metadata (JSONB on PostgreSQL).
    - transition_audit_log is append-only: the mapper refuses UPDATE and DELETE.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from marketplace_core.domain.enums import (
    EscrowStatus,
    InquiryStatus,
    OfferStatus,
    ResourceType,
    TaskPriority,
    TaskStatus,
)
from marketplace_core.domain.transitions import TRANSITION_TABLES

JSONType = JSON().with_variant(JSONB(), "postgresql")


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def _new_id() -> str:
    return str(uuid.uuid4())


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _status_check(resource_type: ResourceType) -> CheckConstraint:
    """CHECK constraint listing the statuses known to the resource's lifecycle."""
    statuses = ", ".join(
        f"'{status}'" for status in sorted(TRANSITION_TABLES[resource_type].statuses)
    )
    return CheckConstraint(
        f"status IN ({statuses})",
        name=f"ck_{resource_type.value}_valid_status",
    )


def _set_updated_at(mapper, connection, target):  # noqa: ANN001
    """SQLAlchemy event listener that updates `updated_at` before flush."""
    if hasattr(target, "updated_at"):
        target.updated_at = _utcnow()


def _reject_audit_mutation(mapper, connection, target):  # noqa: ANN001
    raise PermissionError(
        f"transition_audit_log is append-only (entry {target.id} cannot be changed)"
    )


# ---------------------------------------------------------------------------
# 1. escrow_transactions
# ---------------------------------------------------------------------------
class EscrowTransaction(Base):
    """A customer payment held until release to the partner or refund."""

    __tablename__ = "escrow_transactions"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    partner_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    amount_total_cents: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        comment="Escrowed amount in cents",
    )
    payment_intent_id: Mapped[str | None] = mapped_column(
        String(128),
        nullable=True,
        comment="Payment provider reference; capture/refund happen outside this core",
    )
    status: Mapped[str] = mapped_column(
        String(20),
        nullable=False,
        default=EscrowStatus.PENDING.value,
        comment="Current lifecycle state (guarded by TransitionGuard)",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        _status_check(ResourceType.ESCROW),
        CheckConstraint("amount_total_cents > 0", name="ck_escrow_positive_amount"),
        Index("idx_escrow_status", "status"),
        Index("idx_escrow_customer", "customer_id"),
    )

    def __repr__(self) -> str:
        return f"<EscrowTransaction id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 2. inquiries
# ---------------------------------------------------------------------------
class Inquiry(Base):
    """A customer's request for a service."""

    __tablename__ = "inquiries"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=InquiryStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        _status_check(ResourceType.INQUIRY),
        Index("idx_inquiry_status", "status"),
        Index("idx_inquiry_customer", "customer_id"),
    )

    def __repr__(self) -> str:
        return f"<Inquiry id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 3. offers
# ---------------------------------------------------------------------------
class Offer(Base):
    """A craftworker's priced offer on an inquiry."""

    __tablename__ = "offers"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    inquiry_id: Mapped[str | None] = mapped_column(
        String(64),
        ForeignKey("inquiries.id", ondelete="CASCADE"),
        nullable=True,
    )
    partner_id: Mapped[str] = mapped_column(String(64), nullable=False)
    price_cents: Mapped[int | None] = mapped_column(Integer, nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=OfferStatus.SENT.value
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        _status_check(ResourceType.OFFER),
        Index("idx_offer_inquiry", "inquiry_id"),
    )

    def __repr__(self) -> str:
        return f"<Offer id={self.id} status={self.status}>"


# ---------------------------------------------------------------------------
# 4. tasks
# ---------------------------------------------------------------------------
class Task(Base):
    """A unit of work dispatched to workers."""

    __tablename__ = "tasks"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    customer_id: Mapped[str] = mapped_column(String(64), nullable=False)
    worker_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    title: Mapped[str] = mapped_column(String(200), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False, default="general")
    priority: Mapped[str] = mapped_column(
        String(10), nullable=False, default=TaskPriority.MEDIUM.value
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=TaskStatus.PENDING.value
    )
    sla_deadline: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
        comment="Set on publication from the priority's SLA window",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        _status_check(ResourceType.TASK),
        CheckConstraint(
            "priority IN ('low', 'medium', 'high', 'urgent')",
            name="ck_task_valid_priority",
        ),
        Index("idx_task_status", "status"),
        Index("idx_task_worker", "worker_id"),
    )

    def __repr__(self) -> str:
        return f"<Task id={self.id} status={self.status} priority={self.priority}>"


# ---------------------------------------------------------------------------
# 5. worker_stats
# ---------------------------------------------------------------------------
class WorkerStatsRecord(Base):
    """Rolling statistics per worker. Read-only for this core."""

    __tablename__ = "worker_stats"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=_new_id)
    worker_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    total_completed: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_rating: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    response_time_minutes: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    completion_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    cancellation_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    on_time_rate: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow, onupdate=_utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "completion_rate >= 0 AND completion_rate <= 1 "
            "AND cancellation_rate >= 0 AND cancellation_rate <= 1 "
            "AND on_time_rate >= 0 AND on_time_rate <= 1",
            name="ck_worker_stats_rates",
        ),
    )

    def __repr__(self) -> str:
        return f"<WorkerStatsRecord worker={self.worker_id} rating={self.avg_rating}>"


# ---------------------------------------------------------------------------
# 6. transition_audit_log (Append-Only)
# ---------------------------------------------------------------------------
class TransitionAuditEntry(Base):
    """Immutable record of a transition attempt.

    status_after holds the *attempted* target, also for rejected attempts.
    The log describes what was attempted, not what happened to the resource.
    ``id`` grows with every insert and orders entries that share a timestamp.
    """

    __tablename__ = "transition_audit_log"

    id: Mapped[int] = mapped_column(
        BigInteger().with_variant(Integer, "sqlite"), primary_key=True, autoincrement=True
    )
    resource_type: Mapped[str] = mapped_column(String(20), nullable=False)
    record_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="Id of the audited resource (escrow transaction, inquiry, ...)",
    )
    event_type: Mapped[str] = mapped_column(String(40), nullable=False)
    actor: Mapped[str] = mapped_column(String(64), nullable=False, default="system")
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status_before: Mapped[str | None] = mapped_column(String(64), nullable=True)
    status_after: Mapped[str] = mapped_column(String(64), nullable=False)
    metadata_json: Mapped[dict | None] = mapped_column(
        "metadata",
        JSONType,
        nullable=True,
        default=None,
        comment="Context such as the rejection reason",
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=_utcnow
    )

    __table_args__ = (
        Index("idx_audit_record", "resource_type", "record_id"),
        Index("idx_audit_event_type", "event_type"),
        Index("idx_audit_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return (
            f"<TransitionAuditEntry {self.resource_type}:{self.record_id} "
            f"{self.event_type} {self.status_before}->{self.status_after}>"
        )


RESOURCE_MODELS: dict[ResourceType, type[Base]] = {
    ResourceType.ESCROW: EscrowTransaction,
    ResourceType.INQUIRY: Inquiry,
    ResourceType.OFFER: Offer,
    ResourceType.TASK: Task,
}

for _model in RESOURCE_MODELS.values():
    event.listen(_model, "before_update", _set_updated_at)

event.listen(TransitionAuditEntry, "before_update", _reject_audit_mutation)
event.listen(TransitionAuditEntry, "before_delete", _reject_audit_mutation)
