"""Domain enumerations for the marketplace lifecycle core.

These enums define the canonical resource types, statuses and audit vocabulary
used throughout the system. They are framework-agnostic (no SQLAlchemy, no
FastAPI imports).
"""

import enum


class ResourceType(enum.StrEnum):
    """Resource types whose status transitions are guarded.

    Each value has a transition table registered in domain/transitions.py.
    """

    ESCROW = "escrow"
    INQUIRY = "inquiry"
    OFFER = "offer"
    TASK = "task"


class EscrowStatus(enum.StrEnum):
    """Lifecycle states of an escrow transaction (held customer payment)."""

    PENDING = "pending"
    PAID = "paid"
    DISPUTED = "disputed"
    RELEASED = "released"
    REFUNDED = "refunded"
    CANCELLED = "cancelled"


class InquiryStatus(enum.StrEnum):
    """Lifecycle states of a customer service inquiry."""

    PENDING = "pending"
    OFFER_RECEIVED = "offer_received"
    ACCEPTED = "accepted"
    COMPLETED = "completed"
    CLOSED = "closed"


class OfferStatus(enum.StrEnum):
    """Lifecycle states of a craftworker offer.

    Values are the persisted (Slovene) column values.
    """

    SENT = "poslana"
    ACCEPTED = "sprejeta"
    REJECTED = "zavrnjena"


class TaskStatus(enum.StrEnum):
    """Lifecycle states of a dispatchable task."""

    PENDING = "pending"
    PUBLISHED = "published"
    CLAIMED = "claimed"
    ACCEPTED = "accepted"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class TaskPriority(enum.StrEnum):
    """Task priority. Drives the default SLA window on publication."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class AuditEventType(enum.StrEnum):
    """Types of records written to the transition_audit_log table.

    The guard itself only writes TRANSITION_REJECTED unless acceptance
    auditing is switched on. STATUS_CHANGED is written by callers that
    perform the actual status update.
    """

    TRANSITION_REJECTED = "transition_rejected"
    TRANSITION_ACCEPTED = "transition_accepted"
    STATUS_CHANGED = "status_changed"


class RejectionReason(enum.StrEnum):
    """Why the guard refused a transition. Stored in metadata["reason"]."""

    INVALID_TRANSITION = "INVALID_TRANSITION"
    TERMINAL_STATE = "TERMINAL_STATE"
