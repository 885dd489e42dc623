"""Domain layer — pure business logic with zero framework dependencies."""

from marketplace_core.domain.enums import (
    AuditEventType,
    RejectionReason,
    ResourceType,
)
from marketplace_core.domain.exceptions import (
    InvalidTransitionError,
    LifecycleError,
    ResourceNotFoundError,
    ResourceStateUnavailableError,
    StaleTransitionError,
    TerminalStateViolationError,
    UnknownResourceTypeError,
    WorkerStatsNotFoundError,
)
from marketplace_core.domain.guard import (
    AuditLogWriter,
    AuditRecord,
    ResourceStateReader,
    TransitionGuard,
    assert_transition,
)
from marketplace_core.domain.transitions import (
    TRANSITION_TABLES,
    TransitionTable,
    get_transition_table,
)
from marketplace_core.domain.worker_scoring import (
    MatchScore,
    WorkerStats,
    calculate_worker_score,
    is_worker_qualified,
    score_workers,
)

__all__ = [
    "AuditEventType",
    "RejectionReason",
    "ResourceType",
    "InvalidTransitionError",
    "LifecycleError",
    "ResourceNotFoundError",
    "ResourceStateUnavailableError",
    "StaleTransitionError",
    "TerminalStateViolationError",
    "UnknownResourceTypeError",
    "WorkerStatsNotFoundError",
    "AuditLogWriter",
    "AuditRecord",
    "ResourceStateReader",
    "TransitionGuard",
    "assert_transition",
    "TRANSITION_TABLES",
    "TransitionTable",
    "get_transition_table",
    "MatchScore",
    "WorkerStats",
    "calculate_worker_score",
    "is_worker_qualified",
    "score_workers",
]
