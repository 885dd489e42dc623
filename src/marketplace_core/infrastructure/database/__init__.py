"""Database infrastructure — engine, ORM models, and repositories."""

from marketplace_core.infrastructure.database.engine import (
    close_db,
    get_async_session,
    get_session_factory,
    init_db,
)
from marketplace_core.infrastructure.database.orm_models import (
    RESOURCE_MODELS,
    Base,
    EscrowTransaction,
    Inquiry,
    Offer,
    Task,
    TransitionAuditEntry,
    WorkerStatsRecord,
)
from marketplace_core.infrastructure.database.repositories import (
    AuditLogRepository,
    IsolatedAuditLogWriter,
    ResourceStatusRepository,
    WorkerStatsRepository,
)

__all__ = [
    "RESOURCE_MODELS",
    "Base",
    "EscrowTransaction",
    "Inquiry",
    "Offer",
    "Task",
    "TransitionAuditEntry",
    "WorkerStatsRecord",
    "AuditLogRepository",
    "IsolatedAuditLogWriter",
    "ResourceStatusRepository",
    "WorkerStatsRepository",
    "get_async_session",
    "get_session_factory",
    "init_db",
    "close_db",
]
