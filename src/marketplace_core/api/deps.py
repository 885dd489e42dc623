"""FastAPI dependency injection providers.

These are used with Depends() in route handlers to inject database sessions,
services, and configuration.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from marketplace_core.config import Settings, get_settings
from marketplace_core.infrastructure.database.engine import (
    get_async_session,
    get_session_factory,
)
from marketplace_core.infrastructure.database.repositories import IsolatedAuditLogWriter
from marketplace_core.services.lifecycle_service import LifecycleService
from marketplace_core.services.matching_service import MatchingService


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async database session for a request."""
    async for session in get_async_session():
        yield session


def get_app_settings() -> Settings:
    """Provide the application settings."""
    return get_settings()


async def get_audit_writer() -> IsolatedAuditLogWriter:
    """Provide the writer for rejection audit records.

    Tests override this to point at their own database.
    """
    return IsolatedAuditLogWriter(get_session_factory())


async def get_lifecycle_service(
    session: AsyncSession = Depends(get_db_session),
    audit_writer: IsolatedAuditLogWriter = Depends(get_audit_writer),
    settings: Settings = Depends(get_app_settings),
) -> LifecycleService:
    """Provide a LifecycleService bound to the current session."""
    return LifecycleService(session, audit_writer=audit_writer, settings=settings)


async def get_matching_service(
    session: AsyncSession = Depends(get_db_session),
    settings: Settings = Depends(get_app_settings),
) -> MatchingService:
    """Provide a MatchingService bound to the current session."""
    return MatchingService(session, settings=settings)
