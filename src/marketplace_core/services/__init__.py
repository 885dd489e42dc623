"""Application services — use case orchestration."""

from marketplace_core.services.lifecycle_service import LifecycleService
from marketplace_core.services.matching_service import MatchingService

__all__ = ["LifecycleService", "MatchingService"]
