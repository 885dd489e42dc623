"""Matching Service — ranks workers from their stored statistics.

Statistics are aggregated elsewhere and written to ``worker_stats``; this
service only reads them and hands them to the pure scoring functions in
domain/worker_scoring.py.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

from marketplace_core.config import Settings, get_settings
from marketplace_core.domain.exceptions import WorkerStatsNotFoundError
from marketplace_core.domain.worker_scoring import (
    MatchScore,
    WorkerStats,
    evaluate_worker,
    is_worker_qualified,
    score_workers,
    worker_performance_summary,
)
from marketplace_core.infrastructure.database.repositories import WorkerStatsRepository
from marketplace_core.logging_config import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


@dataclass(frozen=True)
class QualificationResult:
    worker_id: str
    qualified: bool
    score: float
    summary: dict


def rank_workers(
    stats_list: Sequence[WorkerStats],
    limit: int | None = None,
) -> list[MatchScore]:
    """Rank supplied statistics and log the outcome."""
    matches = score_workers(stats_list, limit=limit)
    logger.info(
        "matching.ranked",
        candidates=len(stats_list),
        matched=len(matches),
        top_worker=matches[0].worker_id if matches else None,
        top_score=matches[0].score if matches else None,
    )
    return matches


def qualify(stats: WorkerStats) -> QualificationResult:
    evaluation = evaluate_worker(stats)
    return QualificationResult(
        worker_id=stats.worker_id,
        qualified=is_worker_qualified(stats),
        score=evaluation.score,
        summary=worker_performance_summary(stats),
    )


class MatchingService:
    """Ranks and qualifies workers stored in ``worker_stats``."""

    def __init__(self, session: AsyncSession, settings: Settings | None = None) -> None:
        self._settings = settings or get_settings()
        self._stats_repo = WorkerStatsRepository(session)

    async def rank(
        self,
        worker_ids: Sequence[str] | None = None,
        limit: int | None = None,
    ) -> list[MatchScore]:
        """Rank the given workers, or every stored worker when no ids are given.

        ``limit`` defaults to the configured top-N.
        """
        if worker_ids is None:
            stats_list = await self._stats_repo.list_all()
        else:
            stats_list = await self._stats_repo.list_for_workers(worker_ids)
        return rank_workers(stats_list, limit=limit or self._settings.matching_top_n)

    async def check_qualification(self, worker_id: str) -> QualificationResult:
        """Qualification, score and display summary of one stored worker.

        Raises:
            WorkerStatsNotFoundError: No stats row exists for the worker.
        """
        stats = await self._stats_repo.get(worker_id)
        if stats is None:
            raise WorkerStatsNotFoundError(worker_id)
        result = qualify(stats)
        logger.debug(
            "matching.qualification_checked",
            worker_id=worker_id,
            qualified=result.qualified,
            score=round(result.score, 2),
        )
        return result
