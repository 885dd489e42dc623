"""Worker matching REST API routes.

Routes:
    POST   /api/v1/matching/score          — Rank caller-supplied worker statistics
    POST   /api/v1/matching/rank           — Rank workers from stored statistics
    POST   /api/v1/matching/qualification  — Qualification, score and summary of one worker
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace_core.api.deps import get_app_settings, get_matching_service
from marketplace_core.config import Settings
from marketplace_core.schemas.matching import (
    MatchScoreResponse,
    QualificationRequest,
    QualificationResponse,
    RankingResponse,
    RankStoredWorkersRequest,
    ScoreWorkersRequest,
)
from marketplace_core.services.matching_service import (
    MatchingService,
    qualify,
    rank_workers,
)

router = APIRouter(prefix="/api/v1/matching", tags=["Matching"])


def _ranking_response(matches) -> RankingResponse:
    return RankingResponse(
        matches=[MatchScoreResponse.model_validate(match) for match in matches],
        count=len(matches),
    )


@router.post(
    "/score",
    response_model=RankingResponse,
    summary="Score and rank supplied worker statistics",
)
async def score_workers(
    request: ScoreWorkersRequest,
    settings: Settings = Depends(get_app_settings),
) -> RankingResponse:
    """Disqualified and zero-score workers are left out; ties keep request order."""
    matches = rank_workers(
        [worker.to_domain() for worker in request.workers],
        limit=request.limit or settings.matching_top_n,
    )
    return _ranking_response(matches)


@router.post(
    "/rank",
    response_model=RankingResponse,
    summary="Rank workers from stored statistics",
)
async def rank_stored_workers(
    request: RankStoredWorkersRequest,
    svc: MatchingService = Depends(get_matching_service),
) -> RankingResponse:
    matches = await svc.rank(worker_ids=request.worker_ids, limit=request.limit)
    return _ranking_response(matches)


@router.post(
    "/qualification",
    response_model=QualificationResponse,
    summary="Check whether a worker qualifies for matching",
)
async def check_qualification(
    request: QualificationRequest,
    svc: MatchingService = Depends(get_matching_service),
) -> QualificationResponse:
    if request.stats is not None:
        result = qualify(request.stats.to_domain())
    else:
        result = await svc.check_qualification(request.worker_id)
    return QualificationResponse.model_validate(result)
