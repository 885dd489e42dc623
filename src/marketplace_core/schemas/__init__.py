"""Pydantic API schemas."""

from marketplace_core.schemas.lifecycle import (
    AuditEntryResponse,
    HealthResponse,
    PublishTaskRequest,
    PublishTaskResponse,
    ResourceStatusResponse,
    TransitionAppliedResponse,
    TransitionCheckResponse,
    TransitionRequest,
)
from marketplace_core.schemas.matching import (
    MatchScoreResponse,
    QualificationRequest,
    QualificationResponse,
    RankingResponse,
    RankStoredWorkersRequest,
    ScoreWorkersRequest,
    WorkerStatsPayload,
)

__all__ = [
    "AuditEntryResponse",
    "HealthResponse",
    "PublishTaskRequest",
    "PublishTaskResponse",
    "ResourceStatusResponse",
    "TransitionAppliedResponse",
    "TransitionCheckResponse",
    "TransitionRequest",
    "MatchScoreResponse",
    "QualificationRequest",
    "QualificationResponse",
    "RankingResponse",
    "RankStoredWorkersRequest",
    "ScoreWorkersRequest",
    "WorkerStatsPayload",
]
