"""Pydantic schemas for the worker matching API."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator

from marketplace_core.domain.worker_scoring import WorkerStats


class WorkerStatsPayload(BaseModel):
    """Aggregated statistics of one worker, as sent by the caller."""

    worker_id: str = Field(..., min_length=1, max_length=64)
    total_completed: int = Field(..., ge=0)
    avg_rating: float = Field(..., ge=0, le=5, description="Average rating in stars")
    response_time_minutes: float = Field(..., ge=0)
    completion_rate: float = Field(..., ge=0, le=1)
    cancellation_rate: float = Field(..., ge=0, le=1)
    on_time_rate: float = Field(..., ge=0, le=1)

    def to_domain(self) -> WorkerStats:
        return WorkerStats(**self.model_dump())


class ScoreWorkersRequest(BaseModel):
    """Rank caller-supplied statistics."""

    workers: list[WorkerStatsPayload]
    limit: int | None = Field(default=None, ge=1, le=100)


class RankStoredWorkersRequest(BaseModel):
    """Rank workers from the stored statistics (all workers if no ids given)."""

    worker_ids: list[str] | None = None
    limit: int | None = Field(default=None, ge=1, le=100)


class QualificationRequest(BaseModel):
    """Either a stored worker's id or inline statistics."""

    worker_id: str | None = None
    stats: WorkerStatsPayload | None = None

    @model_validator(mode="after")
    def _exactly_one_source(self) -> QualificationRequest:
        if (self.worker_id is None) == (self.stats is None):
            raise ValueError("Provide exactly one of 'worker_id' or 'stats'")
        return self


class MatchScoreResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    score: int = Field(..., ge=0, le=100)
    reasons: list[str]
    match_rank: int = Field(..., ge=1)
    qualified: bool


class RankingResponse(BaseModel):
    matches: list[MatchScoreResponse]
    count: int


class QualificationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    worker_id: str
    qualified: bool
    score: float
    summary: dict
