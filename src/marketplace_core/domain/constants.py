"""Matching and task-engine constants.

Scoring weights, qualification thresholds and SLA windows. These are
process-wide, immutable configuration: scoring, qualification and the ranker
all read their numbers from here and never hardcode them.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from types import MappingProxyType

from marketplace_core.domain.enums import TaskPriority


@dataclass(frozen=True)
class ScoringWeights:
    """Share of each sub-score in the final match score (percent, sums to 100)."""

    completion_rate: int = 30
    rating: int = 25
    response_time: int = 20
    on_time_rate: int = 15
    cancellation_rate: int = 10  # inverted: fewer cancellations score higher

    def __post_init__(self) -> None:
        total = sum(getattr(self, f.name) for f in fields(self))
        if total != 100:
            raise ValueError(f"Scoring weights must sum to 100, got {total}")


@dataclass(frozen=True)
class ScoringThresholds:
    """Hard gates and interpolation bounds for worker scoring."""

    min_jobs_for_ranking: int = 5
    min_rating: float = 3.0
    max_rating: float = 5.0
    fast_response_minutes: float = 5
    max_response_time_minutes: float = 120
    min_on_time_rate: float = 0.7  # below this is a warning, not a disqualifier


@dataclass(frozen=True)
class ReasonThresholds:
    """Cut-offs for the advisory reason strings attached to match scores."""

    excellent_rating: float = 4.5
    good_rating: float = 4.0
    fast_responder_minutes: float = 30
    reliable_on_time_rate: float = 0.9
    low_cancellation_rate: float = 0.05
    high_cancellation_rate: float = 0.2


SCORING_WEIGHTS = ScoringWeights()
SCORING_THRESHOLDS = ScoringThresholds()
REASON_THRESHOLDS = ReasonThresholds()

# Hours until a published task's SLA deadline, by priority.
SLA_HOURS = MappingProxyType(
    {
        TaskPriority.LOW: 48,
        TaskPriority.MEDIUM: 24,
        TaskPriority.HIGH: 12,
        TaskPriority.URGENT: 4,
    }
)

TOP_MATCHES_COUNT = 5
