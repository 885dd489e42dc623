"""Worker scoring engine and match ranker.

Turns externally aggregated worker statistics into a 0-100 match score:

    completion rate    30%   completion_rate * 100
    rating             25%   3.0..5.0 stars -> 0..100
    response time      20%   <=5 min -> 100, >=120 min -> 0
    on-time rate       15%   on_time_rate * 100
    cancellation rate  10%   (1 - cancellation_rate) * 100

Workers below the experience or rating gate are disqualified outright rather
than scored low. Pure computation: no I/O, no hidden state.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass

from marketplace_core.domain.constants import (
    REASON_THRESHOLDS,
    SCORING_THRESHOLDS,
    SCORING_WEIGHTS,
)


@dataclass(frozen=True)
class WorkerStats:
    """Rolling statistics of one worker, supplied by the stats aggregator.

    Rates are fractions in [0, 1]; avg_rating is in stars (1.0 - 5.0).
    """

    worker_id: str
    total_completed: int
    avg_rating: float
    response_time_minutes: float
    completion_rate: float
    cancellation_rate: float
    on_time_rate: float


@dataclass(frozen=True)
class WorkerEvaluation:
    """Score of one worker with eligibility kept separate from the number."""

    worker_id: str
    score: float
    qualified: bool


@dataclass(frozen=True)
class MatchScore:
    """A ranked candidate for a piece of work."""

    worker_id: str
    score: int
    reasons: tuple[str, ...]
    match_rank: int
    qualified: bool = True

    def to_dict(self) -> dict:
        return {
            "worker_id": self.worker_id,
            "score": self.score,
            "reasons": list(self.reasons),
            "match_rank": self.match_rank,
            "qualified": self.qualified,
        }


# ---------------------------------------------------------------------------
# Sub-scores (each 0-100)
# ---------------------------------------------------------------------------


def _completion_score(completion_rate: float) -> float:
    return completion_rate * 100


def _rating_score(avg_rating: float) -> float:
    low = SCORING_THRESHOLDS.min_rating
    high = SCORING_THRESHOLDS.max_rating
    if avg_rating < low:
        return 0.0
    if avg_rating >= high:
        return 100.0
    return (avg_rating - low) / (high - low) * 100


def _response_time_score(response_time_minutes: float) -> float:
    fast = SCORING_THRESHOLDS.fast_response_minutes
    slow = SCORING_THRESHOLDS.max_response_time_minutes
    if response_time_minutes <= fast:
        return 100.0
    if response_time_minutes >= slow:
        return 0.0
    return 100 - (response_time_minutes - fast) / (slow - fast) * 100


def _on_time_score(on_time_rate: float) -> float:
    return on_time_rate * 100


def _cancellation_score(cancellation_rate: float) -> float:
    return (1 - cancellation_rate) * 100


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def passes_scoring_gate(stats: WorkerStats) -> bool:
    """Experience and rating gate applied before any scoring."""
    return (
        stats.total_completed >= SCORING_THRESHOLDS.min_jobs_for_ranking
        and stats.avg_rating >= SCORING_THRESHOLDS.min_rating
    )


def calculate_worker_score(stats: WorkerStats) -> float:
    """Calculate a worker's match score in [0, 100].

    Returns 0 for workers that fail the experience/rating gate.
    """
    if not passes_scoring_gate(stats):
        return 0.0

    total = (
        _completion_score(stats.completion_rate) * SCORING_WEIGHTS.completion_rate
        + _rating_score(stats.avg_rating) * SCORING_WEIGHTS.rating
        + _response_time_score(stats.response_time_minutes) * SCORING_WEIGHTS.response_time
        + _on_time_score(stats.on_time_rate) * SCORING_WEIGHTS.on_time_rate
        + _cancellation_score(stats.cancellation_rate) * SCORING_WEIGHTS.cancellation_rate
    ) / 100

    return max(0.0, min(100.0, total))


def evaluate_worker(stats: WorkerStats) -> WorkerEvaluation:
    """Score a worker and report gate eligibility separately from the score."""
    return WorkerEvaluation(
        worker_id=stats.worker_id,
        score=calculate_worker_score(stats),
        qualified=passes_scoring_gate(stats),
    )


def is_worker_qualified(stats: WorkerStats) -> bool:
    """Boolean eligibility check, e.g. before letting a worker claim urgent work.

    Unlike the scoring gate this also hard-cuts slow responders.
    """
    return (
        stats.total_completed >= SCORING_THRESHOLDS.min_jobs_for_ranking
        and stats.avg_rating >= SCORING_THRESHOLDS.min_rating
        and stats.response_time_minutes <= SCORING_THRESHOLDS.max_response_time_minutes
    )


def generate_score_reasons(stats: WorkerStats, score: float) -> list[str]:
    """Human-readable justifications. Advisory only, never feeds the score."""
    reasons: list[str] = []

    if stats.total_completed < SCORING_THRESHOLDS.min_jobs_for_ranking:
        reasons.append(f"Low experience ({stats.total_completed} jobs)")

    if stats.avg_rating >= REASON_THRESHOLDS.excellent_rating:
        reasons.append(f"Excellent rating ({stats.avg_rating:.1f} stars)")
    elif stats.avg_rating >= REASON_THRESHOLDS.good_rating:
        reasons.append(f"Good rating ({stats.avg_rating:.1f} stars)")

    if stats.response_time_minutes < REASON_THRESHOLDS.fast_responder_minutes:
        reasons.append("Fast responder")

    if stats.on_time_rate >= REASON_THRESHOLDS.reliable_on_time_rate:
        reasons.append("Reliable on-time delivery")

    if stats.cancellation_rate < REASON_THRESHOLDS.low_cancellation_rate:
        reasons.append("Low cancellation rate")
    elif stats.cancellation_rate > REASON_THRESHOLDS.high_cancellation_rate:
        reasons.append(f"Higher cancellation rate ({stats.cancellation_rate * 100:.0f}%)")

    if not reasons:
        reasons.append(f"Overall score: {_round_half_up(score)}/100")

    return reasons


def score_workers(
    stats_list: Iterable[WorkerStats],
    limit: int | None = None,
) -> list[MatchScore]:
    """Score, filter and rank candidate workers.

    Disqualified and zero-score workers are dropped. Ties keep input order;
    match_rank is the 1-based position in the sorted result.

    Args:
        stats_list: Statistics of every candidate.
        limit: Optional cap on the number of returned matches.
    """
    candidates = [(stats, evaluate_worker(stats)) for stats in stats_list]
    eligible = [(s, e) for s, e in candidates if e.qualified and e.score > 0]
    eligible.sort(key=lambda item: item[1].score, reverse=True)

    if limit is not None:
        eligible = eligible[: max(limit, 0)]

    return [
        MatchScore(
            worker_id=evaluation.worker_id,
            score=_round_half_up(evaluation.score),
            reasons=tuple(generate_score_reasons(stats, evaluation.score)),
            match_rank=position,
            qualified=evaluation.qualified,
        )
        for position, (stats, evaluation) in enumerate(eligible, start=1)
    ]


def worker_performance_summary(stats: WorkerStats) -> dict:
    """Display-ready summary of a worker's statistics."""
    return {
        "completion_rate": f"{stats.completion_rate * 100:.0f}%",
        "rating": f"{stats.avg_rating:.1f}/5.0",
        "response_time": f"{stats.response_time_minutes:g} min",
        "on_time_rate": f"{stats.on_time_rate * 100:.0f}%",
        "cancellation_rate": f"{stats.cancellation_rate * 100:.0f}%",
        "total_completed": stats.total_completed,
        "is_qualified": is_worker_qualified(stats),
        "on_time_warning": stats.on_time_rate < SCORING_THRESHOLDS.min_on_time_rate,
    }


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)
