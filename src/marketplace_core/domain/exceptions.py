"""Domain exceptions for the marketplace lifecycle core.

These exceptions are framework-agnostic and represent business rule violations.
Each carries a ``kind``, a numeric ``code`` (HTTP-style) and a human message so
callers can branch on ``code`` instead of parsing strings. They are caught and
translated to HTTP responses by the API layer's middleware.
"""

from __future__ import annotations


class LifecycleError(Exception):
    """Base exception for all domain errors."""

    kind = "LifecycleError"

    def __init__(self, message: str, code: int = 500) -> None:
        self.message = message
        self.code = code
        super().__init__(self.message)

    @property
    def error(self) -> str:
        """The human-readable message (alias kept for the {code, error} shape)."""
        return self.message

    def to_dict(self) -> dict:
        return {"code": self.code, "error": self.message, "kind": self.kind}


# --- Guard Errors ---


class UnknownResourceTypeError(LifecycleError):
    """Raised when a resource type has no registered transition table."""

    kind = "UnknownResourceType"

    def __init__(self, resource_type: str) -> None:
        super().__init__(message=f"Unknown resource type: {resource_type}", code=400)
        self.resource_type = resource_type


class ResourceNotFoundError(LifecycleError):
    """Raised when the resource id does not exist in the backing store."""

    kind = "ResourceNotFound"

    def __init__(self, resource_type: str, resource_id: str) -> None:
        super().__init__(
            message=f"{resource_type.capitalize()} {resource_id} not found",
            code=404,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id


class TerminalStateViolationError(LifecycleError):
    """Raised when the resource already sits in a terminal status.

    Example: escrow 'released' -> 'refunded'. Never retried automatically.
    """

    kind = "TerminalStateViolation"

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            message=f"Cannot transition from terminal state '{current_status}'",
            code=409,
        )
        self.current_status = current_status
        self.target_status = target_status


class InvalidTransitionError(LifecycleError):
    """Raised when the target is not on the allowed edge list of the current status.

    Example: escrow 'pending' -> 'released' (must be paid first).
    """

    kind = "InvalidTransition"

    def __init__(self, current_status: str, target_status: str) -> None:
        super().__init__(
            message=f"Invalid transition: {current_status} -> {target_status}",
            code=409,
        )
        self.current_status = current_status
        self.target_status = target_status


class StaleTransitionError(LifecycleError):
    """Raised when a guard-approved transition lost a race at write time.

    The status changed between the guard's read and the conditional write;
    the guard has to be re-run against the new status.
    """

    kind = "StaleTransition"

    def __init__(self, resource_type: str, resource_id: str, expected_status: str) -> None:
        super().__init__(
            message=(
                f"{resource_type.capitalize()} {resource_id} changed concurrently "
                f"(expected status '{expected_status}')"
            ),
            code=409,
        )
        self.resource_type = resource_type
        self.resource_id = resource_id
        self.expected_status = expected_status


class ResourceStateUnavailableError(LifecycleError):
    """Raised when the current status cannot be read from the store."""

    kind = "ResourceStateUnavailable"

    def __init__(self, resource_type: str) -> None:
        super().__init__(message=f"Failed to verify {resource_type} state", code=500)
        self.resource_type = resource_type


# --- Matching Errors ---


class WorkerStatsNotFoundError(LifecycleError):
    """Raised when no aggregated statistics exist for a worker."""

    kind = "WorkerStatsNotFound"

    def __init__(self, worker_id: str) -> None:
        super().__init__(message=f"No statistics for worker {worker_id}", code=404)
        self.worker_id = worker_id


# --- Definition Errors ---


class TransitionTableError(LifecycleError):
    """Raised when a transition table fails its consistency check."""

    kind = "TransitionTableError"

    def __init__(self, resource_type: str, problems: list[str]) -> None:
        super().__init__(
            message=f"Inconsistent transition table for {resource_type}: {'; '.join(problems)}",
            code=500,
        )
        self.problems = problems
