"""Pydantic schemas for the transition and resource status API.

These schemas define the request/response shapes for the REST API. They are
separate from the domain dataclasses and ORM models to keep the HTTP contract
independent of both.

``resource_type`` is a plain string: an unregistered type reaches the guard
and comes back as a 400 UnknownResourceType error, not a 422.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------


class TransitionRequest(BaseModel):
    """Request body for checking or applying a status transition."""

    resource_type: str = Field(
        ...,
        description="Registered resource type",
        examples=["escrow"],
    )
    resource_id: str = Field(..., min_length=1, max_length=64)
    target_status: str = Field(
        ...,
        max_length=20,
        description="Status the caller wants to move the resource to",
        examples=["paid"],
    )
    actor: str = Field(
        default="system",
        max_length=64,
        description="User or service performing the change (recorded on apply)",
    )
    actor_id: str | None = Field(default=None, max_length=64)


class PublishTaskRequest(BaseModel):
    """Request body for publishing a pending task."""

    sla_hours: float | None = Field(
        default=None,
        gt=0,
        le=24 * 30,
        description="SLA window in hours; defaults to the task priority's window",
    )
    actor: str = Field(default="system", max_length=64)


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------


class TransitionCheckResponse(BaseModel):
    """Guard approved the transition. Nothing was written."""

    allowed: bool = True
    resource_type: str
    resource_id: str
    current_status: str
    target_status: str


class TransitionAppliedResponse(BaseModel):
    """Result of a guarded status write."""

    model_config = ConfigDict(from_attributes=True)

    resource_type: str
    resource_id: str
    previous_status: str
    status: str
    changed_at: datetime


class ResourceStatusResponse(BaseModel):
    """Current status of a resource and its next allowed statuses."""

    model_config = ConfigDict(from_attributes=True)

    resource_type: str
    resource_id: str
    status: str
    is_terminal: bool
    allowed_targets: list[str]


class AuditEntryResponse(BaseModel):
    """One entry from the transition audit log."""

    model_config = ConfigDict(from_attributes=True)

    resource_type: str
    record_id: str
    event_type: str
    status_before: str | None
    status_after: str
    actor: str
    actor_id: str | None
    metadata: dict
    created_at: datetime


class PublishTaskResponse(BaseModel):
    task_id: str
    previous_status: str
    status: str
    sla_deadline: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str = Field(..., examples=["ok"])
    version: str = Field(..., examples=["0.1.0"])
    database: str = Field(..., examples=["healthy"])
