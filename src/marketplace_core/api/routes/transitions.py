"""Transition and resource status REST API routes.

Thin consumers of the LifecycleService. Guard rejections surface as
LifecycleError and are turned into {code, error, kind} responses by
ErrorHandlerMiddleware.

Routes:
    POST   /api/v1/transitions/check                — Guard only, nothing written
    POST   /api/v1/transitions/apply                — Guarded conditional status write
    GET    /api/v1/resources/{type}/{id}/status     — Current status + allowed targets
    GET    /api/v1/resources/{type}/{id}/audit      — Audit trail
    POST   /api/v1/tasks/{id}/publish               — pending -> published with SLA deadline
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from marketplace_core.api.deps import get_lifecycle_service
from marketplace_core.domain.enums import ResourceType
from marketplace_core.logging_config import get_logger
from marketplace_core.schemas.lifecycle import (
    AuditEntryResponse,
    PublishTaskRequest,
    PublishTaskResponse,
    ResourceStatusResponse,
    TransitionAppliedResponse,
    TransitionCheckResponse,
    TransitionRequest,
)
from marketplace_core.services.lifecycle_service import LifecycleService

router = APIRouter(prefix="/api/v1", tags=["Lifecycle"])
logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Transitions
# ---------------------------------------------------------------------------


@router.post(
    "/transitions/check",
    response_model=TransitionCheckResponse,
    summary="Check whether a status transition is allowed",
)
async def check_transition(
    request: TransitionRequest,
    svc: LifecycleService = Depends(get_lifecycle_service),
) -> TransitionCheckResponse:
    """Run the transition guard. Rejections are audited and returned as 4xx."""
    current = await svc.check_transition(
        request.resource_type,
        request.resource_id,
        request.target_status,
        actor_id=request.actor_id,
    )
    return TransitionCheckResponse(
        resource_type=request.resource_type,
        resource_id=request.resource_id,
        current_status=current,
        target_status=request.target_status,
    )


@router.post(
    "/transitions/apply",
    response_model=TransitionAppliedResponse,
    summary="Apply a guarded status transition",
)
async def apply_transition(
    request: TransitionRequest,
    svc: LifecycleService = Depends(get_lifecycle_service),
) -> TransitionAppliedResponse:
    """Check the transition, then write it only if the status is still the one checked."""
    result = await svc.apply_transition(
        request.resource_type,
        request.resource_id,
        request.target_status,
        actor=request.actor,
        actor_id=request.actor_id,
    )
    return TransitionAppliedResponse.model_validate(result)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------


@router.get(
    "/resources/{resource_type}/{resource_id}/status",
    response_model=ResourceStatusResponse,
    summary="Get the current status of a resource",
)
async def get_resource_status(
    resource_type: str,
    resource_id: str,
    svc: LifecycleService = Depends(get_lifecycle_service),
) -> ResourceStatusResponse:
    status = await svc.get_status(resource_type, resource_id)
    return ResourceStatusResponse.model_validate(status)


@router.get(
    "/resources/{resource_type}/{resource_id}/audit",
    response_model=list[AuditEntryResponse],
    summary="Get the transition audit trail of a resource",
)
async def get_resource_audit(
    resource_type: str,
    resource_id: str,
    svc: LifecycleService = Depends(get_lifecycle_service),
) -> list[AuditEntryResponse]:
    """Return every recorded attempt for the resource, oldest first."""
    records = await svc.get_audit_trail(resource_type, resource_id)
    return [AuditEntryResponse.model_validate(record) for record in records]


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


@router.post(
    "/tasks/{task_id}/publish",
    response_model=PublishTaskResponse,
    summary="Publish a pending task and start its SLA clock",
)
async def publish_task(
    task_id: str,
    request: PublishTaskRequest | None = None,
    svc: LifecycleService = Depends(get_lifecycle_service),
) -> PublishTaskResponse:
    request = request or PublishTaskRequest()
    result = await svc.publish_task(task_id, sla_hours=request.sla_hours, actor=request.actor)
    logger.info("api.task_published", task_id=task_id, resource_type=ResourceType.TASK.value)
    return PublishTaskResponse(
        task_id=task_id,
        previous_status=result.previous_status,
        status=result.status,
        sla_deadline=result.values["sla_deadline"],
    )
