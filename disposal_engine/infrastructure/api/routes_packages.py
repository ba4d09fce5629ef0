"""Case package endpoints — creation and status transitions."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from disposal_engine.application.use_cases.package_lifecycle import PackageLifecycleUseCase
from disposal_engine.domain.policies.status_machine import get_required_event, is_valid_transition
from disposal_engine.domain.value_objects.actor import Actor
from disposal_engine.domain.value_objects.enums import FlowEventType, PackageStatus
from disposal_engine.infrastructure.api.dependencies import get_actor, get_lifecycle_uc
from disposal_engine.infrastructure.api.schemas import (
    PackageRequest,
    TransitionRequest,
    serialize_package,
)

router = APIRouter(prefix="/packages", tags=["packages"])


@router.post("", status_code=201)
async def create_package(
    body: PackageRequest,
    uc: PackageLifecycleUseCase = Depends(get_lifecycle_uc),
    actor: Actor = Depends(get_actor),
):
    package = await uc.create(body.to_domain(), actor=actor)
    return serialize_package(package)


@router.get("/transitions/required-event")
async def required_event(current: PackageStatus, target: PackageStatus):
    """Event that moves a package from *current* to *target*, null when no direct edge."""
    event = get_required_event(current, target)
    return {
        "current": current.value,
        "target": target.value,
        "event": event.value if event else None,
    }


@router.get("/transitions/validate")
async def validate_transition(current: PackageStatus, target: PackageStatus, event: FlowEventType):
    return {
        "current": current.value,
        "target": target.value,
        "event": event.value,
        "valid": is_valid_transition(current, target, event),
    }


@router.get("/{package_id}")
async def get_package(package_id: int, uc: PackageLifecycleUseCase = Depends(get_lifecycle_uc)):
    return serialize_package(await uc.get(package_id))


@router.post("/{package_id}/transitions")
async def transition_package(
    package_id: int,
    body: TransitionRequest,
    uc: PackageLifecycleUseCase = Depends(get_lifecycle_uc),
    actor: Actor = Depends(get_actor),
):
    package = await uc.transition(
        package_id,
        body.event,
        actor=actor,
        description=body.description,
        target=body.target_status,
    )
    return serialize_package(package)


@router.get("/{package_id}/next-statuses")
async def next_statuses(package_id: int, uc: PackageLifecycleUseCase = Depends(get_lifecycle_uc)):
    steps = await uc.next_steps(package_id)
    return [{"status": s.status.value, "event": s.event.value} for s in steps]


@router.delete("/{package_id}", status_code=204)
async def delete_package(package_id: int, uc: PackageLifecycleUseCase = Depends(get_lifecycle_uc)):
    """Only drafts can be deleted."""
    await uc.delete_draft(package_id)
    return Response(status_code=204)
