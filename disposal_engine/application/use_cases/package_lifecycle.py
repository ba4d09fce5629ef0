"""PackageLifecycleUseCase — create packages and drive them through their statuses."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from disposal_engine.application.ports.case_package_repo import CasePackageRepository
from disposal_engine.application.ports.flow_repo import FlowRecordRepository
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from disposal_engine.domain.policies.status_machine import (
    get_possible_next_statuses,
    get_required_event,
    is_valid_transition,
    next_status,
)
from disposal_engine.domain.value_objects.actor import SYSTEM_ACTOR, Actor
from disposal_engine.domain.value_objects.enums import FlowEventType, PackageStatus

logger = logging.getLogger(__name__)

E = FlowEventType

_DEFAULT_DESCRIPTIONS = {
    E.PACKAGE_PUBLISHED: "Package published for assignment",
    E.PACKAGE_WITHDRAWN: "Package withdrawn to draft",
    E.PACKAGE_ACCEPTED: "Disposal organization accepted the package",
    E.PACKAGE_REJECTED: "Disposal organization rejected the package",
    E.PACKAGE_STARTED: "Disposal work started",
    E.PACKAGE_COMPLETED: "Disposal completed",
    E.PACKAGE_CANCELLED: "Package cancelled",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class NextStep:
    status: PackageStatus
    event: FlowEventType


class PackageLifecycleUseCase:
    """Every status change outside of assignment goes through ``transition``."""

    def __init__(
        self,
        package_repo: CasePackageRepository,
        flow_repo: FlowRecordRepository,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._packages = package_repo
        self._flows = flow_repo
        self._now = clock

    async def create(self, package: CasePackage, actor: Actor = SYSTEM_ACTOR) -> CasePackage:
        if not package.code or not package.code.strip():
            raise ValidationError("Package code is required")
        if package.case_count is None or package.case_count <= 0:
            raise ValidationError("case_count must be positive")
        if package.total_amount is None or package.total_amount < 0:
            raise ValidationError("total_amount cannot be negative")

        package.status = PackageStatus.DRAFT
        package.disposal_org_id = None
        package.version = 0
        saved = await self._packages.add(package)
        await self._flows.append(
            FlowRecord.package_event(
                package_id=saved.id,
                event_type=E.PACKAGE_CREATED,
                actor=actor,
                description=f"Package {saved.code} created with {saved.case_count} cases",
                at=self._now(),
                after=PackageStatus.DRAFT,
                amount=saved.total_amount,
            )
        )
        logger.info("Package %s (%s) created by %s", saved.id, saved.code, actor.name)
        return saved

    async def get(self, package_id: int) -> CasePackage:
        package = await self._packages.get_by_id(package_id)
        if package is None:
            raise NotFoundError("CasePackage", package_id)
        return package

    async def transition(
        self,
        package_id: int,
        event: FlowEventType,
        actor: Actor = SYSTEM_ACTOR,
        description: str | None = None,
        target: PackageStatus | None = None,
    ) -> CasePackage:
        """Apply *event* to the package and record exactly one flow entry.

        When *target* is given the edge for (current status, event) must lead
        there, otherwise the request is rejected without any change.
        """
        if event == E.PACKAGE_ASSIGNED:
            raise ValidationError("Packages are assigned through the assignment workflow")

        package = await self.get(package_id)
        if target is not None and not is_valid_transition(package.status, target, event):
            raise InvalidTransitionError(package.status, event, target)
        target = next_status(package.status, event)
        now = self._now()

        changes: dict = {"status": target}
        if event == E.PACKAGE_PUBLISHED:
            changes["published_at"] = now
        elif event == E.PACKAGE_ACCEPTED:
            changes["accepted_at"] = now
        elif event == E.PACKAGE_REJECTED:
            changes["disposal_org_id"] = None
            changes["assigned_at"] = None
        elif event in (E.PACKAGE_COMPLETED, E.PACKAGE_CANCELLED):
            changes["closed_at"] = now

        updated = dataclasses.replace(package, **changes)
        if not await self._packages.save(updated, expected_version=package.version):
            raise ConcurrentModificationError("CasePackage", package_id, package.version)

        await self._flows.append(
            FlowRecord.package_event(
                package_id=package_id,
                event_type=event,
                actor=actor,
                description=description or _DEFAULT_DESCRIPTIONS.get(event, event.value),
                at=now,
                before=package.status,
                after=target,
                amount=package.total_amount,
                disposal_org_id=package.disposal_org_id,
            )
        )
        logger.info(
            "Package %s: %s -> %s (%s by %s)",
            package_id, package.status.value, target.value, event.value, actor.name,
        )
        return updated

    async def next_steps(self, package_id: int) -> list[NextStep]:
        package = await self.get(package_id)
        return [
            NextStep(status=target, event=get_required_event(package.status, target))
            for target in get_possible_next_statuses(package.status)
        ]

    async def delete_draft(self, package_id: int) -> None:
        package = await self.get(package_id)
        if package.status != PackageStatus.DRAFT:
            raise InvalidTransitionError(package.status, "DELETE")
        if not await self._packages.delete(package_id, expected_version=package.version):
            raise ConcurrentModificationError("CasePackage", package_id, package.version)
        logger.info("Draft package %s deleted", package_id)
