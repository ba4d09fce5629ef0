"""FlowRecord entity — an immutable audit entry."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from disposal_engine.domain.value_objects.actor import Actor
from disposal_engine.domain.value_objects.enums import FlowEventType, PackageStatus


@dataclass(frozen=True)
class FlowRecord:
    id: int | None
    package_id: int
    event_type: FlowEventType
    event_time: datetime
    operator_id: int | None
    operator_name: str
    description: str
    operator_org_id: int | None = None
    disposal_org_id: int | None = None
    case_id: int | None = None
    before_status: str | None = None
    after_status: str | None = None
    amount: Decimal | None = None
    is_system_event: bool = False

    @classmethod
    def package_event(
        cls,
        package_id: int,
        event_type: FlowEventType,
        actor: Actor,
        description: str,
        at: datetime,
        before: PackageStatus | None = None,
        after: PackageStatus | None = None,
        amount: Decimal | None = None,
        disposal_org_id: int | None = None,
    ) -> FlowRecord:
        return cls(
            id=None,
            package_id=package_id,
            event_type=event_type,
            event_time=at,
            operator_id=actor.id,
            operator_name=actor.name,
            operator_org_id=actor.org_id,
            disposal_org_id=disposal_org_id,
            description=description,
            before_status=before.value if before else None,
            after_status=after.value if after else None,
            amount=amount,
            is_system_event=actor.is_system,
        )
