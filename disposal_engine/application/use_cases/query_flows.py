"""QueryFlowsUseCase — read side of the flow/audit log."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from disposal_engine.application.ports.flow_repo import FlowQuery, FlowRecordRepository, Page
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.value_objects.enums import FlowEventType

MAX_PAGE_SIZE = 200


@dataclass
class FlowStatistics:
    total_events: int
    package_events: int
    case_events: int
    system_events: int
    by_event_type: dict[str, int] = field(default_factory=dict)


class QueryFlowsUseCase:
    def __init__(self, flow_repo: FlowRecordRepository):
        self._flows = flow_repo

    async def search(self, query: FlowQuery) -> Page:
        query.page = max(query.page, 0)
        query.size = min(max(query.size, 1), MAX_PAGE_SIZE)
        return await self._flows.search(query)

    async def by_package(self, package_id: int, page: int = 0, size: int = 20) -> Page:
        return await self.search(FlowQuery(package_id=package_id, page=page, size=size))

    async def by_case(self, case_id: int, page: int = 0, size: int = 20) -> Page:
        return await self.search(FlowQuery(case_id=case_id, page=page, size=size))

    async def by_operator(self, operator_id: int, page: int = 0, size: int = 20) -> Page:
        return await self.search(FlowQuery(operator_id=operator_id, page=page, size=size))

    async def by_organization(self, org_id: int, page: int = 0, size: int = 20) -> Page:
        return await self.search(FlowQuery(operator_org_id=org_id, page=page, size=size))

    async def by_event_types(
        self,
        event_types: list[FlowEventType],
        start: datetime | None = None,
        end: datetime | None = None,
        page: int = 0,
        size: int = 20,
    ) -> Page:
        return await self.search(
            FlowQuery(event_types=event_types, start=start, end=end, page=page, size=size)
        )

    async def timeline(self, package_id: int) -> list[FlowRecord]:
        return await self._flows.timeline(package_id)

    async def statistics(
        self, start: datetime | None = None, end: datetime | None = None
    ) -> FlowStatistics:
        counts = await self._flows.count_by_event_type(start, end)
        return FlowStatistics(
            total_events=sum(counts.values()),
            package_events=sum(n for e, n in counts.items() if e.is_package_event()),
            case_events=sum(n for e, n in counts.items() if e.is_case_event()),
            system_events=sum(n for e, n in counts.items() if e.is_system_event()),
            by_event_type={e.value: n for e, n in sorted(counts.items(), key=lambda kv: kv[0].value)},
        )
