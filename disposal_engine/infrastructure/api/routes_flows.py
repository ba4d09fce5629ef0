"""Flow/audit log endpoints."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from disposal_engine.application.use_cases.query_flows import QueryFlowsUseCase
from disposal_engine.domain.value_objects.enums import FlowEventType
from disposal_engine.infrastructure.api.dependencies import get_flows_uc
from disposal_engine.infrastructure.api.schemas import serialize_flow, serialize_page

router = APIRouter(prefix="/flows", tags=["flows"])


@router.get("/packages/{package_id}")
async def package_flows(
    package_id: int, page: int = 0, size: int = 20, uc: QueryFlowsUseCase = Depends(get_flows_uc)
):
    return serialize_page(await uc.by_package(package_id, page, size))


@router.get("/packages/{package_id}/timeline")
async def package_timeline(package_id: int, uc: QueryFlowsUseCase = Depends(get_flows_uc)):
    """Oldest first."""
    records = await uc.timeline(package_id)
    return {"package_id": package_id, "events": [serialize_flow(r) for r in records]}


@router.get("/cases/{case_id}")
async def case_flows(
    case_id: int, page: int = 0, size: int = 20, uc: QueryFlowsUseCase = Depends(get_flows_uc)
):
    return serialize_page(await uc.by_case(case_id, page, size))


@router.get("/operators/{operator_id}")
async def operator_flows(
    operator_id: int, page: int = 0, size: int = 20, uc: QueryFlowsUseCase = Depends(get_flows_uc)
):
    return serialize_page(await uc.by_operator(operator_id, page, size))


@router.get("/organizations/{org_id}")
async def organization_flows(
    org_id: int, page: int = 0, size: int = 20, uc: QueryFlowsUseCase = Depends(get_flows_uc)
):
    return serialize_page(await uc.by_organization(org_id, page, size))


@router.get("/events")
async def flows_by_event_type(
    event_type: list[FlowEventType] = Query(default=[]),
    start: datetime | None = None,
    end: datetime | None = None,
    page: int = 0,
    size: int = 20,
    uc: QueryFlowsUseCase = Depends(get_flows_uc),
):
    return serialize_page(await uc.by_event_types(event_type, start, end, page, size))


@router.get("/statistics")
async def flow_statistics(
    start: datetime | None = None,
    end: datetime | None = None,
    uc: QueryFlowsUseCase = Depends(get_flows_uc),
):
    stats = await uc.statistics(start, end)
    return {
        "total_events": stats.total_events,
        "package_events": stats.package_events,
        "case_events": stats.case_events,
        "system_events": stats.system_events,
        "by_event_type": stats.by_event_type,
    }
