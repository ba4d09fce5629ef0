"""Request bodies and response serializers shared by the routers."""

from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from disposal_engine.application.ports.flow_repo import Page
from disposal_engine.domain.entities.assignment import (
    AssignmentCandidate,
    AssignmentResult,
    AssignmentStatistics,
    CapabilityProfile,
)
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.value_objects.enums import FlowEventType, PackageStatus, RuleType

# ─── Requests ────────────────────────────────────────────────────────


class AutoAssignRequest(BaseModel):
    rule_id: int
    strategy: str | None = None


class BatchAssignRequest(BaseModel):
    package_ids: list[int] = Field(min_length=1)
    strategy: str | None = None
    rule_id: int | None = None


class RuleRequest(BaseModel):
    name: str
    rule_type: RuleType = RuleType.AUTO
    priority: int = 100
    enabled: bool = True
    min_matching_score: float = 0.0
    description: str | None = None
    target_amount_range: str | None = None
    target_regions: list[str] = Field(default_factory=list)
    target_case_types: list[str] = Field(default_factory=list)
    include_organizations: list[int] = Field(default_factory=list)
    exclude_organizations: list[int] = Field(default_factory=list)
    strategy_name: str | None = None
    max_assignments: int | None = None

    def to_domain(self) -> AssignmentRule:
        return AssignmentRule(id=None, **self.model_dump())


class RuleUpdateRequest(BaseModel):
    """Partial update; only the fields present in the body are changed."""

    name: str | None = None
    rule_type: RuleType | None = None
    priority: int | None = None
    enabled: bool | None = None
    min_matching_score: float | None = None
    description: str | None = None
    target_amount_range: str | None = None
    target_regions: list[str] | None = None
    target_case_types: list[str] | None = None
    include_organizations: list[int] | None = None
    exclude_organizations: list[int] | None = None
    strategy_name: str | None = None
    max_assignments: int | None = None
    version: int | None = None


class PackageRequest(BaseModel):
    code: str
    name: str
    case_count: int
    total_amount: Decimal
    source_org_id: int | None = None
    region: str | None = None
    description: str | None = None
    case_type: str | None = None
    expected_disposal_days: int | None = None

    def to_domain(self) -> CasePackage:
        return CasePackage(id=None, **self.model_dump())


class TransitionRequest(BaseModel):
    event: FlowEventType
    # status the caller expects the package to land in
    target_status: PackageStatus | None = None
    description: str | None = None


# ─── Serializers ─────────────────────────────────────────────────────


def serialize_candidate(c: AssignmentCandidate) -> dict:
    return {
        "rank": c.rank,
        "organization_id": c.organization_id,
        "organization_name": c.organization_name,
        "score": c.score,
        "detail_scores": c.detail_scores,
        "strengths": c.strengths,
        "weaknesses": c.weaknesses,
        "recommendation": c.recommendation,
        "current_load": c.current_load,
    }


def serialize_result(r: AssignmentResult) -> dict:
    return {
        "success": r.success,
        "package_id": r.package_id,
        "organization_id": r.organization_id,
        "organization_name": r.organization_name,
        "score": r.score,
        "strategy": r.strategy,
        "reason": r.reason,
        "failure": r.failure.value if r.failure else None,
    }


def serialize_rule(r: AssignmentRule) -> dict:
    return {
        "id": r.id,
        "name": r.name,
        "rule_type": r.rule_type.value,
        "priority": r.priority,
        "enabled": r.enabled,
        "min_matching_score": r.min_matching_score,
        "description": r.description,
        "target_amount_range": r.target_amount_range,
        "target_regions": r.target_regions,
        "target_case_types": r.target_case_types,
        "include_organizations": r.include_organizations,
        "exclude_organizations": r.exclude_organizations,
        "strategy_name": r.strategy_name,
        "max_assignments": r.max_assignments,
        "usage_count": r.usage_count,
        "success_count": r.success_count,
        "success_rate": round(r.success_rate(), 2),
        "last_used_at": r.last_used_at.isoformat() if r.last_used_at else None,
        "created_by": r.created_by,
        "version": r.version,
    }


def serialize_package(p: CasePackage) -> dict:
    return {
        "id": p.id,
        "code": p.code,
        "name": p.name,
        "status": p.status.value,
        "case_count": p.case_count,
        "total_amount": str(p.total_amount),
        "source_org_id": p.source_org_id,
        "disposal_org_id": p.disposal_org_id,
        "region": p.region,
        "case_type": p.case_type,
        "expected_disposal_days": p.expected_disposal_days,
        "version": p.version,
        "published_at": p.published_at.isoformat() if p.published_at else None,
        "assigned_at": p.assigned_at.isoformat() if p.assigned_at else None,
        "accepted_at": p.accepted_at.isoformat() if p.accepted_at else None,
        "closed_at": p.closed_at.isoformat() if p.closed_at else None,
    }


def serialize_flow(f: FlowRecord) -> dict:
    return {
        "id": f.id,
        "package_id": f.package_id,
        "case_id": f.case_id,
        "event_type": f.event_type.value,
        "event_time": f.event_time.isoformat(),
        "operator_id": f.operator_id,
        "operator_name": f.operator_name,
        "operator_org_id": f.operator_org_id,
        "disposal_org_id": f.disposal_org_id,
        "description": f.description,
        "before_status": f.before_status,
        "after_status": f.after_status,
        "amount": str(f.amount) if f.amount is not None else None,
        "is_system_event": f.is_system_event,
    }


def serialize_statistics(s: AssignmentStatistics) -> dict:
    return {
        "organization_id": s.organization_id,
        "start": s.start.isoformat() if s.start else None,
        "end": s.end.isoformat() if s.end else None,
        "assigned_count": s.assigned_count,
        "accepted_count": s.accepted_count,
        "rejected_count": s.rejected_count,
        "completed_count": s.completed_count,
        "acceptance_rate": s.acceptance_rate,
        "rule_attempts": s.rule_attempts,
        "rule_successes": s.rule_successes,
        "rule_success_rate": s.rule_success_rate,
    }


def serialize_profile(p: CapabilityProfile) -> dict:
    return {
        "organization_id": p.organization_id,
        "organization_name": p.organization_name,
        "organization_type": p.organization_type,
        "current_load": p.current_load,
        "eligible": p.eligible,
        "overall_capability": p.overall_capability,
        "scores": {
            "capacity": p.capacity_score,
            "experience": p.experience_score,
            "performance": p.performance_score,
            "availability": p.availability_score,
        },
        "service_regions": p.service_regions,
        "strengths": p.strengths,
        "weaknesses": p.weaknesses,
        "statistics": serialize_statistics(p.statistics) if p.statistics else None,
    }


def serialize_page(page: Page) -> dict:
    return {
        "total": page.total,
        "page": page.page,
        "size": page.size,
        "items": [serialize_flow(f) for f in page.items],
    }
