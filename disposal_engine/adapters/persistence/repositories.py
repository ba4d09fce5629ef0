"""SQLAlchemy repository implementations."""

from __future__ import annotations

import dataclasses

from sqlalchemy import delete, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from disposal_engine.adapters.persistence.models import (
    AssignmentRuleModel,
    CasePackageModel,
    FlowRecordModel,
    OrganizationModel,
)
from disposal_engine.application.ports.case_package_repo import CasePackageRepository
from disposal_engine.application.ports.flow_repo import FlowQuery, FlowRecordRepository, Page
from disposal_engine.application.ports.organization_repo import OrganizationRepository
from disposal_engine.application.ports.rule_repo import AssignmentRuleRepository
from disposal_engine.application.ports.unit_of_work import UnitOfWork
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.entities.organization import Organization
from disposal_engine.domain.value_objects.enums import (
    FlowEventType,
    OrganizationType,
    PackageStatus,
    RuleType,
)

# ─── Mappers ─────────────────────────────────────────────────────────


def _organization_to_domain(m: OrganizationModel) -> Organization:
    return Organization(
        id=m.id,
        name=m.name,
        type=OrganizationType(m.type),
        region=m.region,
        service_regions=set(m.service_regions) if m.service_regions else set(),
        monthly_capacity=m.monthly_capacity,
        current_load_percentage=m.current_load_percentage,
        membership_active=m.membership_active,
        contact_person=m.contact_person,
        contact_phone=m.contact_phone,
        email=m.email,
        cases_handled=m.cases_handled,
        years_active=m.years_active,
        recovery_rate=m.recovery_rate,
        avg_processing_days=m.avg_processing_days,
    )


def _package_to_domain(m: CasePackageModel) -> CasePackage:
    return CasePackage(
        id=m.id,
        code=m.code,
        name=m.name,
        case_count=m.case_count,
        total_amount=m.total_amount,
        source_org_id=m.source_org_id,
        status=PackageStatus(m.status),
        disposal_org_id=m.disposal_org_id,
        region=m.region,
        description=m.description,
        case_type=m.case_type,
        expected_disposal_days=m.expected_disposal_days,
        version=m.version,
        published_at=m.published_at,
        assigned_at=m.assigned_at,
        accepted_at=m.accepted_at,
        closed_at=m.closed_at,
    )


def _package_values(p: CasePackage) -> dict:
    return {
        "code": p.code,
        "name": p.name,
        "case_count": p.case_count,
        "total_amount": p.total_amount,
        "source_org_id": p.source_org_id,
        "disposal_org_id": p.disposal_org_id,
        "status": p.status.value,
        "region": p.region,
        "description": p.description,
        "case_type": p.case_type,
        "expected_disposal_days": p.expected_disposal_days,
        "published_at": p.published_at,
        "assigned_at": p.assigned_at,
        "accepted_at": p.accepted_at,
        "closed_at": p.closed_at,
    }


def _rule_to_domain(m: AssignmentRuleModel) -> AssignmentRule:
    return AssignmentRule(
        id=m.id,
        name=m.name,
        rule_type=RuleType(m.rule_type),
        priority=m.priority,
        enabled=m.enabled,
        min_matching_score=m.min_matching_score,
        description=m.description,
        target_amount_range=m.target_amount_range,
        target_regions=list(m.target_regions or []),
        target_case_types=list(m.target_case_types or []),
        include_organizations=list(m.include_organizations or []),
        exclude_organizations=list(m.exclude_organizations or []),
        strategy_name=m.strategy_name,
        max_assignments=m.max_assignments,
        usage_count=m.usage_count,
        success_count=m.success_count,
        last_used_at=m.last_used_at,
        created_by=m.created_by,
        version=m.version,
    )


def _rule_values(r: AssignmentRule) -> dict:
    return {
        "name": r.name,
        "rule_type": r.rule_type.value,
        "priority": r.priority,
        "enabled": r.enabled,
        "min_matching_score": r.min_matching_score,
        "description": r.description,
        "target_amount_range": r.target_amount_range,
        "target_regions": list(r.target_regions),
        "target_case_types": list(r.target_case_types),
        "include_organizations": list(r.include_organizations),
        "exclude_organizations": list(r.exclude_organizations),
        "strategy_name": r.strategy_name,
        "max_assignments": r.max_assignments,
        "usage_count": r.usage_count,
        "success_count": r.success_count,
        "last_used_at": r.last_used_at,
        "created_by": r.created_by,
    }


def _flow_to_domain(m: FlowRecordModel) -> FlowRecord:
    return FlowRecord(
        id=m.id,
        package_id=m.package_id,
        event_type=FlowEventType(m.event_type),
        event_time=m.event_time,
        operator_id=m.operator_id,
        operator_name=m.operator_name,
        description=m.description,
        operator_org_id=m.operator_org_id,
        disposal_org_id=m.disposal_org_id,
        case_id=m.case_id,
        before_status=m.before_status,
        after_status=m.after_status,
        amount=m.amount,
        is_system_event=m.is_system_event,
    )


# ─── Repositories ────────────────────────────────────────────────────


class SqlOrganizationRepository(OrganizationRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def save(self, organization: Organization) -> Organization:
        m = OrganizationModel(
            id=organization.id,
            name=organization.name,
            type=organization.type.value,
            region=organization.region,
            service_regions=sorted(organization.service_regions),
            monthly_capacity=organization.monthly_capacity,
            current_load_percentage=organization.current_load_percentage or 0.0,
            membership_active=organization.membership_active,
            contact_person=organization.contact_person,
            contact_phone=organization.contact_phone,
            email=organization.email,
            cases_handled=organization.cases_handled,
            years_active=organization.years_active,
            recovery_rate=organization.recovery_rate,
            avg_processing_days=organization.avg_processing_days,
        )
        m = await self._s.merge(m)
        await self._s.flush()
        organization.id = m.id
        return organization

    async def get_by_id(self, organization_id: int) -> Organization | None:
        m = await self._s.get(OrganizationModel, organization_id)
        return _organization_to_domain(m) if m else None

    async def get_by_name(self, name: str) -> Organization | None:
        result = await self._s.execute(
            select(OrganizationModel).where(OrganizationModel.name == name)
        )
        m = result.scalar_one_or_none()
        return _organization_to_domain(m) if m else None

    async def list_eligible(self) -> list[Organization]:
        result = await self._s.execute(
            select(OrganizationModel)
            .where(OrganizationModel.membership_active.is_(True))
            .order_by(OrganizationModel.id)
        )
        return [_organization_to_domain(m) for m in result.scalars()]

    async def increase_load(self, organization_id: int, delta_percentage: float) -> None:
        await self._s.execute(
            update(OrganizationModel)
            .where(OrganizationModel.id == organization_id)
            .values(
                current_load_percentage=func.least(
                    100.0, OrganizationModel.current_load_percentage + delta_percentage
                )
            )
        )
        await self._s.flush()


class SqlCasePackageRepository(CasePackageRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, package: CasePackage) -> CasePackage:
        m = CasePackageModel(version=package.version, **_package_values(package))
        self._s.add(m)
        await self._s.flush()
        package.id = m.id
        return package

    async def get_by_id(self, package_id: int) -> CasePackage | None:
        result = await self._s.execute(
            select(CasePackageModel)
            .where(CasePackageModel.id == package_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _package_to_domain(m) if m else None

    async def get_many(self, package_ids: list[int]) -> dict[int, CasePackage]:
        if not package_ids:
            return {}
        result = await self._s.execute(
            select(CasePackageModel).where(CasePackageModel.id.in_(package_ids))
        )
        return {m.id: _package_to_domain(m) for m in result.scalars()}

    async def save(self, package: CasePackage, expected_version: int) -> bool:
        result = await self._s.execute(
            update(CasePackageModel)
            .where(
                CasePackageModel.id == package.id,
                CasePackageModel.version == expected_version,
            )
            .values(version=expected_version + 1, **_package_values(package))
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()
        if result.rowcount != 1:
            return False
        package.version = expected_version + 1
        return True

    async def delete(self, package_id: int, expected_version: int) -> bool:
        result = await self._s.execute(
            delete(CasePackageModel).where(
                CasePackageModel.id == package_id,
                CasePackageModel.version == expected_version,
                CasePackageModel.status == PackageStatus.DRAFT.value,
            )
        )
        await self._s.flush()
        return result.rowcount == 1


class SqlAssignmentRuleRepository(AssignmentRuleRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def add(self, rule: AssignmentRule) -> AssignmentRule:
        m = AssignmentRuleModel(version=rule.version, **_rule_values(rule))
        self._s.add(m)
        await self._s.flush()
        rule.id = m.id
        return rule

    async def get_by_id(self, rule_id: int) -> AssignmentRule | None:
        result = await self._s.execute(
            select(AssignmentRuleModel)
            .where(AssignmentRuleModel.id == rule_id)
            .execution_options(populate_existing=True)
        )
        m = result.scalar_one_or_none()
        return _rule_to_domain(m) if m else None

    async def save(self, rule: AssignmentRule, expected_version: int) -> bool:
        result = await self._s.execute(
            update(AssignmentRuleModel)
            .where(
                AssignmentRuleModel.id == rule.id,
                AssignmentRuleModel.version == expected_version,
            )
            .values(version=expected_version + 1, **_rule_values(rule))
            .execution_options(synchronize_session=False)
        )
        await self._s.flush()
        if result.rowcount != 1:
            return False
        rule.version = expected_version + 1
        return True

    async def delete(self, rule_id: int) -> bool:
        result = await self._s.execute(
            delete(AssignmentRuleModel).where(AssignmentRuleModel.id == rule_id)
        )
        await self._s.flush()
        return result.rowcount == 1

    async def list(self, enabled_only: bool = False) -> list[AssignmentRule]:
        stmt = select(AssignmentRuleModel).order_by(
            AssignmentRuleModel.priority, AssignmentRuleModel.id
        )
        if enabled_only:
            stmt = stmt.where(AssignmentRuleModel.enabled.is_(True))
        result = await self._s.execute(stmt)
        return [_rule_to_domain(m) for m in result.scalars()]


class SqlFlowRecordRepository(FlowRecordRepository):
    def __init__(self, session: AsyncSession):
        self._s = session

    async def append(self, record: FlowRecord) -> FlowRecord:
        m = FlowRecordModel(
            package_id=record.package_id,
            case_id=record.case_id,
            event_type=record.event_type.value,
            event_time=record.event_time,
            operator_id=record.operator_id,
            operator_name=record.operator_name,
            operator_org_id=record.operator_org_id,
            disposal_org_id=record.disposal_org_id,
            description=record.description,
            before_status=record.before_status,
            after_status=record.after_status,
            amount=record.amount,
            is_system_event=record.is_system_event,
        )
        self._s.add(m)
        await self._s.flush()
        return dataclasses.replace(record, id=m.id)

    async def search(self, query: FlowQuery) -> Page:
        conditions = []
        if query.package_id is not None:
            conditions.append(FlowRecordModel.package_id == query.package_id)
        if query.case_id is not None:
            conditions.append(FlowRecordModel.case_id == query.case_id)
        if query.operator_id is not None:
            conditions.append(FlowRecordModel.operator_id == query.operator_id)
        if query.operator_org_id is not None:
            conditions.append(FlowRecordModel.operator_org_id == query.operator_org_id)
        if query.disposal_org_id is not None:
            conditions.append(FlowRecordModel.disposal_org_id == query.disposal_org_id)
        if query.event_types:
            conditions.append(
                FlowRecordModel.event_type.in_([e.value for e in query.event_types])
            )
        if query.start is not None:
            conditions.append(FlowRecordModel.event_time >= query.start)
        if query.end is not None:
            conditions.append(FlowRecordModel.event_time <= query.end)

        total = await self._s.scalar(
            select(func.count()).select_from(FlowRecordModel).where(*conditions)
        )
        result = await self._s.execute(
            select(FlowRecordModel)
            .where(*conditions)
            .order_by(FlowRecordModel.event_time.desc(), FlowRecordModel.id.desc())
            .offset(query.page * query.size)
            .limit(query.size)
        )
        return Page(
            items=[_flow_to_domain(m) for m in result.scalars()],
            total=total or 0,
            page=query.page,
            size=query.size,
        )

    async def timeline(self, package_id: int) -> list[FlowRecord]:
        result = await self._s.execute(
            select(FlowRecordModel)
            .where(FlowRecordModel.package_id == package_id)
            .order_by(FlowRecordModel.event_time, FlowRecordModel.id)
        )
        return [_flow_to_domain(m) for m in result.scalars()]

    async def count_by_event_type(
        self, start, end, disposal_org_id: int | None = None
    ) -> dict[FlowEventType, int]:
        stmt = select(FlowRecordModel.event_type, func.count()).group_by(
            FlowRecordModel.event_type
        )
        if disposal_org_id is not None:
            stmt = stmt.where(FlowRecordModel.disposal_org_id == disposal_org_id)
        if start is not None:
            stmt = stmt.where(FlowRecordModel.event_time >= start)
        if end is not None:
            stmt = stmt.where(FlowRecordModel.event_time <= end)
        result = await self._s.execute(stmt)
        return {FlowEventType(event_type): count for event_type, count in result.all()}


class SqlUnitOfWork(UnitOfWork):
    """Transaction boundary over the request session the repositories share."""

    def __init__(self, session: AsyncSession):
        self._s = session

    async def commit(self) -> None:
        await self._s.commit()

    async def rollback(self) -> None:
        await self._s.rollback()
