"""FastAPI dependency injection — wires adapters into use cases."""

from __future__ import annotations

from fastapi import Depends, Header
from sqlalchemy.ext.asyncio import AsyncSession

from disposal_engine.adapters.persistence.database import get_session
from disposal_engine.adapters.persistence.repositories import (
    SqlAssignmentRuleRepository,
    SqlCasePackageRepository,
    SqlFlowRecordRepository,
    SqlOrganizationRepository,
    SqlUnitOfWork,
)
from disposal_engine.application.use_cases.assign_package import AssignPackageUseCase
from disposal_engine.application.use_cases.manage_rules import ManageRulesUseCase
from disposal_engine.application.use_cases.package_lifecycle import PackageLifecycleUseCase
from disposal_engine.application.use_cases.query_flows import QueryFlowsUseCase
from disposal_engine.config import settings
from disposal_engine.domain.value_objects.actor import SYSTEM_ACTOR, Actor


def get_actor(
    x_operator_id: int | None = Header(default=None),
    x_operator_name: str | None = Header(default=None),
    x_operator_org_id: int | None = Header(default=None),
) -> Actor:
    """Operator identity from request headers; the system actor when absent."""
    if x_operator_id is None and not x_operator_name:
        return SYSTEM_ACTOR
    return Actor(
        id=x_operator_id,
        name=x_operator_name or f"operator-{x_operator_id}",
        org_id=x_operator_org_id,
    )


def get_assign_uc(session: AsyncSession = Depends(get_session)) -> AssignPackageUseCase:
    return AssignPackageUseCase(
        package_repo=SqlCasePackageRepository(session),
        rule_repo=SqlAssignmentRuleRepository(session),
        organization_repo=SqlOrganizationRepository(session),
        flow_repo=SqlFlowRecordRepository(session),
        unit_of_work=SqlUnitOfWork(session),
        default_strategy=settings.default_strategy,
        thresholds=settings.selector_thresholds(),
        rule_update_retries=settings.rule_update_retries,
    )


def get_rules_uc(session: AsyncSession = Depends(get_session)) -> ManageRulesUseCase:
    return ManageRulesUseCase(
        rule_repo=SqlAssignmentRuleRepository(session),
        package_repo=SqlCasePackageRepository(session),
    )


def get_lifecycle_uc(session: AsyncSession = Depends(get_session)) -> PackageLifecycleUseCase:
    return PackageLifecycleUseCase(
        package_repo=SqlCasePackageRepository(session),
        flow_repo=SqlFlowRecordRepository(session),
    )


def get_flows_uc(session: AsyncSession = Depends(get_session)) -> QueryFlowsUseCase:
    return QueryFlowsUseCase(flow_repo=SqlFlowRecordRepository(session))
