"""Assignment endpoints — recommendations, assessment, auto and batch assignment."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Query

from disposal_engine.application.use_cases.assign_package import AssignPackageUseCase
from disposal_engine.config import settings
from disposal_engine.domain.policies.strategy_selector import list_strategies
from disposal_engine.domain.value_objects.actor import Actor
from disposal_engine.infrastructure.api.dependencies import get_actor, get_assign_uc
from disposal_engine.infrastructure.api.schemas import (
    AutoAssignRequest,
    BatchAssignRequest,
    serialize_candidate,
    serialize_profile,
    serialize_result,
    serialize_statistics,
)

router = APIRouter(prefix="/assignment", tags=["assignment"])


@router.get("/packages/{package_id}/recommendations")
async def get_recommendations(
    package_id: int,
    limit: int | None = Query(default=None, ge=1, le=100),
    strategy: str | None = None,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
):
    """Ranked candidate organizations for a package. Read-only."""
    recommendation = await uc.recommend(
        package_id, limit=limit or settings.recommendation_limit, strategy_name=strategy
    )
    return {
        "package_id": package_id,
        "strategy": recommendation.strategy,
        "fallback_used": recommendation.fallback_used,
        "candidates": [serialize_candidate(c) for c in recommendation.candidates],
    }


@router.post("/packages/{package_id}/auto-assign")
async def auto_assign(
    package_id: int,
    body: AutoAssignRequest,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
    actor: Actor = Depends(get_actor),
):
    """Assign a package under a rule to the best-ranked organization."""
    result = await uc.auto_assign(
        package_id, body.rule_id, actor=actor, strategy_name=body.strategy
    )
    return serialize_result(result)


@router.post("/batch")
async def batch_assign(
    body: BatchAssignRequest,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
    actor: Actor = Depends(get_actor),
):
    """Assign many packages; per-package failures are reported, not raised."""
    batch = await uc.batch_assign(
        body.package_ids, strategy_name=body.strategy, actor=actor, rule_id=body.rule_id
    )
    return {
        "total_count": batch.total_count,
        "success_count": batch.success_count,
        "failed_count": batch.failed_count,
        "success_rate": batch.success_rate,
        "strategy": batch.strategy,
        "processed_at": batch.processed_at.isoformat(),
        "results": [serialize_result(r) for r in batch.results],
    }


@router.get("/assessment")
async def assess_matching(
    organization_id: int,
    package_id: int,
    strategy: str | None = None,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
):
    """Detailed score breakdown of one organization against one package."""
    a = await uc.assess(organization_id, package_id, strategy_name=strategy)
    return {
        "organization_id": a.organization_id,
        "package_id": package_id,
        "strategy": a.strategy,
        "overall_score": a.overall_score,
        "detail_scores": a.detail_scores(),
        "strengths": a.strengths,
        "weaknesses": a.weaknesses,
        "recommendation": a.recommendation,
    }


@router.get("/statistics")
async def assignment_statistics(
    organization_id: int | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
):
    """Assignment outcome counts and the rule success rate."""
    stats = await uc.assignment_statistics(organization_id, start=start, end=end)
    return serialize_statistics(stats)


@router.get("/capability-profile/{organization_id}")
async def capability_profile(
    organization_id: int,
    uc: AssignPackageUseCase = Depends(get_assign_uc),
):
    return serialize_profile(await uc.capability_profile(organization_id))


@router.get("/strategies")
async def get_strategies():
    return [
        {
            "name": s.name.value,
            "description": s.description,
            "weights": s.weights.as_dict(),
            "default": s.name == settings.default_strategy,
        }
        for s in list_strategies()
    ]
