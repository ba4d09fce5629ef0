"""Tests for AssignPackageUseCase with in-memory fakes."""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from disposal_engine.application.use_cases.assign_package import AssignPackageUseCase
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.errors import (
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
)
from disposal_engine.domain.value_objects.actor import Actor
from disposal_engine.domain.value_objects.enums import (
    FailureKind,
    FlowEventType,
    PackageStatus,
)
from tests.fakes import (
    FakeFlowRepo,
    FakeOrganizationRepo,
    FakePackageRepo,
    FakeRuleRepo,
    FakeUnitOfWork,
    make_org,
    make_package,
    make_rule,
)

NOW = datetime(2026, 3, 1, 9, 30, tzinfo=timezone.utc)


# ─── Fixtures ────────────────────────────────────────────────────────


@pytest.fixture
def orgs():
    return FakeOrganizationRepo([
        make_org(1),
        make_org(2, current_load_percentage=60, recovery_rate=0.5),
    ])


@pytest.fixture
def packages():
    return FakePackageRepo([
        make_package(1, total_amount=Decimal("5000000")),
        make_package(2),
        make_package(3, status=PackageStatus.DRAFT),
    ])


@pytest.fixture
def rules():
    return FakeRuleRepo([
        make_rule(1, target_amount_range="1000000-10000000", min_matching_score=0.7),
        make_rule(2, target_amount_range="1000000-10000000", min_matching_score=0.9),
        make_rule(3, enabled=False),
    ])


@pytest.fixture
def flows():
    return FakeFlowRepo()


@pytest.fixture
def uow(packages, rules, orgs, flows):
    return FakeUnitOfWork(packages, rules, orgs, flows)


@pytest.fixture
def uc(packages, rules, orgs, flows, uow):
    return AssignPackageUseCase(
        package_repo=packages,
        rule_repo=rules,
        organization_repo=orgs,
        flow_repo=flows,
        unit_of_work=uow,
        clock=lambda: NOW,
    )


# ─── Auto-assign ─────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_auto_assign_success(uc, packages, rules, orgs, flows):
    actor = Actor(id=42, name="dispatcher", org_id=9)
    result = await uc.auto_assign(1, rule_id=1, actor=actor)

    assert result.success
    assert result.organization_id == 1
    assert result.strategy == "PERFORMANCE"
    assert result.score == pytest.approx(0.8918, abs=1e-4)

    stored = packages.packages[1]
    assert stored.status == PackageStatus.ASSIGNED
    assert stored.disposal_org_id == 1
    assert stored.assigned_at == NOW
    assert stored.version == 1

    rule = rules.rules[1]
    assert (rule.usage_count, rule.success_count) == (1, 1)
    assert rule.last_used_at == NOW

    assert orgs.organizations[1].current_load_percentage == pytest.approx(30.0)

    assert len(flows.records) == 1
    record = flows.records[0]
    assert record.event_type == FlowEventType.PACKAGE_ASSIGNED
    assert (record.before_status, record.after_status) == ("PUBLISHED", "ASSIGNED")
    assert (record.operator_id, record.operator_org_id) == (42, 9)
    assert record.disposal_org_id == 1
    assert record.amount == Decimal("5000000")


@pytest.mark.asyncio
async def test_auto_assign_below_threshold(uc, packages, rules, flows):
    result = await uc.auto_assign(1, rule_id=2)

    assert not result.success
    assert result.failure == FailureKind.BELOW_THRESHOLD
    assert "below minimum" in result.reason
    assert result.organization_id == 1
    assert packages.packages[1].status == PackageStatus.PUBLISHED
    assert packages.packages[1].version == 0
    assert (rules.rules[2].usage_count, rules.rules[2].success_count) == (1, 0)
    assert flows.records == []


@pytest.mark.asyncio
async def test_auto_assign_rule_mismatch(uc, packages, rules, flows):
    result = await uc.auto_assign(2, rule_id=1)

    assert not result.success
    assert result.failure == FailureKind.RULE_MISMATCH
    assert "outside" in result.reason
    assert packages.packages[2].status == PackageStatus.PUBLISHED
    assert rules.rules[1].usage_count == 1
    assert flows.records == []


@pytest.mark.asyncio
async def test_disabled_rule_never_assigns(uc, packages):
    result = await uc.auto_assign(2, rule_id=3)
    assert result.failure == FailureKind.RULE_MISMATCH
    assert "Rule is disabled" in result.reason
    assert packages.packages[2].disposal_org_id is None


@pytest.mark.asyncio
async def test_exclude_list_skips_best_candidate(uc, rules):
    rules.rules[1].exclude_organizations = [1]
    rules.rules[1].min_matching_score = 0.0
    result = await uc.auto_assign(1, rule_id=1)
    assert result.success
    assert result.organization_id == 2


@pytest.mark.asyncio
async def test_no_eligible_candidate(uc, orgs, rules):
    orgs.organizations[1].current_load_percentage = 100
    orgs.organizations[2].membership_active = False
    result = await uc.auto_assign(1, rule_id=1)
    assert result.failure == FailureKind.NO_ELIGIBLE_CANDIDATE
    assert rules.rules[1].success_count == 0


@pytest.mark.asyncio
async def test_explicit_strategy_overrides_inference(uc):
    result = await uc.auto_assign(1, rule_id=1, strategy_name="geographic")
    assert result.strategy == "GEOGRAPHIC"


@pytest.mark.asyncio
async def test_rule_strategy_used_when_none_requested(uc, rules):
    rules.rules[1].strategy_name = "LOAD_BALANCE"
    result = await uc.auto_assign(1, rule_id=1)
    assert result.strategy == "LOAD_BALANCE"


@pytest.mark.asyncio
async def test_unknown_strategy_falls_back(uc):
    result = await uc.auto_assign(1, rule_id=1, strategy_name="FASTEST")
    assert result.success
    assert result.strategy == "INTELLIGENT"


@pytest.mark.asyncio
async def test_second_assignment_is_invalid_transition(uc, packages, rules, flows):
    first = await uc.auto_assign(1, rule_id=1)
    assert first.success

    with pytest.raises(InvalidTransitionError):
        await uc.auto_assign(1, rule_id=1)

    assert packages.packages[1].disposal_org_id == first.organization_id
    assert packages.packages[1].version == 1
    assert (rules.rules[1].usage_count, rules.rules[1].success_count) == (2, 1)
    assert len(flows.records) == 1


@pytest.mark.asyncio
async def test_draft_package_cannot_be_assigned(uc):
    with pytest.raises(InvalidTransitionError):
        await uc.auto_assign(3, rule_id=1)


@pytest.mark.asyncio
async def test_unknown_package_or_rule(uc):
    with pytest.raises(NotFoundError):
        await uc.auto_assign(404, rule_id=1)
    with pytest.raises(NotFoundError):
        await uc.auto_assign(1, rule_id=404)


@pytest.mark.asyncio
async def test_concurrent_assignments_commit_once(uc, packages, rules, flows):
    outcomes = await asyncio.gather(
        uc.auto_assign(1, rule_id=1),
        uc.auto_assign(1, rule_id=1),
        return_exceptions=True,
    )

    successes = [o for o in outcomes if not isinstance(o, Exception) and o.success]
    conflicts = [o for o in outcomes if isinstance(o, ConcurrentModificationError)]
    assert len(successes) == 1
    assert len(conflicts) == 1
    assert conflicts[0].retryable

    assert packages.packages[1].version == 1
    assert len(flows.records) == 1
    assert (rules.rules[1].usage_count, rules.rules[1].success_count) == (2, 1)


@pytest.mark.asyncio
async def test_rule_counters_survive_conflicting_writers(uc, rules):
    rules.conflicts_to_inject = 2
    result = await uc.auto_assign(1, rule_id=1)
    assert result.success
    assert (rules.rules[1].usage_count, rules.rules[1].success_count) == (1, 1)


# ─── Batch ───────────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_batch_isolates_missing_package(uc, packages):
    batch = await uc.batch_assign([1, 404, 2])

    assert batch.total_count == 3
    assert batch.success_count == 2
    assert batch.failed_count == 1
    assert batch.success_rate == pytest.approx(66.67)
    assert batch.processed_at == NOW
    assert [r.package_id for r in batch.results] == [1, 404, 2]
    assert batch.results[1].failure == FailureKind.NOT_FOUND
    assert packages.packages[2].status == PackageStatus.ASSIGNED


@pytest.mark.asyncio
async def test_batch_reports_invalid_transition(uc):
    batch = await uc.batch_assign([3, 2])
    assert batch.results[0].failure == FailureKind.INVALID_TRANSITION
    assert batch.results[1].success


@pytest.mark.asyncio
async def test_batch_without_rule_leaves_rules_untouched(uc, rules):
    await uc.batch_assign([1, 2])
    assert all(r.usage_count == 0 for r in rules.rules.values())


@pytest.mark.asyncio
async def test_batch_with_rule_applies_it_per_package(uc, rules):
    batch = await uc.batch_assign([1, 2], rule_id=1)
    assert batch.results[0].success
    assert batch.results[1].failure == FailureKind.RULE_MISMATCH
    assert (rules.rules[1].usage_count, rules.rules[1].success_count) == (2, 1)


@pytest.mark.asyncio
async def test_batch_unknown_rule_rejected_up_front(uc, packages):
    with pytest.raises(NotFoundError):
        await uc.batch_assign([1, 2], rule_id=404)
    assert packages.packages[1].status == PackageStatus.PUBLISHED


@pytest.mark.asyncio
async def test_batch_survives_unexpected_errors(packages, rules, orgs):
    class ExplodingFlows(FakeFlowRepo):
        async def append(self, record):
            if record.package_id == 1:
                raise RuntimeError("disk full")
            return await super().append(record)

    flows = ExplodingFlows()
    uow = FakeUnitOfWork(packages, rules, orgs, flows)
    uc = AssignPackageUseCase(packages, rules, orgs, flows, uow, clock=lambda: NOW)
    batch = await uc.batch_assign([1, 2])
    assert batch.results[0].failure == FailureKind.UNEXPECTED
    assert "disk full" in batch.results[0].reason
    assert batch.results[1].success

    # the failed package is rolled back whole: no half-committed assignment
    assert packages.packages[1].status == PackageStatus.PUBLISHED
    assert packages.packages[1].disposal_org_id is None
    assert packages.packages[1].version == 0
    assert [r.package_id for r in flows.records] == [2]
    assert packages.packages[2].status == PackageStatus.ASSIGNED
    assert orgs.organizations[1].current_load_percentage == pytest.approx(30.0)
    assert (uow.commits, uow.rollbacks) == (1, 1)


@pytest.mark.asyncio
async def test_auto_assign_rolls_back_when_audit_write_fails(packages, rules, orgs):
    class ExplodingFlows(FakeFlowRepo):
        async def append(self, record):
            raise RuntimeError("disk full")

    flows = ExplodingFlows()
    uow = FakeUnitOfWork(packages, rules, orgs, flows)
    uc = AssignPackageUseCase(packages, rules, orgs, flows, uow, clock=lambda: NOW)

    with pytest.raises(RuntimeError):
        await uc.auto_assign(1, rule_id=1)

    assert packages.packages[1].status == PackageStatus.PUBLISHED
    assert packages.packages[1].version == 0
    assert rules.rules[1].usage_count == 0
    assert orgs.organizations[1].current_load_percentage == pytest.approx(20.0)
    assert uow.rollbacks == 1


@pytest.mark.asyncio
async def test_batch_commits_each_package_separately(uc, uow):
    batch = await uc.batch_assign([1, 404, 2, 3])
    assert batch.success_count == 2
    # one commit per package that reached assignment; the missing one never did
    assert uow.commits == 3
    assert uow.rollbacks == 0


@pytest.mark.asyncio
async def test_batch_spreads_load_across_packages(packages, rules, flows):
    orgs = FakeOrganizationRepo([
        make_org(1, monthly_capacity=200, current_load_percentage=0),
        make_org(2, monthly_capacity=200, current_load_percentage=0),
    ])
    for pid in (1, 2):
        packages.packages[pid].expected_disposal_days = 10  # urgent -> load balance
        packages.packages[pid].total_amount = Decimal("100000")
    uow = FakeUnitOfWork(packages, rules, orgs, flows)
    uc = AssignPackageUseCase(packages, rules, orgs, flows, uow, clock=lambda: NOW)

    batch = await uc.batch_assign([1, 2])
    assert {r.organization_id for r in batch.results} == {1, 2}
    assert orgs.organizations[1].current_load_percentage == pytest.approx(50.0)
    assert orgs.organizations[2].current_load_percentage == pytest.approx(50.0)


@pytest.mark.asyncio
async def test_empty_batch(uc):
    batch = await uc.batch_assign([])
    assert batch.total_count == 0
    assert batch.success_rate == 0.0


# ─── Read-only ───────────────────────────────────────────────────────


@pytest.mark.asyncio
async def test_recommend_is_ranked_limited_and_side_effect_free(uc, packages, rules, flows):
    rec = await uc.recommend(1, limit=1)

    assert rec.strategy == "PERFORMANCE"
    assert not rec.fallback_used
    assert len(rec.candidates) == 1
    assert rec.candidates[0].organization_id == 1
    assert rec.candidates[0].rank == 1
    assert packages.packages[1].version == 0
    assert flows.records == []
    assert all(r.usage_count == 0 for r in rules.rules.values())


@pytest.mark.asyncio
async def test_recommend_skips_full_orgs(uc, orgs):
    orgs.organizations[1].current_load_percentage = 100
    rec = await uc.recommend(2)
    assert [c.organization_id for c in rec.candidates] == [2]


@pytest.mark.asyncio
async def test_recommend_unknown_strategy_flags_fallback(uc):
    rec = await uc.recommend(2, strategy_name="bogus")
    assert rec.fallback_used
    assert rec.strategy == "INTELLIGENT"


@pytest.mark.asyncio
async def test_assess(uc):
    assessment = await uc.assess(2, 1)
    assert assessment.organization_id == 2
    assert set(assessment.detail_scores()) == {
        "geographic", "capacity", "experience", "performance", "availability",
    }
    assert 0.0 <= assessment.overall_score <= 1.0
    assert assessment.recommendation


@pytest.mark.asyncio
async def test_assess_unknown_organization(uc):
    with pytest.raises(NotFoundError):
        await uc.assess(404, 1)


@pytest.mark.asyncio
async def test_threshold_compares_unrounded_score(packages, rules, flows):
    # no history and 25.02% load: INTELLIGENT composite is 0.69996, shown as 0.7
    orgs = FakeOrganizationRepo([
        make_org(
            1,
            current_load_percentage=25.02,
            cases_handled=None,
            years_active=None,
            recovery_rate=None,
            avg_processing_days=None,
        ),
    ])
    rules.rules[1].strategy_name = "INTELLIGENT"
    uow = FakeUnitOfWork(packages, rules, orgs, flows)
    uc = AssignPackageUseCase(packages, rules, orgs, flows, uow, clock=lambda: NOW)

    result = await uc.auto_assign(1, rule_id=1)

    assert result.failure == FailureKind.BELOW_THRESHOLD
    assert result.score == pytest.approx(0.7)
    assert packages.packages[1].status == PackageStatus.PUBLISHED


# ─── Statistics and profiles ─────────────────────────────────────────


@pytest.mark.asyncio
async def test_assignment_statistics(uc, flows):
    await uc.auto_assign(1, rule_id=1)
    await uc.auto_assign(2, rule_id=1)  # amount outside the rule's range
    await flows.append(
        FlowRecord.package_event(
            package_id=1,
            event_type=FlowEventType.PACKAGE_ACCEPTED,
            actor=Actor(id=5, name="org-1 desk", org_id=1),
            description="accepted",
            at=NOW,
            disposal_org_id=1,
        )
    )

    stats = await uc.assignment_statistics()
    assert (stats.assigned_count, stats.accepted_count, stats.rejected_count) == (1, 1, 0)
    assert stats.acceptance_rate == 100.0
    assert (stats.rule_attempts, stats.rule_successes) == (2, 1)
    assert stats.rule_success_rate == 50.0

    other = await uc.assignment_statistics(organization_id=2)
    assert other.assigned_count == 0
    assert other.acceptance_rate == 0.0

    later = await uc.assignment_statistics(start=datetime(2026, 4, 1, tzinfo=timezone.utc))
    assert later.assigned_count == 0


@pytest.mark.asyncio
async def test_assignment_statistics_unknown_organization(uc):
    with pytest.raises(NotFoundError):
        await uc.assignment_statistics(organization_id=404)


@pytest.mark.asyncio
async def test_capability_profile(uc):
    await uc.auto_assign(1, rule_id=1)

    profile = await uc.capability_profile(1)

    assert profile.organization_name == "Org 1"
    assert profile.eligible
    assert profile.current_load == pytest.approx(30.0)
    assert profile.performance_score == pytest.approx(0.86)
    assert 0.0 <= profile.overall_capability <= 1.0
    assert profile.service_regions == ["Guangdong/Shenzhen"]
    assert "Strong historical recovery" in profile.strengths
    assert profile.statistics.assigned_count == 1


@pytest.mark.asyncio
async def test_capability_profile_of_full_organization(uc, orgs):
    orgs.organizations[2].current_load_percentage = 100
    profile = await uc.capability_profile(2)
    assert not profile.eligible
    assert profile.availability_score == 0.0
    assert "Heavily loaded" in profile.weaknesses
