"""AssignPackageUseCase — rule-gated, strategy-ranked package assignment."""

from __future__ import annotations

import dataclasses
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from disposal_engine.application.ports.case_package_repo import CasePackageRepository
from disposal_engine.application.ports.flow_repo import FlowRecordRepository
from disposal_engine.application.ports.organization_repo import OrganizationRepository
from disposal_engine.application.ports.rule_repo import AssignmentRuleRepository
from disposal_engine.application.ports.unit_of_work import UnitOfWork
from disposal_engine.domain.entities.assignment import (
    AssignmentCandidate,
    AssignmentResult,
    AssignmentStatistics,
    BatchResult,
    CapabilityProfile,
    MatchingAssessment,
)
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.entities.organization import Organization
from disposal_engine.domain.errors import (
    ConcurrentModificationError,
    EngineError,
    InvalidTransitionError,
    NotFoundError,
)
from disposal_engine.domain.policies.rule_engine import allows_organization, matches
from disposal_engine.domain.policies.scoring import capability_scores, is_eligible
from disposal_engine.domain.policies.status_machine import can_apply, next_status
from disposal_engine.domain.policies.strategies import SCORE_PRECISION, describe_scores
from disposal_engine.domain.policies.strategy_selector import (
    SelectorThresholds,
    StrategySelection,
    select_strategy,
)
from disposal_engine.domain.value_objects.actor import SYSTEM_ACTOR, Actor
from disposal_engine.domain.value_objects.enums import (
    FailureKind,
    FlowEventType,
    PackageStatus,
    StrategyName,
)

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _percent(part: int, whole: int) -> float:
    return round(part / whole * 100, 2) if whole else 0.0


@dataclass
class Recommendation:
    package_id: int
    strategy: str
    fallback_used: bool
    candidates: list[AssignmentCandidate]


class AssignPackageUseCase:
    """Orchestrates recommendation, assessment, single and batch assignment.

    Each assignment is its own transaction through *unit_of_work*: the package
    update, its flow record, the rule counters and the organization load are
    committed together or not at all.
    """

    def __init__(
        self,
        package_repo: CasePackageRepository,
        rule_repo: AssignmentRuleRepository,
        organization_repo: OrganizationRepository,
        flow_repo: FlowRecordRepository,
        unit_of_work: UnitOfWork,
        default_strategy: StrategyName = StrategyName.INTELLIGENT,
        thresholds: SelectorThresholds = SelectorThresholds(),
        rule_update_retries: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._packages = package_repo
        self._rules = rule_repo
        self._orgs = organization_repo
        self._flows = flow_repo
        self._uow = unit_of_work
        self._default = default_strategy
        self._thresholds = thresholds
        self._retries = rule_update_retries
        self._now = clock

    # ─── Read-only entry points ─────────────────────────────────────

    async def recommend(
        self, package_id: int, limit: int = 10, strategy_name: str | None = None
    ) -> Recommendation:
        """Rank eligible organizations without mutating anything."""
        package = await self._load_package(package_id)
        selection = self._select(package, strategy_name)
        organizations = [o for o in await self._orgs.list_eligible() if is_eligible(o)]
        ranked = selection.strategy.rank(package, organizations)
        logger.info(
            "Package %s: %d candidates ranked with %s",
            package_id, len(ranked), selection.strategy.name.value,
        )
        return Recommendation(
            package_id=package_id,
            strategy=selection.strategy.name.value,
            fallback_used=selection.fallback_used,
            candidates=ranked[: max(limit, 0)],
        )

    async def assess(
        self, organization_id: int, package_id: int, strategy_name: str | None = None
    ) -> MatchingAssessment:
        organization = await self._load_organization(organization_id)
        package = await self._load_package(package_id)
        selection = self._select(package, strategy_name)
        return selection.strategy.assess(organization, package)

    async def assignment_statistics(
        self,
        organization_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> AssignmentStatistics:
        """Aggregate assignment outcomes from the flow log and rule counters."""
        if organization_id is not None:
            await self._load_organization(organization_id)
        counts = await self._flows.count_by_event_type(start, end, disposal_org_id=organization_id)
        assigned = counts.get(FlowEventType.PACKAGE_ASSIGNED, 0)
        accepted = counts.get(FlowEventType.PACKAGE_ACCEPTED, 0)

        rules = await self._rules.list()
        attempts = sum(r.usage_count for r in rules)
        successes = sum(r.success_count for r in rules)
        return AssignmentStatistics(
            organization_id=organization_id,
            start=start,
            end=end,
            assigned_count=assigned,
            accepted_count=accepted,
            rejected_count=counts.get(FlowEventType.PACKAGE_REJECTED, 0),
            completed_count=counts.get(FlowEventType.PACKAGE_COMPLETED, 0),
            acceptance_rate=_percent(accepted, assigned),
            rule_attempts=attempts,
            rule_successes=successes,
            rule_success_rate=_percent(successes, attempts),
        )

    async def capability_profile(self, organization_id: int) -> CapabilityProfile:
        organization = await self._load_organization(organization_id)
        scores = {k: round(v, SCORE_PRECISION) for k, v in capability_scores(organization).items()}
        strengths, weaknesses = describe_scores(scores)
        return CapabilityProfile(
            organization_id=organization.id,
            organization_name=organization.name,
            organization_type=organization.type.value,
            current_load=organization.current_load_percentage or 0.0,
            capacity_score=scores["capacity"],
            experience_score=scores["experience"],
            performance_score=scores["performance"],
            availability_score=scores["availability"],
            overall_capability=round(sum(scores.values()) / len(scores), SCORE_PRECISION),
            eligible=is_eligible(organization),
            service_regions=[str(r) for r in organization.serviced_regions()],
            strengths=strengths,
            weaknesses=weaknesses,
            statistics=await self.assignment_statistics(organization_id),
        )

    # ─── Mutating entry points ──────────────────────────────────────

    async def auto_assign(
        self,
        package_id: int,
        rule_id: int,
        actor: Actor = SYSTEM_ACTOR,
        strategy_name: str | None = None,
    ) -> AssignmentResult:
        """Assign one package to its best-ranked organization under *rule*.

        Pipeline:
        1. Load package and rule
        2. Check the package can take the ASSIGN edge
        3. Evaluate the rule
        4. Select strategy, filter and rank candidates
        5. Enforce the rule's minimum score
        6. Compare-and-swap commit + audit record
        7. Rule statistics and organization load
        """
        package = await self._load_package(package_id)
        rule = await self._load_rule(rule_id)
        organizations = await self._orgs.list_eligible()
        result = await self._assign_in_transaction(
            package, rule, organizations, actor, strategy_name
        )
        logger.info(
            "Auto-assign package %s with rule %s: success=%s (%s)",
            package_id, rule_id, result.success, result.reason,
        )
        return result

    async def batch_assign(
        self,
        package_ids: list[int],
        strategy_name: str | None = None,
        actor: Actor = SYSTEM_ACTOR,
        rule_id: int | None = None,
    ) -> BatchResult:
        """Assign each package in its own transaction; one failure never stops the loop."""
        logger.info(
            "Batch assigning %d packages (strategy=%s, rule=%s)",
            len(package_ids), strategy_name, rule_id,
        )
        if rule_id is not None:
            await self._load_rule(rule_id)

        organizations = await self._orgs.list_eligible()
        packages = await self._packages.get_many(package_ids)

        results: list[AssignmentResult] = []
        for package_id in package_ids:
            try:
                package = packages.get(package_id)
                if package is None:
                    raise NotFoundError("CasePackage", package_id)
                rule = await self._load_rule(rule_id) if rule_id is not None else None
                result = await self._assign_in_transaction(
                    package, rule, organizations, actor, strategy_name
                )
            except EngineError as e:
                logger.warning("Batch: package %s failed: %s", package_id, e)
                result = _failure(package_id, strategy_name, e.kind, str(e))
            except Exception as e:
                logger.exception("Batch: unexpected error for package %s", package_id)
                result = _failure(package_id, strategy_name, FailureKind.UNEXPECTED, str(e))
            results.append(result)

        successful = sum(1 for r in results if r.success)
        total = len(package_ids)
        logger.info("Batch complete: %d/%d successful", successful, total)
        return BatchResult(
            total_count=total,
            success_count=successful,
            failed_count=total - successful,
            success_rate=_percent(successful, total),
            strategy=strategy_name,
            processed_at=self._now(),
            results=results,
        )

    # ─── Internals ──────────────────────────────────────────────────

    async def _assign_in_transaction(
        self,
        package: CasePackage,
        rule: AssignmentRule | None,
        organizations: list[Organization],
        actor: Actor,
        strategy_name: str | None,
    ) -> AssignmentResult:
        """Run one assignment and close its transaction.

        Typed engine errors leave only the recorded rule attempt behind, which
        is kept. Anything else discards every write of this package.
        """
        try:
            result = await self._assign(package, rule, organizations, actor, strategy_name)
            await self._uow.commit()
        except EngineError:
            await self._uow.commit()
            raise
        except Exception:
            await self._uow.rollback()
            raise
        if result.success:
            self._track_load(package, result.organization_id, organizations)
        return result

    async def _assign(
        self,
        package: CasePackage,
        rule: AssignmentRule | None,
        organizations: list[Organization],
        actor: Actor,
        strategy_name: str | None,
    ) -> AssignmentResult:
        if not can_apply(package.status, FlowEventType.PACKAGE_ASSIGNED):
            await self._record_rule_usage(rule, success=False)
            raise InvalidTransitionError(
                package.status, FlowEventType.PACKAGE_ASSIGNED, PackageStatus.ASSIGNED
            )

        if rule is not None:
            verdict = matches(rule, package)
            if not rule.enabled:
                verdict.matched = False
                verdict.reasons.insert(0, "Rule is disabled")
            if not verdict.matched:
                await self._record_rule_usage(rule, success=False)
                return _failure(
                    package.id, None, FailureKind.RULE_MISMATCH,
                    "Rule conditions not met: " + "; ".join(verdict.reasons),
                )

        requested = strategy_name or (rule.strategy_name if rule else None)
        selection = self._select(package, requested)
        strategy = selection.strategy.name.value

        eligible = [
            o for o in organizations
            if is_eligible(o) and (rule is None or allows_organization(rule, o.id))
        ]
        ranked = selection.strategy.rank(package, eligible)
        if not ranked:
            await self._record_rule_usage(rule, success=False)
            return _failure(
                package.id, strategy, FailureKind.NO_ELIGIBLE_CANDIDATE,
                "No suitable organization available",
            )

        best = ranked[0]
        min_score = rule.min_matching_score if rule is not None else 0.0
        exact = best.exact_score if best.exact_score is not None else best.score
        if exact < min_score:
            await self._record_rule_usage(rule, success=False)
            result = _failure(
                package.id, strategy, FailureKind.BELOW_THRESHOLD,
                f"Best candidate {best.organization_name} scored {exact:.6f}, "
                f"below minimum {min_score:.4f}",
            )
            result.organization_id = best.organization_id
            result.organization_name = best.organization_name
            result.score = best.score
            return result

        try:
            await self._commit(package, best, actor, strategy)
        except ConcurrentModificationError:
            await self._record_rule_usage(rule, success=False)
            raise

        await self._record_rule_usage(rule, success=True)
        await self._raise_load(package, best.organization_id, organizations)

        return AssignmentResult(
            success=True,
            package_id=package.id,
            strategy=strategy,
            reason=f"Assigned to {best.organization_name}",
            organization_id=best.organization_id,
            organization_name=best.organization_name,
            score=best.score,
        )

    async def _commit(
        self,
        package: CasePackage,
        best: AssignmentCandidate,
        actor: Actor,
        strategy: str,
    ) -> None:
        """CAS on the package version, then the audit record in the same transaction."""
        now = self._now()
        target = next_status(package.status, FlowEventType.PACKAGE_ASSIGNED)
        updated = dataclasses.replace(
            package,
            status=target,
            disposal_org_id=best.organization_id,
            assigned_at=now,
        )
        if not await self._packages.save(updated, expected_version=package.version):
            raise ConcurrentModificationError("CasePackage", package.id, package.version)

        await self._flows.append(
            FlowRecord.package_event(
                package_id=package.id,
                event_type=FlowEventType.PACKAGE_ASSIGNED,
                actor=actor,
                description=(
                    f"Assigned to {best.organization_name} "
                    f"(score {best.score:.4f}, strategy {strategy})"
                ),
                at=now,
                before=package.status,
                after=target,
                amount=package.total_amount,
                disposal_org_id=best.organization_id,
            )
        )

    async def _record_rule_usage(self, rule: AssignmentRule | None, success: bool) -> None:
        """Apply record_attempt / record_success through versioned saves."""
        if rule is None:
            return
        for attempt in range(1, self._retries + 1):
            current = await self._rules.get_by_id(rule.id)
            if current is None:
                logger.warning("Rule %s disappeared before its usage could be recorded", rule.id)
                return
            expected = current.version
            current.record_attempt(self._now())
            if success:
                current.record_success()
            if await self._rules.save(current, expected_version=expected):
                return
            logger.warning(
                "Rule %s usage update conflicted (attempt %d/%d), retrying",
                rule.id, attempt, self._retries,
            )
        logger.error(
            "Rule %s usage update lost after %d attempts (success=%s)",
            rule.id, self._retries, success,
        )

    async def _raise_load(
        self, package: CasePackage, organization_id: int, organizations: list[Organization]
    ) -> None:
        org = next((o for o in organizations if o.id == organization_id), None)
        delta = _load_delta(package, org)
        if delta:
            await self._orgs.increase_load(organization_id, delta)

    def _track_load(
        self, package: CasePackage, organization_id: int, organizations: list[Organization]
    ) -> None:
        """Keep the in-memory directory in step with a committed load increase."""
        org = next((o for o in organizations if o.id == organization_id), None)
        delta = _load_delta(package, org)
        if delta:
            org.current_load_percentage = min(
                100.0, (org.current_load_percentage or 0.0) + delta
            )

    def _select(self, package: CasePackage, strategy_name: str | None) -> StrategySelection:
        return select_strategy(package, strategy_name, self._default, self._thresholds)

    async def _load_package(self, package_id: int) -> CasePackage:
        package = await self._packages.get_by_id(package_id)
        if package is None:
            raise NotFoundError("CasePackage", package_id)
        return package

    async def _load_rule(self, rule_id: int) -> AssignmentRule:
        rule = await self._rules.get_by_id(rule_id)
        if rule is None:
            raise NotFoundError("AssignmentRule", rule_id)
        return rule

    async def _load_organization(self, organization_id: int) -> Organization:
        organization = await self._orgs.get_by_id(organization_id)
        if organization is None:
            raise NotFoundError("Organization", organization_id)
        return organization


def _load_delta(package: CasePackage, org: Organization | None) -> float:
    if org is None or not org.monthly_capacity:
        return 0.0
    return package.case_count / org.monthly_capacity * 100


def _failure(
    package_id: int | None, strategy: str | None, kind: FailureKind, reason: str
) -> AssignmentResult:
    return AssignmentResult(
        success=False, package_id=package_id, strategy=strategy, reason=reason, failure=kind,
    )
