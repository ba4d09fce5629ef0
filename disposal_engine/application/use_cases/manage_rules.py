"""ManageRulesUseCase — CRUD and dry-run testing of assignment rules."""

from __future__ import annotations

import dataclasses
import logging

from disposal_engine.application.ports.case_package_repo import CasePackageRepository
from disposal_engine.application.ports.rule_repo import AssignmentRuleRepository
from disposal_engine.domain.entities.assignment import RuleTestResult
from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.errors import ConcurrentModificationError, NotFoundError
from disposal_engine.domain.policies.rule_engine import matches, validate_rule
from disposal_engine.domain.value_objects.actor import SYSTEM_ACTOR, Actor

logger = logging.getLogger(__name__)

# Fields a caller may change; usage statistics are owned by the workflow.
EDITABLE_FIELDS = (
    "name",
    "rule_type",
    "priority",
    "enabled",
    "min_matching_score",
    "description",
    "target_amount_range",
    "target_regions",
    "target_case_types",
    "include_organizations",
    "exclude_organizations",
    "strategy_name",
    "max_assignments",
)


class ManageRulesUseCase:
    def __init__(
        self, rule_repo: AssignmentRuleRepository, package_repo: CasePackageRepository
    ):
        self._rules = rule_repo
        self._packages = package_repo

    async def create(self, rule: AssignmentRule, actor: Actor = SYSTEM_ACTOR) -> AssignmentRule:
        validate_rule(rule)
        rule.usage_count = 0
        rule.success_count = 0
        rule.last_used_at = None
        rule.created_by = actor.id
        saved = await self._rules.add(rule)
        logger.info("Rule %s '%s' created by %s", saved.id, saved.name, actor.name)
        return saved

    async def get(self, rule_id: int) -> AssignmentRule:
        rule = await self._rules.get_by_id(rule_id)
        if rule is None:
            raise NotFoundError("AssignmentRule", rule_id)
        return rule

    async def list_rules(self, enabled_only: bool = False) -> list[AssignmentRule]:
        return await self._rules.list(enabled_only=enabled_only)

    async def update(
        self, rule_id: int, changes: dict, expected_version: int | None = None
    ) -> AssignmentRule:
        """Apply *changes* to the editable fields of a rule.

        When *expected_version* is given and no longer current the update is
        refused with ConcurrentModificationError.
        """
        current = await self.get(rule_id)
        version = current.version if expected_version is None else expected_version
        updated = dataclasses.replace(
            current, **{k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        )
        validate_rule(updated)
        if not await self._rules.save(updated, expected_version=version):
            raise ConcurrentModificationError("AssignmentRule", rule_id, version)
        logger.info("Rule %s updated (%s)", rule_id, ", ".join(sorted(changes)) or "no changes")
        return updated

    async def delete(self, rule_id: int) -> None:
        if not await self._rules.delete(rule_id):
            raise NotFoundError("AssignmentRule", rule_id)
        logger.info("Rule %s deleted", rule_id)

    async def test(self, rule_id: int, package_id: int) -> RuleTestResult:
        """Evaluate a rule against a package without side effects."""
        rule = await self.get(rule_id)
        package = await self._packages.get_by_id(package_id)
        if package is None:
            raise NotFoundError("CasePackage", package_id)

        verdict = matches(rule, package)
        if not rule.enabled:
            verdict.reasons.insert(0, "Rule is disabled; it would not run automatically")
        return RuleTestResult(
            rule_id=rule_id,
            package_id=package_id,
            rule_matched=verdict.matched,
            reasons=verdict.reasons,
            matched_criteria=verdict.matched_criteria,
            unmatched_criteria=verdict.unmatched_criteria,
        )
