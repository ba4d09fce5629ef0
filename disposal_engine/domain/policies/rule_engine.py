"""RuleEngine — does an assignment rule apply to a case package?"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from disposal_engine.domain.entities.assignment_rule import AssignmentRule
from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.errors import ValidationError
from disposal_engine.domain.policies.strategy_selector import resolve_name

_RANGE_PATTERN = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*-\s*(\d+(?:\.\d+)?)\s*$")


@dataclass
class RuleMatch:
    """Verdict of a rule against a package, with the criteria behind it."""

    matched: bool
    reasons: list[str] = field(default_factory=list)
    matched_criteria: list[str] = field(default_factory=list)
    unmatched_criteria: list[str] = field(default_factory=list)


def parse_amount_range(raw: str | None) -> tuple[Decimal, Decimal] | None:
    """Parse "<min>-<max>" into bounds.

    Returns None for blank, single-bound, reversed or otherwise malformed
    input.
    """
    if not raw or not raw.strip():
        return None
    m = _RANGE_PATTERN.match(raw)
    if not m:
        return None
    try:
        low, high = Decimal(m.group(1)), Decimal(m.group(2))
    except InvalidOperation:
        return None
    if low > high:
        return None
    return low, high


def matches(rule: AssignmentRule, package: CasePackage) -> RuleMatch:
    """Evaluate every declarative condition of *rule* against *package*.

    The ``enabled`` flag is not checked here; callers that only run enabled
    rules check it themselves.
    """
    result = RuleMatch(matched=True)

    # Amount range
    if rule.target_amount_range and rule.target_amount_range.strip():
        bounds = parse_amount_range(rule.target_amount_range)
        if bounds is None:
            result.reasons.append(
                f"Amount range '{rule.target_amount_range}' is malformed; not applied"
            )
        else:
            low, high = bounds
            if low <= package.total_amount <= high:
                result.matched_criteria.append("amount_range")
            else:
                result.unmatched_criteria.append("amount_range")
                result.reasons.append(
                    f"Total amount {package.total_amount} outside {low}-{high}"
                )

    # Regions
    if rule.target_regions:
        region = package.primary_region()
        wanted = {r.strip().lower() for r in rule.target_regions if r.strip()}
        keys = set()
        if region is not None:
            keys = {region.province.lower(), str(region).lower()}
        if keys & wanted:
            result.matched_criteria.append("target_regions")
        else:
            result.unmatched_criteria.append("target_regions")
            result.reasons.append(f"Region {region or 'unknown'} not in target regions")

    # Case types
    if rule.target_case_types:
        wanted_types = {t.strip().lower() for t in rule.target_case_types if t.strip()}
        if package.case_type and package.case_type.strip().lower() in wanted_types:
            result.matched_criteria.append("target_case_types")
        else:
            result.unmatched_criteria.append("target_case_types")
            result.reasons.append(
                f"Case type {package.case_type or 'unknown'} not in target case types"
            )

    # Organization allow / deny lists are applied per candidate
    if rule.include_organizations or rule.exclude_organizations:
        allowed = allowed_organization_ids(rule)
        if allowed is not None and not allowed:
            result.unmatched_criteria.append("organizations")
            result.reasons.append("Every included organization is also excluded")
        else:
            result.matched_criteria.append("organizations")

    # Quota
    if rule.max_assignments is not None:
        if rule.quota_exhausted():
            result.unmatched_criteria.append("max_assignments")
            result.reasons.append(f"Rule quota of {rule.max_assignments} assignments used up")
        else:
            result.matched_criteria.append("max_assignments")

    result.matched = not result.unmatched_criteria
    if result.matched and not result.reasons:
        result.reasons.append("All rule conditions satisfied")
    return result


def allowed_organization_ids(rule: AssignmentRule) -> set[int] | None:
    """Explicit allow set, or None when every non-excluded org is allowed."""
    if not rule.include_organizations:
        return None
    return set(rule.include_organizations) - set(rule.exclude_organizations)


def allows_organization(rule: AssignmentRule, organization_id: int) -> bool:
    """Exclude list wins over include list."""
    if organization_id in set(rule.exclude_organizations):
        return False
    if rule.include_organizations:
        return organization_id in set(rule.include_organizations)
    return True


def validate_rule(rule: AssignmentRule) -> None:
    """Save-time validation; raises ValidationError on the first problem."""
    if not rule.name or not rule.name.strip():
        raise ValidationError("Rule name is required")
    if rule.min_matching_score is None or not 0.0 <= rule.min_matching_score <= 1.0:
        raise ValidationError(
            f"min_matching_score must be within [0, 1], got {rule.min_matching_score}"
        )
    if rule.target_amount_range and rule.target_amount_range.strip():
        if parse_amount_range(rule.target_amount_range) is None:
            raise ValidationError(
                f"target_amount_range '{rule.target_amount_range}' must look like "
                "'<min>-<max>' with min <= max"
            )
    if rule.strategy_name and resolve_name(rule.strategy_name) is None:
        raise ValidationError(f"Unknown strategy '{rule.strategy_name}'")
    if rule.max_assignments is not None and rule.max_assignments < 0:
        raise ValidationError("max_assignments cannot be negative")
