"""StrategySelector — pick a strategy by name or infer it from the package."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal

from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.policies.strategies import STRATEGIES, AssignmentStrategy
from disposal_engine.domain.value_objects.enums import StrategyName

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SelectorThresholds:
    high_value_amount: Decimal = Decimal("1000000")
    urgent_disposal_days: int = 30
    large_package_cases: int = 500


@dataclass(frozen=True)
class StrategySelection:
    """Result of the selector."""

    strategy: AssignmentStrategy
    fallback_used: bool
    reason: str


def resolve_name(name: str | None) -> StrategyName | None:
    if not name or not name.strip():
        return None
    try:
        return StrategyName(name.strip().upper())
    except ValueError:
        return None


def select_strategy(
    package: CasePackage,
    requested: str | None = None,
    default: StrategyName = StrategyName.INTELLIGENT,
    thresholds: SelectorThresholds = SelectorThresholds(),
) -> StrategySelection:
    """Resolve *requested* if given; otherwise infer from package attributes.

    An unknown name never errors: the default strategy is substituted and
    the selection is flagged with ``fallback_used``.
    """
    if requested is not None and requested.strip():
        name = resolve_name(requested)
        if name is None:
            logger.warning(
                "Unknown strategy '%s' for package %s, falling back to %s",
                requested, package.id, default.value,
            )
            return StrategySelection(
                strategy=STRATEGIES[default],
                fallback_used=True,
                reason=f"Unknown strategy '{requested}', using default {default.value}",
            )
        return StrategySelection(
            strategy=STRATEGIES[name], fallback_used=False, reason="Requested explicitly"
        )

    name, reason = infer_strategy_name(package, default, thresholds)
    return StrategySelection(strategy=STRATEGIES[name], fallback_used=False, reason=reason)


def infer_strategy_name(
    package: CasePackage,
    default: StrategyName = StrategyName.INTELLIGENT,
    thresholds: SelectorThresholds = SelectorThresholds(),
) -> tuple[StrategyName, str]:
    if package.total_amount is not None and package.total_amount > thresholds.high_value_amount:
        return StrategyName.PERFORMANCE, f"High-value package (> {thresholds.high_value_amount})"

    days = package.expected_disposal_days
    if days is not None and days <= thresholds.urgent_disposal_days:
        return StrategyName.LOAD_BALANCE, f"Urgent package ({days} days)"

    if (
        package.primary_region() is not None
        and (package.case_count or 0) >= thresholds.large_package_cases
    ):
        return StrategyName.GEOGRAPHIC, "Large package concentrated in one region"

    return default, "Default balanced strategy"


def list_strategies() -> list[AssignmentStrategy]:
    return list(STRATEGIES.values())
