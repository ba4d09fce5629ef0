"""Scoring model — normalized sub-scores for one (organization, package) pair.

Every function here is pure and returns a value in [0, 1]. Missing history
never fails: it is replaced by NEUTRAL_SCORE so new members are not
penalised for having no track record.
"""

from __future__ import annotations

import math

from disposal_engine.domain.entities.case_package import CasePackage
from disposal_engine.domain.entities.organization import Organization

NEUTRAL_SCORE = 0.5

EXPERIENCE_CASES_SATURATION = 1000
EXPERIENCE_YEARS_SATURATION = 5.0
TARGET_PROCESSING_DAYS = 90.0

# (load upper bound, availability score)
AVAILABILITY_BANDS: tuple[tuple[float, float], ...] = (
    (50.0, 1.0),
    (70.0, 0.8),
    (85.0, 0.6),
    (95.0, 0.3),
    (100.0, 0.1),
)


def clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, value))


def is_eligible(organization: Organization) -> bool:
    """Zero-availability organizations never reach ranking."""
    return organization.membership_active and not organization.is_at_capacity()


def geographic_score(organization: Organization, package: CasePackage) -> float:
    package_region = package.primary_region()
    org_regions = organization.serviced_regions()
    if package_region is None or not org_regions:
        return NEUTRAL_SCORE
    return max(region.match_score(package_region) for region in org_regions)


def capacity_score(organization: Organization) -> float:
    load = organization.current_load_percentage or 0.0
    if load >= 100.0:
        return 0.0
    return clamp(1.0 - load / 100.0)


def experience_score(organization: Organization) -> float:
    if organization.cases_handled is None:
        volume = NEUTRAL_SCORE
    else:
        # sqrt gives diminishing returns; flat beyond saturation
        volume = math.sqrt(clamp(organization.cases_handled / EXPERIENCE_CASES_SATURATION))
    if organization.years_active is None:
        tenure = NEUTRAL_SCORE
    else:
        tenure = clamp(organization.years_active / EXPERIENCE_YEARS_SATURATION)
    return clamp(volume * 0.7 + tenure * 0.3)


def performance_score(organization: Organization) -> float:
    recovery = organization.recovery_rate
    days = organization.avg_processing_days
    if recovery is None and days is None:
        return NEUTRAL_SCORE

    recovery_part = clamp(recovery) if recovery is not None else NEUTRAL_SCORE
    if days is None:
        speed_part = NEUTRAL_SCORE
    elif days <= 0:
        speed_part = 1.0
    else:
        speed_part = clamp(TARGET_PROCESSING_DAYS / days)
    return clamp(recovery_part * 0.7 + speed_part * 0.3)


def availability_score(organization: Organization) -> float:
    if not is_eligible(organization):
        return 0.0
    load = organization.current_load_percentage or 0.0
    for upper, score in AVAILABILITY_BANDS:
        if load < upper:
            return score
    return 0.0


def sub_scores(organization: Organization, package: CasePackage) -> dict[str, float]:
    """All five dimensions keyed the way candidates expose them."""
    return {
        "geographic": geographic_score(organization, package),
        "capacity": capacity_score(organization),
        "experience": experience_score(organization),
        "performance": performance_score(organization),
        "availability": availability_score(organization),
    }


def capability_scores(organization: Organization) -> dict[str, float]:
    """The package-independent dimensions of ``sub_scores``."""
    return {
        "capacity": capacity_score(organization),
        "experience": experience_score(organization),
        "performance": performance_score(organization),
        "availability": availability_score(organization),
    }
