"""Transient assignment outcomes — candidates, assessments and results."""

from dataclasses import dataclass, field
from datetime import datetime

from disposal_engine.domain.value_objects.enums import FailureKind


@dataclass
class MatchingAssessment:
    """Detailed breakdown of one organization against one package."""

    organization_id: int
    strategy: str
    overall_score: float
    geographic_score: float
    capacity_score: float
    experience_score: float
    performance_score: float
    availability_score: float
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    recommendation: str = ""
    # composite before display rounding; thresholds compare against this
    exact_score: float | None = None

    def detail_scores(self) -> dict[str, float]:
        return {
            "geographic": self.geographic_score,
            "capacity": self.capacity_score,
            "experience": self.experience_score,
            "performance": self.performance_score,
            "availability": self.availability_score,
        }


@dataclass
class AssignmentCandidate:
    organization_id: int
    organization_name: str
    score: float
    detail_scores: dict[str, float]
    rank: int = 0
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    recommendation: str = ""
    current_load: float = 0.0
    exact_score: float | None = None


@dataclass
class AssignmentResult:
    success: bool
    package_id: int | None
    strategy: str | None
    reason: str
    organization_id: int | None = None
    organization_name: str | None = None
    score: float | None = None
    failure: FailureKind | None = None


@dataclass
class BatchResult:
    total_count: int
    success_count: int
    failed_count: int
    success_rate: float
    strategy: str | None
    processed_at: datetime
    results: list[AssignmentResult] = field(default_factory=list)


@dataclass
class RuleTestResult:
    rule_id: int
    package_id: int
    rule_matched: bool
    reasons: list[str] = field(default_factory=list)
    matched_criteria: list[str] = field(default_factory=list)
    unmatched_criteria: list[str] = field(default_factory=list)


@dataclass
class AssignmentStatistics:
    """Assignment outcomes in a time window, optionally for one organization.

    Flow counts honour the window and organization filter; the rule figures
    are lifetime totals across all rules.
    """

    organization_id: int | None
    start: datetime | None
    end: datetime | None
    assigned_count: int = 0
    accepted_count: int = 0
    rejected_count: int = 0
    completed_count: int = 0
    acceptance_rate: float = 0.0
    rule_attempts: int = 0
    rule_successes: int = 0
    rule_success_rate: float = 0.0


@dataclass
class CapabilityProfile:
    """Package-independent view of what an organization can take on."""

    organization_id: int
    organization_name: str
    organization_type: str
    current_load: float
    capacity_score: float
    experience_score: float
    performance_score: float
    availability_score: float
    overall_capability: float
    eligible: bool
    service_regions: list[str] = field(default_factory=list)
    strengths: list[str] = field(default_factory=list)
    weaknesses: list[str] = field(default_factory=list)
    statistics: AssignmentStatistics | None = None
