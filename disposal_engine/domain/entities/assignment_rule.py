"""AssignmentRule entity — a conditionally applicable auto-assignment policy."""

from dataclasses import dataclass, field
from datetime import datetime

from disposal_engine.domain.value_objects.enums import RuleType


@dataclass
class AssignmentRule:
    id: int | None
    name: str
    rule_type: RuleType = RuleType.AUTO
    priority: int = 100
    enabled: bool = True
    min_matching_score: float = 0.0
    description: str | None = None
    target_amount_range: str | None = None
    target_regions: list[str] = field(default_factory=list)
    target_case_types: list[str] = field(default_factory=list)
    include_organizations: list[int] = field(default_factory=list)
    exclude_organizations: list[int] = field(default_factory=list)
    strategy_name: str | None = None
    max_assignments: int | None = None
    usage_count: int = 0
    success_count: int = 0
    last_used_at: datetime | None = None
    created_by: int | None = None
    version: int = 0

    def record_attempt(self, at: datetime) -> None:
        self.usage_count += 1
        self.last_used_at = at

    def record_success(self) -> None:
        if self.success_count >= self.usage_count:
            raise ValueError("success_count cannot exceed usage_count")
        self.success_count += 1

    def success_rate(self) -> float:
        """Percentage of attempts that ended in a committed assignment."""
        if not self.usage_count:
            return 0.0
        return self.success_count / self.usage_count * 100

    def quota_exhausted(self) -> bool:
        return self.max_assignments is not None and self.success_count >= self.max_assignments
