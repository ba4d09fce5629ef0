"""CasePackage entity — a bundle of delinquent-debt cases handled as one unit."""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from disposal_engine.domain.value_objects.enums import PackageStatus
from disposal_engine.domain.value_objects.region import Region, infer_region, parse_region


@dataclass
class CasePackage:
    id: int | None
    code: str
    name: str
    case_count: int
    total_amount: Decimal
    source_org_id: int | None
    status: PackageStatus = PackageStatus.DRAFT
    disposal_org_id: int | None = None
    region: str | None = None
    description: str | None = None
    case_type: str | None = None
    expected_disposal_days: int | None = None
    version: int = 0
    published_at: datetime | None = None
    assigned_at: datetime | None = None
    accepted_at: datetime | None = None
    closed_at: datetime | None = None

    def primary_region(self) -> Region | None:
        """Explicit region wins; otherwise infer a province from the description."""
        return parse_region(self.region) or infer_region(self.description)

    def average_amount(self) -> Decimal:
        if not self.case_count:
            return Decimal("0")
        return self.total_amount / self.case_count

    def is_draft(self) -> bool:
        return self.status == PackageStatus.DRAFT
