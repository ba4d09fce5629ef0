"""Organization entity — an external law firm or collection agency."""

from dataclasses import dataclass, field

from disposal_engine.domain.value_objects.enums import OrganizationType
from disposal_engine.domain.value_objects.region import Region, infer_region, parse_region


@dataclass
class Organization:
    id: int | None
    name: str
    type: OrganizationType
    region: str | None = None
    service_regions: set[str] = field(default_factory=set)
    monthly_capacity: int | None = None
    current_load_percentage: float = 0.0
    membership_active: bool = True
    contact_person: str | None = None
    contact_phone: str | None = None
    email: str | None = None
    # Historical metrics; None means "no history yet"
    cases_handled: int | None = None
    years_active: float | None = None
    recovery_rate: float | None = None
    avg_processing_days: float | None = None

    def serviced_regions(self) -> list[Region]:
        regions = []
        home = parse_region(self.region) or infer_region(self.region)
        if home:
            regions.append(home)
        for raw in sorted(self.service_regions):
            parsed = parse_region(raw)
            if parsed:
                regions.append(parsed)
        return regions

    def is_at_capacity(self) -> bool:
        return (self.current_load_percentage or 0.0) >= 100.0
