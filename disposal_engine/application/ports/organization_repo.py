"""Port interface for the organization directory."""

from abc import ABC, abstractmethod

from disposal_engine.domain.entities.organization import Organization


class OrganizationRepository(ABC):
    @abstractmethod
    async def save(self, organization: Organization) -> Organization:
        ...

    @abstractmethod
    async def get_by_id(self, organization_id: int) -> Organization | None:
        ...

    @abstractmethod
    async def list_eligible(self) -> list[Organization]:
        """Organizations that may receive packages (membership active)."""
        ...

    @abstractmethod
    async def increase_load(self, organization_id: int, delta_percentage: float) -> None:
        """Atomically raise current load, capped at 100%."""
        ...
