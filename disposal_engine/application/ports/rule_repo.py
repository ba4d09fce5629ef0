"""Port interface for assignment rule persistence."""

from abc import ABC, abstractmethod

from disposal_engine.domain.entities.assignment_rule import AssignmentRule


class AssignmentRuleRepository(ABC):
    @abstractmethod
    async def add(self, rule: AssignmentRule) -> AssignmentRule:
        ...

    @abstractmethod
    async def get_by_id(self, rule_id: int) -> AssignmentRule | None:
        ...

    @abstractmethod
    async def save(self, rule: AssignmentRule, expected_version: int) -> bool:
        """Versioned save; bumps ``rule.version`` on success, False on conflict."""
        ...

    @abstractmethod
    async def delete(self, rule_id: int) -> bool:
        ...

    @abstractmethod
    async def list(self, enabled_only: bool = False) -> list[AssignmentRule]:
        """Rules ordered by priority ascending, then id."""
        ...
