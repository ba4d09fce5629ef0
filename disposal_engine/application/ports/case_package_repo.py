"""Port interface for case package persistence."""

from abc import ABC, abstractmethod

from disposal_engine.domain.entities.case_package import CasePackage


class CasePackageRepository(ABC):
    @abstractmethod
    async def add(self, package: CasePackage) -> CasePackage:
        ...

    @abstractmethod
    async def get_by_id(self, package_id: int) -> CasePackage | None:
        ...

    @abstractmethod
    async def get_many(self, package_ids: list[int]) -> dict[int, CasePackage]:
        ...

    @abstractmethod
    async def save(self, package: CasePackage, expected_version: int) -> bool:
        """Compare-and-swap on ``version``.

        Persists *package* only if the stored version still equals
        *expected_version*, bumping the version by one and setting it on
        *package*. Returns False on conflict without writing anything.
        """
        ...

    @abstractmethod
    async def delete(self, package_id: int, expected_version: int) -> bool:
        """Delete a DRAFT package whose stored version equals *expected_version*.

        Returns False, deleting nothing, when the package is gone, has moved
        on from DRAFT or was modified since it was read.
        """
        ...
