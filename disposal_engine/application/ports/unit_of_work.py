"""Port interface for transaction boundaries."""

from abc import ABC, abstractmethod


class UnitOfWork(ABC):
    """Commit or discard everything the repositories wrote since the last boundary.

    Repositories sharing a unit of work see one transaction; a new one starts
    implicitly after each ``commit`` or ``rollback``.
    """

    @abstractmethod
    async def commit(self) -> None:
        ...

    @abstractmethod
    async def rollback(self) -> None:
        ...
