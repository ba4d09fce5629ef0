"""Port interface for the append-only flow/audit log."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime

from disposal_engine.domain.entities.flow_record import FlowRecord
from disposal_engine.domain.value_objects.enums import FlowEventType


@dataclass
class Page:
    items: list[FlowRecord]
    total: int
    page: int
    size: int


@dataclass
class FlowQuery:
    """Filters for a paginated flow-record search. Results are newest first."""

    package_id: int | None = None
    case_id: int | None = None
    operator_id: int | None = None
    operator_org_id: int | None = None
    disposal_org_id: int | None = None
    event_types: list[FlowEventType] = field(default_factory=list)
    start: datetime | None = None
    end: datetime | None = None
    page: int = 0
    size: int = 20


class FlowRecordRepository(ABC):
    @abstractmethod
    async def append(self, record: FlowRecord) -> FlowRecord:
        ...

    @abstractmethod
    async def search(self, query: FlowQuery) -> Page:
        ...

    @abstractmethod
    async def timeline(self, package_id: int) -> list[FlowRecord]:
        """All records of a package, oldest first."""
        ...

    @abstractmethod
    async def count_by_event_type(
        self,
        start: datetime | None,
        end: datetime | None,
        disposal_org_id: int | None = None,
    ) -> dict[FlowEventType, int]:
        """Event counts in the window, optionally for one disposal organization."""
        ...
