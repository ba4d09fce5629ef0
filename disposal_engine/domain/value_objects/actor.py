"""Actor value object — who triggered a workflow step or audit entry."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Actor:
    id: int | None
    name: str
    org_id: int | None = None
    is_system: bool = False


SYSTEM_ACTOR = Actor(id=None, name="system", is_system=True)
