"""Case-package status state machine.

Every status mutation goes through this table; there is no other way to move
a package between statuses.
"""

from __future__ import annotations

from disposal_engine.domain.errors import InvalidTransitionError
from disposal_engine.domain.value_objects.enums import FlowEventType, PackageStatus

S = PackageStatus
E = FlowEventType

TRANSITIONS: dict[tuple[PackageStatus, FlowEventType], PackageStatus] = {
    (S.DRAFT, E.PACKAGE_PUBLISHED): S.PUBLISHED,
    (S.DRAFT, E.PACKAGE_CANCELLED): S.CANCELLED,
    (S.PUBLISHED, E.PACKAGE_ASSIGNED): S.ASSIGNED,
    (S.PUBLISHED, E.PACKAGE_WITHDRAWN): S.DRAFT,
    (S.PUBLISHED, E.PACKAGE_CANCELLED): S.CANCELLED,
    (S.ASSIGNED, E.PACKAGE_ACCEPTED): S.ACCEPTED,
    (S.ASSIGNED, E.PACKAGE_REJECTED): S.PUBLISHED,
    (S.ACCEPTED, E.PACKAGE_STARTED): S.IN_PROGRESS,
    (S.IN_PROGRESS, E.PACKAGE_COMPLETED): S.COMPLETED,
}

TERMINAL_STATUSES = frozenset({S.COMPLETED, S.CANCELLED})


def is_valid_transition(
    current: PackageStatus, target: PackageStatus, event: FlowEventType
) -> bool:
    return TRANSITIONS.get((current, event)) == target


def can_apply(current: PackageStatus, event: FlowEventType) -> bool:
    return (current, event) in TRANSITIONS


def next_status(current: PackageStatus, event: FlowEventType) -> PackageStatus:
    """Target of the edge for (current, event); raises if none exists."""
    try:
        return TRANSITIONS[(current, event)]
    except KeyError:
        raise InvalidTransitionError(current, event) from None


def get_possible_next_statuses(current: PackageStatus) -> list[PackageStatus]:
    return [target for (src, _), target in TRANSITIONS.items() if src == current]


def get_required_event(
    current: PackageStatus, target: PackageStatus
) -> FlowEventType | None:
    for (src, event), dst in TRANSITIONS.items():
        if src == current and dst == target:
            return event
    return None


def is_terminal(status: PackageStatus) -> bool:
    return status in TERMINAL_STATUSES
