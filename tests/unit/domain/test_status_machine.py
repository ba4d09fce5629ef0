"""Tests for the case package status machine."""

import pytest

from disposal_engine.domain.errors import InvalidTransitionError
from disposal_engine.domain.policies.status_machine import (
    TRANSITIONS,
    can_apply,
    get_possible_next_statuses,
    get_required_event,
    is_terminal,
    is_valid_transition,
    next_status,
)
from disposal_engine.domain.value_objects.enums import FlowEventType as E
from disposal_engine.domain.value_objects.enums import PackageStatus as S


def test_happy_path():
    status = S.DRAFT
    for event in (E.PACKAGE_PUBLISHED, E.PACKAGE_ASSIGNED, E.PACKAGE_ACCEPTED,
                  E.PACKAGE_STARTED, E.PACKAGE_COMPLETED):
        status = next_status(status, event)
    assert status == S.COMPLETED


def test_rejection_returns_to_published():
    assert next_status(S.ASSIGNED, E.PACKAGE_REJECTED) == S.PUBLISHED


def test_withdraw_returns_to_draft():
    assert next_status(S.PUBLISHED, E.PACKAGE_WITHDRAWN) == S.DRAFT


def test_assigning_twice_is_invalid():
    with pytest.raises(InvalidTransitionError) as exc:
        next_status(S.ASSIGNED, E.PACKAGE_ASSIGNED)
    assert "ASSIGNED --PACKAGE_ASSIGNED-->" in str(exc.value)


def test_draft_cannot_be_assigned():
    assert not can_apply(S.DRAFT, E.PACKAGE_ASSIGNED)


@pytest.mark.parametrize("status", [S.COMPLETED, S.CANCELLED])
def test_terminal_statuses_have_no_edges(status):
    assert is_terminal(status)
    assert get_possible_next_statuses(status) == []


def test_non_terminal_statuses_have_edges():
    for status in S:
        if not is_terminal(status):
            assert get_possible_next_statuses(status), status


def test_is_valid_transition_checks_target():
    assert is_valid_transition(S.PUBLISHED, S.ASSIGNED, E.PACKAGE_ASSIGNED)
    assert not is_valid_transition(S.PUBLISHED, S.ACCEPTED, E.PACKAGE_ASSIGNED)


def test_required_event():
    assert get_required_event(S.PUBLISHED, S.ASSIGNED) == E.PACKAGE_ASSIGNED
    assert get_required_event(S.DRAFT, S.COMPLETED) is None


def test_only_package_events_drive_transitions():
    assert all(event.is_package_event() for (_, event) in TRANSITIONS)
