"""Transition table: every (status, action) pair is either listed or rejected."""

import pytest

from app.core.exceptions import InvalidBookingStatusException
from app.models.booking import BookingStatus
from app.services.booking_transitions import (
    TRANSITIONS,
    BookingAction,
    allowed_sources,
    ensure_transition,
    is_allowed,
)

S = BookingStatus
A = BookingAction

EXPECTED = {
    (S.PENDING_PAYMENT, A.RECORD_AUTHORIZATION): S.AUTHORIZED,
    (S.AUTHORIZED, A.ACCEPT): S.CONFIRMED,
    (S.PENDING_PAYMENT, A.DECLINE): S.DECLINED,
    (S.AUTHORIZED, A.DECLINE): S.DECLINED,
    (S.PENDING_PAYMENT, A.CANCEL): S.CANCELED,
    (S.AUTHORIZED, A.CANCEL): S.CANCELED,
    (S.CONFIRMED, A.CANCEL): S.CANCELED,
    (S.CONFIRMED, A.CHECK_IN): S.IN_PROGRESS,
    (S.IN_PROGRESS, A.CHECK_OUT): S.COMPLETED,
    (S.IN_PROGRESS, A.EXTEND_TIME): S.IN_PROGRESS,
}


@pytest.mark.parametrize("status", list(BookingStatus))
@pytest.mark.parametrize("action", list(BookingAction))
def test_table_matches_lifecycle(status, action):
    expected = EXPECTED.get((status, action))

    if expected is None:
        assert not is_allowed(status, action)
        with pytest.raises(InvalidBookingStatusException):
            ensure_transition(status, action)
    else:
        assert is_allowed(status, action)
        assert ensure_transition(status, action) == expected


@pytest.mark.parametrize("status", [S.COMPLETED, S.DECLINED, S.CANCELED])
def test_terminal_statuses_have_no_outgoing_transitions(status):
    assert status.is_terminal
    assert all(status not in sources for sources in TRANSITIONS.values())


def test_rejection_message_names_current_status():
    with pytest.raises(InvalidBookingStatusException) as exc_info:
        ensure_transition("confirmed", A.DECLINE)

    assert exc_info.value.message == "Cannot decline booking with status: confirmed"
    assert exc_info.value.current_status == "confirmed"
    assert exc_info.value.status_code == 409


def test_check_out_wording():
    with pytest.raises(InvalidBookingStatusException) as exc_info:
        ensure_transition(S.CONFIRMED, A.CHECK_OUT)

    assert exc_info.value.message == "Cannot check out of booking with status: confirmed"


def test_allowed_sources():
    assert allowed_sources(A.CANCEL) == {S.PENDING_PAYMENT, S.AUTHORIZED, S.CONFIRMED}


def test_table_is_read_only():
    with pytest.raises(TypeError):
        TRANSITIONS[A.ACCEPT] = {}  # type: ignore[index]
