"""Booking status transition table."""

from __future__ import annotations

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Union

from app.core.exceptions import InvalidBookingStatusException
from app.models.booking import BookingStatus


class BookingAction(str, Enum):
    RECORD_AUTHORIZATION = "record_authorization"
    ACCEPT = "accept"
    DECLINE = "decline"
    CANCEL = "cancel"
    CHECK_IN = "check_in"
    CHECK_OUT = "check_out"
    EXTEND_TIME = "extend_time"

    @property
    def verb(self) -> str:
        """Wording used in rejection messages ("Cannot <verb> booking ...")."""
        return _VERBS[self]


_VERBS: Mapping[BookingAction, str] = {
    BookingAction.RECORD_AUTHORIZATION: "authorize",
    BookingAction.ACCEPT: "accept",
    BookingAction.DECLINE: "decline",
    BookingAction.CANCEL: "cancel",
    BookingAction.CHECK_IN: "check in to",
    BookingAction.CHECK_OUT: "check out of",
    BookingAction.EXTEND_TIME: "extend",
}

S = BookingStatus

# action -> {from_status: to_status}; anything not listed is rejected
TRANSITIONS: Mapping[BookingAction, Mapping[BookingStatus, BookingStatus]] = MappingProxyType(
    {
        BookingAction.RECORD_AUTHORIZATION: {S.PENDING_PAYMENT: S.AUTHORIZED},
        BookingAction.ACCEPT: {S.AUTHORIZED: S.CONFIRMED},
        BookingAction.DECLINE: {
            S.PENDING_PAYMENT: S.DECLINED,
            S.AUTHORIZED: S.DECLINED,
        },
        BookingAction.CANCEL: {
            S.PENDING_PAYMENT: S.CANCELED,
            S.AUTHORIZED: S.CANCELED,
            S.CONFIRMED: S.CANCELED,
        },
        BookingAction.CHECK_IN: {S.CONFIRMED: S.IN_PROGRESS},
        BookingAction.CHECK_OUT: {S.IN_PROGRESS: S.COMPLETED},
        # Extensions keep the visit running
        BookingAction.EXTEND_TIME: {S.IN_PROGRESS: S.IN_PROGRESS},
    }
)


def allowed_sources(action: BookingAction) -> frozenset[BookingStatus]:
    return frozenset(TRANSITIONS[action])


def is_allowed(current: Union[BookingStatus, str], action: BookingAction) -> bool:
    return BookingStatus(current) in TRANSITIONS[action]


def ensure_transition(current: Union[BookingStatus, str], action: BookingAction) -> BookingStatus:
    """
    Target status of ``action`` from ``current``.

    Raises:
        InvalidBookingStatusException: If the table has no such transition
    """
    status = BookingStatus(current)
    target = TRANSITIONS[action].get(status)
    if target is None:
        raise InvalidBookingStatusException(action.verb, status.value)
    return target
