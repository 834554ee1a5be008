from dataclasses import dataclass
from datetime import date, datetime, time
from enum import StrEnum
from typing import Iterable, Optional

from ..models import Reservation, ReservationTime, Theme, Waiting
from .errors import DuplicationError, ValidationError


class BookingStatus(StrEnum):
    RESERVED = "reserved"
    WAITING = "waiting"


class CancellationOutcome(StrEnum):
    DELETED = "deleted"
    PROMOTED = "promoted"
    IGNORED = "ignored"


@dataclass(frozen=True)
class SlotSnapshot:
    starts_at: datetime
    now: datetime
    already_taken: bool


@dataclass(frozen=True)
class WaitingWithRank:
    waiting: Waiting
    rank: int


@dataclass(frozen=True)
class MemberBooking:
    id: int
    date: date
    time: ReservationTime
    theme: Theme
    status: BookingStatus
    rank: Optional[int] = None

    @property
    def start_at(self) -> time:
        return self.time.start_at


def validate_booking(snapshot: SlotSnapshot, *, duplicate_message: str) -> None:
    """
    Pure validation shared by reservations and waitings: the slot must start
    strictly after now and must not already be taken. Raises domain errors.
    """
    if snapshot.starts_at <= snapshot.now:
        raise ValidationError("past time cannot be booked")
    if snapshot.already_taken:
        raise DuplicationError(duplicate_message)


def merge_itinerary(
    reservations: Iterable[Reservation],
    waitings: Iterable[WaitingWithRank],
) -> list[MemberBooking]:
    bookings = [
        MemberBooking(
            id=reservation.id,
            date=reservation.date,
            time=reservation.time,
            theme=reservation.theme,
            status=BookingStatus.RESERVED,
        )
        for reservation in reservations
    ]
    bookings.extend(
        MemberBooking(
            id=ranked.waiting.id,
            date=ranked.waiting.date,
            time=ranked.waiting.time,
            theme=ranked.waiting.theme,
            status=BookingStatus.WAITING,
            rank=ranked.rank,
        )
        for ranked in waitings
    )
    # sorted() is stable, so reservations stay ahead of waitings on the same slot
    return sorted(bookings, key=lambda booking: (booking.date, booking.start_at))
