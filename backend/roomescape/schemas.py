from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_serializer

from .domain.services import BookingStatus, MemberBooking
from .models import Member, Reservation, ReservationTime, Theme, Waiting


class LoginRequest(BaseModel):
    email: str = Field(min_length=3)
    password: str = Field(min_length=1)


class MemberCreate(BaseModel):
    name: str = Field(min_length=1, max_length=255)
    email: str = Field(min_length=3)
    password: str = Field(min_length=8)


class MemberRead(BaseModel):
    member_id: int
    name: str
    email: str

    @classmethod
    def from_db(cls, *, member: Member) -> "MemberRead":
        return cls(member_id=member.id, name=member.name, email=member.email)


class TokenRead(BaseModel):
    access_token: str
    token_type: str = "bearer"


class ThemeRead(BaseModel):
    theme_id: int
    name: str
    description: str
    thumbnail: Optional[str]

    @classmethod
    def from_db(cls, *, theme: Theme) -> "ThemeRead":
        return cls(
            theme_id=theme.id,
            name=theme.name,
            description=theme.description,
            thumbnail=theme.thumbnail,
        )


class TimeRead(BaseModel):
    time_id: int
    start_at: time

    @field_serializer("start_at")
    def _ser_time(self, value: time) -> str:
        return value.strftime("%H:%M")

    @classmethod
    def from_db(cls, *, reservation_time: ReservationTime) -> "TimeRead":
        return cls(time_id=reservation_time.id, start_at=reservation_time.start_at)


class ReservationCreate(BaseModel):
    date: date
    time_id: int = Field(ge=1)
    theme_id: int = Field(ge=1)


class AdminReservationCreate(ReservationCreate):
    member_id: int = Field(ge=1)


class WaitingCreate(ReservationCreate):
    pass


class ReservationRead(BaseModel):
    reservation_id: int
    member_id: int
    member_name: str
    date: date
    time: TimeRead
    theme: ThemeRead

    @classmethod
    def from_db(cls, *, reservation: Reservation) -> "ReservationRead":
        return cls(
            reservation_id=reservation.id,
            member_id=reservation.member.id,
            member_name=reservation.member.name,
            date=reservation.date,
            time=TimeRead.from_db(reservation_time=reservation.time),
            theme=ThemeRead.from_db(theme=reservation.theme),
        )


class WaitingRead(BaseModel):
    waiting_id: int
    member_id: int
    member_name: str
    date: date
    time: TimeRead
    theme: ThemeRead

    @classmethod
    def from_db(cls, *, waiting: Waiting) -> "WaitingRead":
        return cls(
            waiting_id=waiting.id,
            member_id=waiting.member.id,
            member_name=waiting.member.name,
            date=waiting.date,
            time=TimeRead.from_db(reservation_time=waiting.time),
            theme=ThemeRead.from_db(theme=waiting.theme),
        )


class MemberBookingRead(BaseModel):
    id: int
    date: date
    time: TimeRead
    theme: ThemeRead
    status: BookingStatus
    rank: Optional[int] = None

    @classmethod
    def from_domain(cls, *, booking: MemberBooking) -> "MemberBookingRead":
        return cls(
            id=booking.id,
            date=booking.date,
            time=TimeRead.from_db(reservation_time=booking.time),
            theme=ThemeRead.from_db(theme=booking.theme),
            status=booking.status,
            rank=booking.rank,
        )
