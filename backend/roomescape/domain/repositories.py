from __future__ import annotations

from datetime import date
from typing import Protocol

from ..models import Member, Reservation, ReservationTime, Theme, Waiting
from .services import WaitingWithRank


class ThemeRepository(Protocol):
    async def get(self, theme_id: int) -> Theme | None: ...

    async def list_all(self) -> list[Theme]: ...


class ReservationTimeRepository(Protocol):
    async def get(self, time_id: int) -> ReservationTime | None: ...

    async def list_all(self) -> list[ReservationTime]: ...


class MemberRepository(Protocol):
    async def get(self, member_id: int) -> Member | None: ...

    async def get_by_email(self, email: str) -> Member | None: ...

    async def save(self, member: Member) -> Member: ...


class ReservationRepository(Protocol):
    async def list_all(self) -> list[Reservation]: ...

    async def get(self, reservation_id: int) -> Reservation | None: ...

    async def exists_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> bool: ...

    async def exists_by_slot_and_member(
        self,
        slot_date: date,
        time_id: int,
        theme_id: int,
        member_id: int,
    ) -> bool: ...

    async def list_by_member(self, member_id: int) -> list[Reservation]: ...

    async def search(
        self,
        *,
        theme_id: int,
        member_id: int,
        date_from: date | None,
        date_to: date | None,
    ) -> list[Reservation]: ...

    async def save(self, reservation: Reservation) -> Reservation: ...

    async def delete_by_id(self, reservation_id: int) -> None: ...


class WaitingRepository(Protocol):
    async def list_all(self) -> list[Waiting]: ...

    async def get(self, waiting_id: int) -> Waiting | None: ...

    async def exists_by_slot_and_member(
        self,
        slot_date: date,
        time_id: int,
        theme_id: int,
        member_id: int,
    ) -> bool: ...

    async def first_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> Waiting | None: ...

    async def list_with_rank_by_member(self, member_id: int) -> list[WaitingWithRank]: ...

    async def save(self, waiting: Waiting) -> Waiting: ...

    async def delete(self, waiting: Waiting) -> None: ...
