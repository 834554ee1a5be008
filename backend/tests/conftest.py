from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Optional

import pytest
from roomescape.config import Settings
from roomescape.domain.services import WaitingWithRank
from roomescape.models import Member, MemberRole, Reservation, ReservationTime, Theme, Waiting
from roomescape.usecases.catalog import CatalogService
from roomescape.usecases.members import MemberService
from roomescape.usecases.reservations import ReservationService
from roomescape.usecases.waitings import WaitingService

NOW = datetime(2025, 1, 1, 9, 0)
SLOT_DATE = date(2025, 1, 1)


def _slot_key(slot_date: date, time_id: int, theme_id: int) -> tuple[date, int, int]:
    return slot_date, time_id, theme_id


class FakeThemeRepo:
    def __init__(self, themes: List[Theme]) -> None:
        self.themes = {theme.id: theme for theme in themes}

    async def get(self, theme_id: int) -> Optional[Theme]:
        return self.themes.get(theme_id)

    async def list_all(self) -> List[Theme]:
        return [self.themes[key] for key in sorted(self.themes)]


class FakeTimeRepo:
    def __init__(self, times: List[ReservationTime]) -> None:
        self.times = {reservation_time.id: reservation_time for reservation_time in times}

    async def get(self, time_id: int) -> Optional[ReservationTime]:
        return self.times.get(time_id)

    async def list_all(self) -> List[ReservationTime]:
        return sorted(self.times.values(), key=lambda reservation_time: reservation_time.start_at)


class FakeMemberRepo:
    def __init__(self, members: List[Member]) -> None:
        self.members = {member.id: member for member in members}

    async def get(self, member_id: int) -> Optional[Member]:
        return self.members.get(member_id)

    async def get_by_email(self, email: str) -> Optional[Member]:
        return next((member for member in self.members.values() if member.email == email), None)

    async def save(self, member: Member) -> Member:
        if member.id is None:
            member.id = max(self.members, default=0) + 1
        self.members[member.id] = member
        return member


class FakeReservationRepo:
    def __init__(self) -> None:
        self.rows: Dict[int, Reservation] = {}
        self._next_id = 1

    async def list_all(self) -> List[Reservation]:
        return [self.rows[key] for key in sorted(self.rows)]

    async def get(self, reservation_id: int) -> Optional[Reservation]:
        return self.rows.get(reservation_id)

    async def exists_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> bool:
        key = _slot_key(slot_date, time_id, theme_id)
        return any(_slot_key(r.date, r.time.id, r.theme.id) == key for r in self.rows.values())

    async def exists_by_slot_and_member(self, slot_date: date, time_id: int, theme_id: int, member_id: int) -> bool:
        key = _slot_key(slot_date, time_id, theme_id)
        return any(
            _slot_key(r.date, r.time.id, r.theme.id) == key and r.member.id == member_id for r in self.rows.values()
        )

    async def list_by_member(self, member_id: int) -> List[Reservation]:
        return [r for r in await self.list_all() if r.member.id == member_id]

    async def search(
        self,
        *,
        theme_id: int,
        member_id: int,
        date_from: Optional[date],
        date_to: Optional[date],
    ) -> List[Reservation]:
        return [
            r
            for r in await self.list_all()
            if r.theme.id == theme_id
            and r.member.id == member_id
            and (date_from is None or r.date >= date_from)
            and (date_to is None or r.date <= date_to)
        ]

    async def save(self, reservation: Reservation) -> Reservation:
        if reservation.id is None:
            reservation.id = self._next_id
            self._next_id += 1
        self.rows[reservation.id] = reservation
        return reservation

    async def delete_by_id(self, reservation_id: int) -> None:
        self.rows.pop(reservation_id, None)


class FakeWaitingRepo:
    """Keeps insertion order, which stands in for creation time."""

    def __init__(self) -> None:
        self.rows: List[Waiting] = []
        self._next_id = 1

    async def list_all(self) -> List[Waiting]:
        return list(self.rows)

    async def get(self, waiting_id: int) -> Optional[Waiting]:
        return next((w for w in self.rows if w.id == waiting_id), None)

    async def exists_by_slot_and_member(self, slot_date: date, time_id: int, theme_id: int, member_id: int) -> bool:
        key = _slot_key(slot_date, time_id, theme_id)
        return any(_slot_key(w.date, w.time.id, w.theme.id) == key and w.member.id == member_id for w in self.rows)

    async def first_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> Optional[Waiting]:
        key = _slot_key(slot_date, time_id, theme_id)
        return next((w for w in self.rows if _slot_key(w.date, w.time.id, w.theme.id) == key), None)

    async def list_with_rank_by_member(self, member_id: int) -> List[WaitingWithRank]:
        ranked = []
        for index, waiting in enumerate(self.rows):
            if waiting.member.id != member_id:
                continue
            key = _slot_key(waiting.date, waiting.time.id, waiting.theme.id)
            rank = sum(1 for earlier in self.rows[:index] if _slot_key(earlier.date, earlier.time.id, earlier.theme.id) == key)
            ranked.append(WaitingWithRank(waiting=waiting, rank=rank))
        return ranked

    async def save(self, waiting: Waiting) -> Waiting:
        waiting.id = self._next_id
        waiting.created_at = NOW + timedelta(seconds=self._next_id)
        self._next_id += 1
        self.rows.append(waiting)
        return waiting

    async def delete(self, waiting: Waiting) -> None:
        self.rows = [w for w in self.rows if w.id != waiting.id]


def make_member(member_id: int, name: str, role: MemberRole = MemberRole.USER) -> Member:
    return Member(
        id=member_id,
        name=name,
        email=f"{name.lower()}@roomescape.test",
        password_hash="unused",
        role=role,
    )


@dataclass
class World:
    members: Dict[str, Member]
    themes: Dict[int, Theme]
    times: Dict[int, ReservationTime]
    reservation_repo: FakeReservationRepo
    waiting_repo: FakeWaitingRepo
    catalog: CatalogService
    member_service: MemberService
    waitings: WaitingService
    reservations: ReservationService


@pytest.fixture
def world() -> World:
    members = {
        "alice": make_member(1, "Alice"),
        "bob": make_member(2, "Bob"),
        "carol": make_member(3, "Carol"),
        "admin": make_member(9, "Admin", MemberRole.ADMIN),
    }
    themes = {
        1: Theme(id=1, name="theme-1", description="haunted library", thumbnail=None),
        2: Theme(id=2, name="theme-2", description="bank heist", thumbnail=None),
    }
    times = {
        1: ReservationTime(id=1, start_at=time(10, 0)),
        2: ReservationTime(id=2, start_at=time(13, 0)),
        3: ReservationTime(id=3, start_at=time(8, 0)),
        4: ReservationTime(id=4, start_at=time(9, 0)),
    }
    reservation_repo = FakeReservationRepo()
    waiting_repo = FakeWaitingRepo()
    catalog = CatalogService(FakeThemeRepo(list(themes.values())), FakeTimeRepo(list(times.values())))
    member_service = MemberService(
        FakeMemberRepo(list(members.values())),
        Settings(auth_secret="testsecret"),
    )
    waitings = WaitingService(waiting_repo, reservation_repo, catalog, member_service, clock=lambda: NOW)
    reservations = ReservationService(reservation_repo, catalog, member_service, waitings, clock=lambda: NOW)
    return World(
        members=members,
        themes=themes,
        times=times,
        reservation_repo=reservation_repo,
        waiting_repo=waiting_repo,
        catalog=catalog,
        member_service=member_service,
        waitings=waitings,
        reservations=reservations,
    )
