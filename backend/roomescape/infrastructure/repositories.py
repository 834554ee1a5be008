from __future__ import annotations

from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import Select, and_, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import aliased

from ..domain.errors import DuplicationError
from ..domain.repositories import (
    MemberRepository,
    ReservationRepository,
    ReservationTimeRepository,
    ThemeRepository,
    WaitingRepository,
)
from ..domain.services import WaitingWithRank
from ..models import Member, Reservation, ReservationTime, Theme, Waiting


def _utc_now_naive() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class SqlAlchemyThemeRepository(ThemeRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, theme_id: int) -> Theme | None:
        return await self.session.get(Theme, theme_id)

    async def list_all(self) -> List[Theme]:
        return list(await self.session.scalars(select(Theme).order_by(Theme.id)))


class SqlAlchemyReservationTimeRepository(ReservationTimeRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, time_id: int) -> ReservationTime | None:
        return await self.session.get(ReservationTime, time_id)

    async def list_all(self) -> List[ReservationTime]:
        return list(await self.session.scalars(select(ReservationTime).order_by(ReservationTime.start_at)))


class SqlAlchemyMemberRepository(MemberRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def get(self, member_id: int) -> Member | None:
        return await self.session.get(Member, member_id)

    async def get_by_email(self, email: str) -> Member | None:
        return await self.session.scalar(select(Member).where(Member.email == email))

    async def save(self, member: Member) -> Member:
        self.session.add(member)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicationError("email already registered") from exc
        return member


class SqlAlchemyReservationRepository(ReservationRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self) -> List[Reservation]:
        return list(await self.session.scalars(select(Reservation).order_by(Reservation.id)))

    async def get(self, reservation_id: int) -> Reservation | None:
        return await self.session.get(Reservation, reservation_id)

    async def exists_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> bool:
        stmt = select(Reservation.id).where(
            Reservation.date == slot_date,
            Reservation.time_id == time_id,
            Reservation.theme_id == theme_id,
        )
        return await self.session.scalar(stmt.limit(1)) is not None

    async def exists_by_slot_and_member(
        self,
        slot_date: date,
        time_id: int,
        theme_id: int,
        member_id: int,
    ) -> bool:
        stmt = select(Reservation.id).where(
            Reservation.date == slot_date,
            Reservation.time_id == time_id,
            Reservation.theme_id == theme_id,
            Reservation.member_id == member_id,
        )
        return await self.session.scalar(stmt.limit(1)) is not None

    async def list_by_member(self, member_id: int) -> List[Reservation]:
        stmt = select(Reservation).where(Reservation.member_id == member_id).order_by(Reservation.id)
        return list(await self.session.scalars(stmt))

    async def search(
        self,
        *,
        theme_id: int,
        member_id: int,
        date_from: date | None,
        date_to: date | None,
    ) -> List[Reservation]:
        stmt: Select[tuple[Reservation]] = select(Reservation).where(
            Reservation.theme_id == theme_id,
            Reservation.member_id == member_id,
        )
        if date_from is not None:
            stmt = stmt.where(Reservation.date >= date_from)
        if date_to is not None:
            stmt = stmt.where(Reservation.date <= date_to)
        return list(await self.session.scalars(stmt.order_by(Reservation.date, Reservation.id)))

    async def save(self, reservation: Reservation) -> Reservation:
        now = _utc_now_naive()
        if reservation.created_at is None:
            reservation.created_at = now
        reservation.updated_at = now
        if reservation.id is None:
            self.session.add(reservation)
            saved = reservation
        else:
            # replacement carrying an existing id overwrites the stored row
            saved = await self.session.merge(reservation)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicationError("reservation already exists for this slot") from exc
        return saved

    async def delete_by_id(self, reservation_id: int) -> None:
        reservation = await self.session.get(Reservation, reservation_id)
        if reservation is None:
            return
        await self.session.delete(reservation)
        await self.session.flush()


class SqlAlchemyWaitingRepository(WaitingRepository):
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def list_all(self) -> List[Waiting]:
        stmt = select(Waiting).order_by(Waiting.created_at, Waiting.id)
        return list(await self.session.scalars(stmt))

    async def get(self, waiting_id: int) -> Waiting | None:
        return await self.session.get(Waiting, waiting_id)

    async def exists_by_slot_and_member(
        self,
        slot_date: date,
        time_id: int,
        theme_id: int,
        member_id: int,
    ) -> bool:
        stmt = select(Waiting.id).where(
            Waiting.date == slot_date,
            Waiting.time_id == time_id,
            Waiting.theme_id == theme_id,
            Waiting.member_id == member_id,
        )
        return await self.session.scalar(stmt.limit(1)) is not None

    async def first_by_slot(self, slot_date: date, time_id: int, theme_id: int) -> Optional[Waiting]:
        stmt = (
            select(Waiting)
            .where(
                Waiting.date == slot_date,
                Waiting.time_id == time_id,
                Waiting.theme_id == theme_id,
            )
            .order_by(Waiting.created_at, Waiting.id)
            .limit(1)
        )
        return await self.session.scalar(stmt)

    async def list_with_rank_by_member(self, member_id: int) -> List[WaitingWithRank]:
        ahead = aliased(Waiting)
        rank = (
            select(func.count(ahead.id))
            .where(
                ahead.date == Waiting.date,
                ahead.time_id == Waiting.time_id,
                ahead.theme_id == Waiting.theme_id,
                or_(
                    ahead.created_at < Waiting.created_at,
                    and_(ahead.created_at == Waiting.created_at, ahead.id < Waiting.id),
                ),
            )
            .correlate(Waiting)
            .scalar_subquery()
        )
        stmt = (
            select(Waiting, rank.label("rank"))
            .where(Waiting.member_id == member_id)
            .order_by(Waiting.date, Waiting.id)
        )
        rows = await self.session.execute(stmt)
        return [WaitingWithRank(waiting=waiting, rank=int(position)) for waiting, position in rows.all()]

    async def save(self, waiting: Waiting) -> Waiting:
        if waiting.created_at is None:
            waiting.created_at = _utc_now_naive()
        self.session.add(waiting)
        try:
            await self.session.flush()
        except IntegrityError as exc:
            raise DuplicationError("already waiting for this slot") from exc
        return waiting

    async def delete(self, waiting: Waiting) -> None:
        await self.session.delete(waiting)
        await self.session.flush()
