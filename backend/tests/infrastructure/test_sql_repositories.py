from datetime import date, datetime, time, timedelta
from typing import AsyncIterator

import pytest
import pytest_asyncio
from roomescape.config import Settings
from roomescape.database import create_tables
from roomescape.domain.errors import DuplicationError
from roomescape.domain.services import BookingStatus, CancellationOutcome
from roomescape.infrastructure.repositories import (
    SqlAlchemyMemberRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyReservationTimeRepository,
    SqlAlchemyThemeRepository,
    SqlAlchemyWaitingRepository,
)
from roomescape.models import Member, Reservation, ReservationTime, Theme, Waiting
from roomescape.usecases.catalog import CatalogService
from roomescape.usecases.members import MemberService
from roomescape.usecases.reservations import ReservationService
from roomescape.usecases.waitings import WaitingService
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

SLOT_DATE = date(2025, 1, 1)
NOW = datetime(2025, 1, 1, 9, 0)
CREATED = datetime(2024, 12, 1, 12, 0)


@pytest_asyncio.fixture
async def session() -> AsyncIterator[AsyncSession]:
    engine = create_async_engine("sqlite+aiosqlite:///:memory:", poolclass=StaticPool)
    await create_tables(engine)
    maker = async_sessionmaker(engine, expire_on_commit=False, class_=AsyncSession)
    async with maker() as db_session:
        db_session.add_all(
            [
                Member(id=1, name="Alice", email="alice@roomescape.test", password_hash="x"),
                Member(id=2, name="Bob", email="bob@roomescape.test", password_hash="x"),
                Member(id=3, name="Carol", email="carol@roomescape.test", password_hash="x"),
                Theme(id=1, name="theme-1", description="haunted library"),
                Theme(id=2, name="theme-2", description="bank heist"),
                ReservationTime(id=1, start_at=time(10, 0)),
                ReservationTime(id=2, start_at=time(13, 0)),
            ]
        )
        await db_session.flush()
        yield db_session
    await engine.dispose()


def _services(session: AsyncSession) -> ReservationService:
    reservation_repo = SqlAlchemyReservationRepository(session)
    catalog = CatalogService(SqlAlchemyThemeRepository(session), SqlAlchemyReservationTimeRepository(session))
    members = MemberService(SqlAlchemyMemberRepository(session), Settings(auth_secret="testsecret"))
    waitings = WaitingService(
        SqlAlchemyWaitingRepository(session), reservation_repo, catalog, members, clock=lambda: NOW
    )
    return ReservationService(reservation_repo, catalog, members, waitings, clock=lambda: NOW)


async def _waiting(session: AsyncSession, member_id: int, *, time_id: int = 1, created_at: datetime = CREATED) -> Waiting:
    repo = SqlAlchemyWaitingRepository(session)
    return await repo.save(
        Waiting(
            date=SLOT_DATE,
            time=await session.get(ReservationTime, time_id),
            theme=await session.get(Theme, 1),
            member=await session.get(Member, member_id),
            created_at=created_at,
        )
    )


@pytest.mark.asyncio
async def test_rank_follows_creation_time_then_id(session: AsyncSession) -> None:
    await _waiting(session, 3, created_at=CREATED + timedelta(minutes=5))
    await _waiting(session, 1, created_at=CREATED)
    await _waiting(session, 2, created_at=CREATED)
    await _waiting(session, 2, time_id=2, created_at=CREATED + timedelta(hours=1))
    repo = SqlAlchemyWaitingRepository(session)

    assert [ranked.rank for ranked in await repo.list_with_rank_by_member(1)] == [0]
    assert {ranked.waiting.time_id: ranked.rank for ranked in await repo.list_with_rank_by_member(2)} == {1: 1, 2: 0}
    assert [ranked.rank for ranked in await repo.list_with_rank_by_member(3)] == [2]


@pytest.mark.asyncio
async def test_first_by_slot_returns_earliest_created(session: AsyncSession) -> None:
    await _waiting(session, 3, created_at=CREATED + timedelta(minutes=5))
    earliest = await _waiting(session, 2, created_at=CREATED)
    repo = SqlAlchemyWaitingRepository(session)

    assert await repo.first_by_slot(SLOT_DATE, 1, 1) is earliest
    assert await repo.first_by_slot(SLOT_DATE, 2, 1) is None
    assert await repo.exists_by_slot_and_member(SLOT_DATE, 1, 1, 2) is True
    assert await repo.exists_by_slot_and_member(SLOT_DATE, 1, 1, 1) is False


@pytest.mark.asyncio
async def test_slot_unique_constraint_surfaces_as_duplication(session: AsyncSession) -> None:
    repo = SqlAlchemyReservationRepository(session)
    ten = await session.get(ReservationTime, 1)
    theme = await session.get(Theme, 1)
    await repo.save(Reservation(date=SLOT_DATE, time=ten, theme=theme, member=await session.get(Member, 1)))

    with pytest.raises(DuplicationError):
        await repo.save(Reservation(date=SLOT_DATE, time=ten, theme=theme, member=await session.get(Member, 2)))


@pytest.mark.asyncio
async def test_waiting_unique_constraint_surfaces_as_duplication(session: AsyncSession) -> None:
    await _waiting(session, 2)
    with pytest.raises(DuplicationError):
        await _waiting(session, 2)


@pytest.mark.asyncio
async def test_search_applies_optional_bounds(session: AsyncSession) -> None:
    service = _services(session)
    alice = await session.get(Member, 1)
    jan_2 = await service.add_reservation(date(2025, 1, 2), 1, 1, alice)
    jan_4 = await service.add_reservation(date(2025, 1, 4), 1, 1, alice)
    await service.add_reservation(date(2025, 1, 4), 1, 2, alice)

    assert await service.search_reservations(1, 1, date(2025, 1, 2), date(2025, 1, 4)) == [jan_2, jan_4]
    assert await service.search_reservations(1, 1, date(2025, 1, 3), None) == [jan_4]
    assert await service.search_reservations(1, 1, None, date(2025, 1, 3)) == [jan_2]
    assert await service.search_reservations(1, 2) == []


@pytest.mark.asyncio
async def test_cancel_promotes_head_of_queue_in_database(session: AsyncSession) -> None:
    service = _services(session)
    alice, bob = await session.get(Member, 1), await session.get(Member, 2)
    reservation = await service.add_reservation(SLOT_DATE, 1, 1, alice)
    await service.waitings.add_waiting(SLOT_DATE, 1, 1, member_id=2)
    await service.waitings.add_waiting(SLOT_DATE, 1, 1, member_id=3)

    outcome = await service.delete_reservation(reservation.id, alice)

    assert outcome == CancellationOutcome.PROMOTED
    [promoted] = await service.find_reservations()
    assert promoted.id == reservation.id
    assert promoted.member_id == bob.id
    assert [booking.status for booking in await service.find_reservations_by_member(bob)] == [BookingStatus.RESERVED]
    remaining = await service.waitings.find_waitings()
    assert [waiting.member_id for waiting in remaining] == [3]
    [carol_rank] = await service.waitings.find_waitings_by_member(remaining[0].member)
    assert carol_rank.rank == 0


@pytest.mark.asyncio
async def test_cancel_with_empty_queue_deletes_row(session: AsyncSession) -> None:
    service = _services(session)
    alice = await session.get(Member, 1)
    reservation = await service.add_reservation(SLOT_DATE, 2, 1, alice)

    assert await service.delete_reservation(reservation.id, alice) == CancellationOutcome.DELETED
    assert await service.find_reservations() == []
    assert await SqlAlchemyReservationRepository(session).exists_by_slot(SLOT_DATE, 2, 1) is False


@pytest.mark.asyncio
async def test_member_email_unique_constraint_surfaces_as_duplication(session: AsyncSession) -> None:
    repo = SqlAlchemyMemberRepository(session)
    saved = await repo.save(Member(name="Erin", email="erin@roomescape.test", password_hash="x"))
    assert await repo.get_by_email("erin@roomescape.test") is saved

    with pytest.raises(DuplicationError):
        await repo.save(Member(name="Alice Again", email="alice@roomescape.test", password_hash="x"))


@pytest.mark.asyncio
async def test_queued_member_cannot_book_in_database(session: AsyncSession) -> None:
    service = _services(session)
    await service.waitings.add_waiting(SLOT_DATE, 1, 1, member_id=2)

    with pytest.raises(DuplicationError):
        await service.add_reservation(SLOT_DATE, 1, 1, await session.get(Member, 2))
    assert await service.find_reservations() == []
