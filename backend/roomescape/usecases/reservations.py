import logging
from datetime import date, datetime
from typing import Callable

from ..domain.errors import DuplicationError, NotFoundError
from ..domain.repositories import ReservationRepository
from ..domain.services import (
    CancellationOutcome,
    MemberBooking,
    SlotSnapshot,
    merge_itinerary,
    validate_booking,
)
from ..models import Member, Reservation, Waiting
from ..utils.time import now_local, slot_starts_at
from .catalog import CatalogService
from .members import MemberService
from .waitings import WaitingService

logger = logging.getLogger(__name__)


class ReservationService:
    def __init__(
        self,
        reservation_repo: ReservationRepository,
        catalog: CatalogService,
        members: MemberService,
        waitings: WaitingService,
        *,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.reservation_repo = reservation_repo
        self.catalog = catalog
        self.members = members
        self.waitings = waitings
        self.clock = clock

    async def add_reservation(self, slot_date: date, time_id: int, theme_id: int, member: Member) -> Reservation:
        reservation_time = await self.catalog.get_time(time_id)
        theme = await self.catalog.get_theme(theme_id)

        reservation = Reservation(date=slot_date, time=reservation_time, theme=theme, member=member)
        await self._validate(reservation)
        saved = await self.reservation_repo.save(reservation)
        logger.info("reservation %s booked by member %s", saved.id, member.id)
        return saved

    async def add_reservation_by_admin(
        self,
        slot_date: date,
        time_id: int,
        theme_id: int,
        member_id: int,
    ) -> Reservation:
        member = await self.members.get_login_member_by_id(member_id)
        return await self.add_reservation(slot_date, time_id, theme_id, member)

    async def _validate(self, reservation: Reservation) -> None:
        snapshot = SlotSnapshot(
            starts_at=slot_starts_at(reservation.date, reservation.time.start_at),
            now=self.clock(),
            already_taken=await self.reservation_repo.exists_by_slot(
                reservation.date, reservation.time.id, reservation.theme.id
            ),
        )
        validate_booking(snapshot, duplicate_message="reservation already exists for this slot")
        if await self.waitings.is_queued(
            reservation.date, reservation.time.id, reservation.theme.id, reservation.member.id
        ):
            raise DuplicationError("member is already waiting for this slot")

    async def find_reservations(self) -> list[Reservation]:
        return await self.reservation_repo.list_all()

    async def search_reservations(
        self,
        theme_id: int,
        member_id: int,
        date_from: date | None = None,
        date_to: date | None = None,
    ) -> list[Reservation]:
        theme = await self.catalog.get_theme(theme_id)
        member = await self.members.get_by_id(member_id)
        return await self.reservation_repo.search(
            theme_id=theme.id,
            member_id=member.id,
            date_from=date_from,
            date_to=date_to,
        )

    async def find_reservations_by_member(self, member: Member) -> list[MemberBooking]:
        reservations = await self.reservation_repo.list_by_member(member.id)
        waitings = await self.waitings.find_waitings_by_member(member)
        return merge_itinerary(reservations, waitings)

    async def delete_reservation(self, reservation_id: int, requester: Member) -> CancellationOutcome:
        reservation = await self.reservation_repo.get(reservation_id)
        if reservation is None:
            raise NotFoundError(f"reservation {reservation_id} not found")

        # non-owners get a silent no-op, not an error
        if not reservation.is_owned_by(requester):
            logger.warning(
                "member %s tried to cancel reservation %s owned by someone else", requester.id, reservation_id
            )
            return CancellationOutcome.IGNORED

        waiting = await self.waitings.find_waiting_by_slot(reservation.date, reservation.time, reservation.theme)
        if waiting is None:
            await self.reservation_repo.delete_by_id(reservation_id)
            return CancellationOutcome.DELETED

        await self._promote(waiting, reservation)
        return CancellationOutcome.PROMOTED

    async def _promote(self, waiting: Waiting, reservation: Reservation) -> None:
        previous_owner_id = reservation.member.id
        replacement = Reservation(
            id=reservation.id,
            date=reservation.date,
            time=reservation.time,
            theme=reservation.theme,
            member=waiting.member,
            created_at=reservation.created_at,
        )
        await self.reservation_repo.save(replacement)
        await self.waitings.consume(waiting)
        logger.info(
            "reservation %s handed from member %s to waiting member %s",
            reservation.id,
            previous_owner_id,
            waiting.member.id,
        )
