import logging
from datetime import date, datetime
from typing import Callable, Optional

from ..domain.errors import DuplicationError, NotFoundError
from ..domain.repositories import ReservationRepository, WaitingRepository
from ..domain.services import SlotSnapshot, WaitingWithRank, validate_booking
from ..models import Member, ReservationTime, Theme, Waiting
from ..utils.time import now_local, slot_starts_at
from .catalog import CatalogService
from .members import MemberService

logger = logging.getLogger(__name__)


class WaitingService:
    def __init__(
        self,
        waiting_repo: WaitingRepository,
        reservation_repo: ReservationRepository,
        catalog: CatalogService,
        members: MemberService,
        *,
        clock: Callable[[], datetime] = now_local,
    ) -> None:
        self.waiting_repo = waiting_repo
        self.reservation_repo = reservation_repo
        self.catalog = catalog
        self.members = members
        self.clock = clock

    async def add_waiting(self, slot_date: date, time_id: int, theme_id: int, member_id: int) -> Waiting:
        reservation_time = await self.catalog.get_time(time_id)
        theme = await self.catalog.get_theme(theme_id)
        member = await self.members.get_login_member_by_id(member_id)

        waiting = Waiting(date=slot_date, time=reservation_time, theme=theme, member=member)
        snapshot = SlotSnapshot(
            starts_at=slot_starts_at(slot_date, reservation_time.start_at),
            now=self.clock(),
            already_taken=await self.waiting_repo.exists_by_slot_and_member(
                slot_date, reservation_time.id, theme.id, member.id
            ),
        )
        validate_booking(snapshot, duplicate_message="already waiting for this slot")
        if await self.reservation_repo.exists_by_slot_and_member(
            slot_date, reservation_time.id, theme.id, member.id
        ):
            raise DuplicationError("member already holds the reservation for this slot")

        saved = await self.waiting_repo.save(waiting)
        logger.info("waiting %s queued for %s %s theme=%s", saved.id, slot_date, reservation_time.start_at, theme.id)
        return saved

    async def is_queued(self, slot_date: date, time_id: int, theme_id: int, member_id: int) -> bool:
        return await self.waiting_repo.exists_by_slot_and_member(slot_date, time_id, theme_id, member_id)

    async def find_waitings_by_member(self, member: Member) -> list[WaitingWithRank]:
        return await self.waiting_repo.list_with_rank_by_member(member.id)

    async def delete_by_id(self, waiting_id: int, requester: Member) -> bool:
        """Withdraw a waiting entry. Returns False when `requester` does not own it."""
        waiting = await self.waiting_repo.get(waiting_id)
        if waiting is None:
            raise NotFoundError(f"waiting {waiting_id} not found")
        if not waiting.is_owned_by(requester):
            logger.warning("member %s tried to withdraw waiting %s owned by someone else", requester.id, waiting_id)
            return False
        await self.waiting_repo.delete(waiting)
        return True

    async def consume(self, waiting: Waiting) -> None:
        await self.waiting_repo.delete(waiting)

    async def find_waitings(self) -> list[Waiting]:
        return await self.waiting_repo.list_all()

    async def find_waiting_by_slot(
        self,
        slot_date: date,
        reservation_time: ReservationTime,
        theme: Theme,
    ) -> Optional[Waiting]:
        return await self.waiting_repo.first_by_slot(slot_date, reservation_time.id, theme.id)
