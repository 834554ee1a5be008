from ..domain.errors import NotFoundError
from ..domain.repositories import ReservationTimeRepository, ThemeRepository
from ..models import ReservationTime, Theme


class CatalogService:
    """Read-only lookups over themes and reservation times."""

    def __init__(self, theme_repo: ThemeRepository, time_repo: ReservationTimeRepository) -> None:
        self.theme_repo = theme_repo
        self.time_repo = time_repo

    async def get_time(self, time_id: int) -> ReservationTime:
        reservation_time = await self.time_repo.get(time_id)
        if reservation_time is None:
            raise NotFoundError(f"reservation time {time_id} not found")
        return reservation_time

    async def get_theme(self, theme_id: int) -> Theme:
        theme = await self.theme_repo.get(theme_id)
        if theme is None:
            raise NotFoundError(f"theme {theme_id} not found")
        return theme

    async def find_times(self) -> list[ReservationTime]:
        return await self.time_repo.list_all()

    async def find_themes(self) -> list[Theme]:
        return await self.theme_repo.list_all()
