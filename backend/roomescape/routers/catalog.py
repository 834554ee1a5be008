from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import build_catalog_service, get_session
from ..schemas import ThemeRead, TimeRead

router = APIRouter(prefix="", tags=["catalog"])


@router.get("/themes", response_model=List[ThemeRead])
async def list_themes(session: AsyncSession = Depends(get_session)) -> list[ThemeRead]:
    themes = await build_catalog_service(session).find_themes()
    return [ThemeRead.from_db(theme=theme) for theme in themes]


@router.get("/times", response_model=List[TimeRead])
async def list_times(session: AsyncSession = Depends(get_session)) -> list[TimeRead]:
    times = await build_catalog_service(session).find_times()
    return [TimeRead.from_db(reservation_time=reservation_time) for reservation_time in times]
