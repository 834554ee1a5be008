from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import (
    build_reservation_service,
    build_waiting_service,
    get_current_admin_id,
    get_session,
    to_http_error,
)
from ..domain.errors import DomainError
from ..schemas import AdminReservationCreate, ReservationRead, WaitingRead
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(get_current_admin_id)])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation_for_member(
    payload: AdminReservationCreate,
    session: AsyncSession = Depends(get_session),
    admin_id: int = Depends(get_current_admin_id),
) -> ReservationRead:
    service = build_reservation_service(session)
    async with session.begin():
        try:
            reservation = await service.add_reservation_by_admin(
                payload.date, payload.time_id, payload.theme_id, payload.member_id
            )
        except DomainError as exc:
            raise to_http_error(exc) from exc
        try:
            emit_audit_log(
                action="reservation.created",
                initiator="admin",
                member_id=payload.member_id,
                reservation_id=reservation.id,
                theme_id=payload.theme_id,
                slot_date=payload.date,
                start_at=reservation.time.start_at,
                extra={"admin_id": admin_id},
            )
        except RuntimeError as exc:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc

    return ReservationRead.from_db(reservation=reservation)


@router.get("/reservations", response_model=List[ReservationRead])
async def list_reservations(session: AsyncSession = Depends(get_session)) -> list[ReservationRead]:
    reservations = await build_reservation_service(session).find_reservations()
    return [ReservationRead.from_db(reservation=reservation) for reservation in reservations]


@router.get("/reservations/search", response_model=List[ReservationRead])
async def search_reservations(
    theme_id: int = Query(..., ge=1),
    member_id: int = Query(..., ge=1),
    date_from: Optional[date] = Query(default=None),
    date_to: Optional[date] = Query(default=None),
    session: AsyncSession = Depends(get_session),
) -> list[ReservationRead]:
    if date_from is not None and date_to is not None and date_from > date_to:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="date_from must not be after date_to")
    try:
        reservations = await build_reservation_service(session).search_reservations(
            theme_id, member_id, date_from, date_to
        )
    except DomainError as exc:
        raise to_http_error(exc) from exc
    return [ReservationRead.from_db(reservation=reservation) for reservation in reservations]


@router.get("/waitings", response_model=List[WaitingRead])
async def list_waitings(session: AsyncSession = Depends(get_session)) -> list[WaitingRead]:
    waitings = await build_waiting_service(session).find_waitings()
    return [WaitingRead.from_db(waiting=waiting) for waiting in waitings]
