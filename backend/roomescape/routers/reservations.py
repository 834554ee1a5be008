from typing import List

from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import build_reservation_service, get_current_member_id, get_session, to_http_error
from ..domain.errors import DomainError
from ..domain.services import CancellationOutcome
from ..schemas import MemberBookingRead, ReservationCreate, ReservationRead
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="", tags=["reservations"])


@router.post("/reservations", response_model=ReservationRead, status_code=status.HTTP_201_CREATED)
async def create_reservation(
    payload: ReservationCreate,
    session: AsyncSession = Depends(get_session),
    member_id: int = Depends(get_current_member_id),
) -> ReservationRead:
    service = build_reservation_service(session)
    async with session.begin():
        try:
            member = await service.members.get_login_member_by_id(member_id)
            reservation = await service.add_reservation(payload.date, payload.time_id, payload.theme_id, member)
        except DomainError as exc:
            raise to_http_error(exc) from exc
        try:
            emit_audit_log(
                action="reservation.created",
                initiator="member",
                member_id=member_id,
                reservation_id=reservation.id,
                theme_id=payload.theme_id,
                slot_date=payload.date,
                start_at=reservation.time.start_at,
            )
        except RuntimeError as exc:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc

    return ReservationRead.from_db(reservation=reservation)


@router.get("/me/reservations", response_model=List[MemberBookingRead])
async def list_my_reservations(
    session: AsyncSession = Depends(get_session),
    member_id: int = Depends(get_current_member_id),
) -> list[MemberBookingRead]:
    service = build_reservation_service(session)
    try:
        member = await service.members.get_login_member_by_id(member_id)
    except DomainError as exc:
        raise to_http_error(exc) from exc
    bookings = await service.find_reservations_by_member(member)
    return [MemberBookingRead.from_domain(booking=booking) for booking in bookings]


@router.delete("/reservations/{reservation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_reservation(
    reservation_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    member_id: int = Depends(get_current_member_id),
) -> Response:
    service = build_reservation_service(session)
    async with session.begin():
        try:
            member = await service.members.get_login_member_by_id(member_id)
            outcome = await service.delete_reservation(reservation_id, member)
        except DomainError as exc:
            raise to_http_error(exc) from exc
        if outcome != CancellationOutcome.IGNORED:
            try:
                emit_audit_log(
                    action=(
                        "reservation.promoted" if outcome == CancellationOutcome.PROMOTED else "reservation.cancelled"
                    ),
                    initiator="member",
                    member_id=member_id,
                    reservation_id=reservation_id,
                )
            except RuntimeError as exc:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed"
                ) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
