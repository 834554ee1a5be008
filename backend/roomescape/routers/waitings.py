from fastapi import APIRouter, Depends, HTTPException, Path, Response, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import build_waiting_service, get_current_member_id, get_session, to_http_error
from ..domain.errors import DomainError
from ..schemas import WaitingCreate, WaitingRead
from ..utils.audit_log import emit_audit_log

router = APIRouter(prefix="/waitings", tags=["waitings"])


@router.post("", response_model=WaitingRead, status_code=status.HTTP_201_CREATED)
async def create_waiting(
    payload: WaitingCreate,
    session: AsyncSession = Depends(get_session),
    member_id: int = Depends(get_current_member_id),
) -> WaitingRead:
    service = build_waiting_service(session)
    async with session.begin():
        try:
            waiting = await service.add_waiting(payload.date, payload.time_id, payload.theme_id, member_id)
        except DomainError as exc:
            raise to_http_error(exc) from exc
        try:
            emit_audit_log(
                action="waiting.created",
                initiator="member",
                member_id=member_id,
                waiting_id=waiting.id,
                theme_id=payload.theme_id,
                slot_date=payload.date,
                start_at=waiting.time.start_at,
            )
        except RuntimeError as exc:
            raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed") from exc

    return WaitingRead.from_db(waiting=waiting)


@router.delete("/{waiting_id}", status_code=status.HTTP_204_NO_CONTENT)
async def cancel_waiting(
    waiting_id: int = Path(..., ge=1),
    session: AsyncSession = Depends(get_session),
    member_id: int = Depends(get_current_member_id),
) -> Response:
    service = build_waiting_service(session)
    async with session.begin():
        try:
            member = await service.members.get_login_member_by_id(member_id)
            deleted = await service.delete_by_id(waiting_id, member)
        except DomainError as exc:
            raise to_http_error(exc) from exc
        if deleted:
            try:
                emit_audit_log(action="waiting.cancelled", initiator="member", member_id=member_id, waiting_id=waiting_id)
            except RuntimeError as exc:
                raise HTTPException(
                    status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="audit log failed"
                ) from exc

    return Response(status_code=status.HTTP_204_NO_CONTENT)
