from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..deps import build_member_service, get_session, to_http_error
from ..domain.errors import DomainError
from ..schemas import LoginRequest, MemberCreate, MemberRead, TokenRead

router = APIRouter(prefix="", tags=["members"])


@router.post("/members", response_model=MemberRead, status_code=status.HTTP_201_CREATED)
async def register(payload: MemberCreate, session: AsyncSession = Depends(get_session)) -> MemberRead:
    service = build_member_service(session)
    async with session.begin():
        try:
            member = await service.register(payload.name, payload.email, payload.password)
        except DomainError as exc:
            raise to_http_error(exc) from exc
    return MemberRead.from_db(member=member)


@router.post("/login", response_model=TokenRead)
async def login(payload: LoginRequest, session: AsyncSession = Depends(get_session)) -> TokenRead:
    try:
        token = await build_member_service(session).login(payload.email, payload.password)
    except DomainError as exc:
        raise to_http_error(exc) from exc
    return TokenRead(access_token=token)
