import logging
from typing import AsyncIterator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from .database import async_session
from .domain.errors import AuthenticationError, DomainError, ErrorKind
from .infrastructure.repositories import (
    SqlAlchemyMemberRepository,
    SqlAlchemyReservationRepository,
    SqlAlchemyReservationTimeRepository,
    SqlAlchemyThemeRepository,
    SqlAlchemyWaitingRepository,
)
from .models import Member, MemberRole
from .usecases.catalog import CatalogService
from .usecases.members import MemberService
from .usecases.reservations import ReservationService
from .usecases.waitings import WaitingService

logger = logging.getLogger(__name__)

_BEARER_CHALLENGE = {"WWW-Authenticate": "Bearer"}


async def get_session() -> AsyncIterator[AsyncSession]:
    async with async_session() as session:
        yield session


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=detail, headers=_BEARER_CHALLENGE)


def _member_id_from_header(authorization: str | None, members: MemberService) -> int:
    if authorization is None:
        raise _unauthorized("bearer token required")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("bearer token required")
    try:
        return members.get_member_id_by_token(token)
    except AuthenticationError as exc:
        raise _unauthorized("invalid token") from exc


async def _lookup_role(session: AsyncSession, member_id: int) -> MemberRole | None:
    try:
        role = await session.scalar(select(Member.role).where(Member.id == member_id))
    except SQLAlchemyError as exc:
        logger.exception("member lookup failed")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="member lookup failed") from exc
    finally:
        # end the autobegun transaction so routers can open their own with session.begin()
        await session.rollback()
    return role


async def get_current_member_id(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> int:
    member_id = _member_id_from_header(authorization, build_member_service(session))
    if await _lookup_role(session, member_id) is None:
        raise _unauthorized("member not found")
    return member_id


async def get_current_admin_id(
    authorization: str | None = Header(default=None),
    session: AsyncSession = Depends(get_session),
) -> int:
    member_id = _member_id_from_header(authorization, build_member_service(session))
    role = await _lookup_role(session, member_id)
    if role is None:
        raise _unauthorized("member not found")
    if role != MemberRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="admin role required")
    return member_id


_STATUS_BY_KIND = {
    ErrorKind.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorKind.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ErrorKind.DUPLICATION: status.HTTP_409_CONFLICT,
    ErrorKind.AUTHENTICATION: status.HTTP_401_UNAUTHORIZED,
}


def to_http_error(exc: DomainError) -> HTTPException:
    return HTTPException(status_code=_STATUS_BY_KIND[exc.kind], detail=exc.message)


def build_catalog_service(session: AsyncSession) -> CatalogService:
    return CatalogService(SqlAlchemyThemeRepository(session), SqlAlchemyReservationTimeRepository(session))


def build_member_service(session: AsyncSession) -> MemberService:
    return MemberService(SqlAlchemyMemberRepository(session))


def build_waiting_service(session: AsyncSession) -> WaitingService:
    return WaitingService(
        SqlAlchemyWaitingRepository(session),
        SqlAlchemyReservationRepository(session),
        build_catalog_service(session),
        build_member_service(session),
    )


def build_reservation_service(session: AsyncSession) -> ReservationService:
    return ReservationService(
        SqlAlchemyReservationRepository(session),
        build_catalog_service(session),
        build_member_service(session),
        build_waiting_service(session),
    )
