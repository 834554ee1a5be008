from datetime import timedelta

from ..config import Settings, get_settings
from ..domain.errors import AuthenticationError, DuplicationError, NotFoundError
from ..domain.repositories import MemberRepository
from ..models import Member, MemberRole
from ..utils.auth import create_access_token, decode_access_token, hash_password, verify_password


class MemberService:
    def __init__(self, member_repo: MemberRepository, settings: Settings | None = None) -> None:
        self.member_repo = member_repo
        self.settings = settings or get_settings()

    async def get_login_member_by_id(self, member_id: int) -> Member:
        member = await self.member_repo.get(member_id)
        if member is None:
            raise NotFoundError(f"member {member_id} not found")
        return member

    async def get_by_id(self, member_id: int) -> Member:
        return await self.get_login_member_by_id(member_id)

    async def register(self, name: str, email: str, password: str) -> Member:
        if await self.member_repo.get_by_email(email) is not None:
            raise DuplicationError("email already registered")
        member = Member(name=name, email=email, password_hash=hash_password(password), role=MemberRole.USER)
        return await self.member_repo.save(member)

    async def login(self, email: str, password: str) -> str:
        """Check credentials and return a signed access token for the member."""
        member = await self.member_repo.get_by_email(email)
        if member is None:
            raise NotFoundError("no member registered with this email")
        if not verify_password(password, member.password_hash):
            raise AuthenticationError("password does not match")
        return create_access_token(
            member_id=member.id,
            secret=self.settings.auth_secret,
            algorithm=self.settings.auth_algorithm,
            expires_delta=timedelta(minutes=self.settings.access_token_minutes),
        )

    def get_member_id_by_token(self, token: str) -> int:
        try:
            return decode_access_token(
                token,
                secret=self.settings.auth_secret,
                algorithms=[self.settings.auth_algorithm],
            )
        except ValueError as exc:
            raise AuthenticationError(str(exc)) from exc
