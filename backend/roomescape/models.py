from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Optional

from sqlalchemy import Enum, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.sql.sqltypes import Date, DateTime, String, Time


class Base(DeclarativeBase):
    pass


class MemberRole(StrEnum):
    USER = "user"
    ADMIN = "admin"


class Member(Base):
    __tablename__ = "members"
    __table_args__ = (UniqueConstraint("email", name="uq_members_email"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    role: Mapped[MemberRole] = mapped_column(
        Enum(
            MemberRole,
            values_callable=lambda enum_cls: [e.value for e in enum_cls],
            native_enum=False,
        ),
        nullable=False,
        default=MemberRole.USER,
    )


class Theme(Base):
    __tablename__ = "themes"
    __table_args__ = (UniqueConstraint("name", name="uq_themes_name"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False, default="")
    thumbnail: Mapped[Optional[str]] = mapped_column(String(500), nullable=True)


class ReservationTime(Base):
    __tablename__ = "reservation_times"
    __table_args__ = (UniqueConstraint("start_at", name="uq_reservation_times_start_at"),)

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    start_at: Mapped[dt.time] = mapped_column(Time, nullable=False)


class Reservation(Base):
    __tablename__ = "reservations"
    __table_args__ = (
        UniqueConstraint("date", "time_id", "theme_id", name="uq_res_slot"),
        Index("idx_res_member", "member_id"),
        Index("idx_res_theme", "theme_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time_id: Mapped[int] = mapped_column(ForeignKey("reservation_times.id"), nullable=False)
    theme_id: Mapped[int] = mapped_column(ForeignKey("themes.id"), nullable=False)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    updated_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    time: Mapped[ReservationTime] = relationship(lazy="joined")
    theme: Mapped[Theme] = relationship(lazy="joined")
    member: Mapped[Member] = relationship(lazy="joined")

    def is_owned_by(self, member: Member) -> bool:
        return self.member.id == member.id


class Waiting(Base):
    __tablename__ = "waitings"
    __table_args__ = (
        UniqueConstraint("date", "time_id", "theme_id", "member_id", name="uq_waiting_slot_member"),
        Index("idx_waiting_slot", "date", "time_id", "theme_id", "created_at"),
        Index("idx_waiting_member", "member_id"),
    )

    id: Mapped[int] = mapped_column(primary_key=True, autoincrement=True)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False)
    time_id: Mapped[int] = mapped_column(ForeignKey("reservation_times.id"), nullable=False)
    theme_id: Mapped[int] = mapped_column(ForeignKey("themes.id"), nullable=False)
    member_id: Mapped[int] = mapped_column(ForeignKey("members.id"), nullable=False)
    created_at: Mapped[dt.datetime] = mapped_column(DateTime(timezone=False), nullable=False)

    time: Mapped[ReservationTime] = relationship(lazy="joined")
    theme: Mapped[Theme] = relationship(lazy="joined")
    member: Mapped[Member] = relationship(lazy="joined")

    def is_owned_by(self, member: Member) -> bool:
        return self.member.id == member.id
