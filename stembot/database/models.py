"""
stembot.database.models — SQLAlchemy 2.0 Data Models
=====================================================

The club roster as stored in PostgreSQL.  The rows are maintained by the
membership web app; this service reads them and only ever inserts into
``generation_roles``.

Tables:
- members               — Club members (soft-deleted via ``deleted_at``)
- teams                 — Teams (班), each bound to a Discord role
- member_team_relations — Member ↔ team membership
- team_leaders          — Team leaders (班長)
- generation_roles      — Generation (期) → Discord role mapping
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all roster ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class MemberStatus(enum.IntEnum):
    """Lifecycle stage of a member.  Stored as a plain integer column."""
    JUNIOR = 0   # 中学生
    SENIOR = 1   # 高校生
    ALUMNUS = 2  # OB


# ---------------------------------------------------------------------------
# Members — one row per club member
# ---------------------------------------------------------------------------
class Member(Base):
    __tablename__ = "members"

    # The roster app keys members by their auth user UUID.
    id: Mapped[str] = mapped_column(
        "supabase_auth_user_id", String(36), primary_key=True
    )
    status: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    generation: Mapped[int] = mapped_column(Integer, nullable=False)
    student_number: Mapped[str | None] = mapped_column(String(32), default=None)
    discord_uid: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    avatar_url: Mapped[str | None] = mapped_column(String(500), default=None)
    is_admin: Mapped[bool] = mapped_column(Boolean, default=False)
    joined_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    deleted_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), default=None
    )

    __table_args__ = (
        Index("ix_members_generation", "generation"),
    )

    def __repr__(self) -> str:
        return (
            f"<Member id={self.id} uid={self.discord_uid} "
            f"gen={self.generation} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Teams
# ---------------------------------------------------------------------------
class Team(Base):
    __tablename__ = "teams"

    id: Mapped[str] = mapped_column(String(36), primary_key=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    discord_role_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<Team id={self.id} name={self.name!r} role={self.discord_role_id}>"


class MemberTeamRelation(Base):
    __tablename__ = "member_team_relations"

    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.supabase_auth_user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    team_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True
    )

    def __repr__(self) -> str:
        return f"<MemberTeamRelation member={self.member_id} team={self.team_id}>"


class TeamLeader(Base):
    """A member leading a team.  The role policy only asks "leads any team?"."""
    __tablename__ = "team_leaders"

    team_id: Mapped[str] = mapped_column(
        String(36), ForeignKey("teams.id", ondelete="CASCADE"), primary_key=True
    )
    member_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("members.supabase_auth_user_id", ondelete="CASCADE"),
        primary_key=True,
    )

    def __repr__(self) -> str:
        return f"<TeamLeader team={self.team_id} member={self.member_id}>"


# ---------------------------------------------------------------------------
# Generation roles — at most one Discord role per generation
# ---------------------------------------------------------------------------
class GenerationRole(Base):
    __tablename__ = "generation_roles"

    generation: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)
    discord_role_id: Mapped[int] = mapped_column(BigInteger, nullable=False)

    def __repr__(self) -> str:
        return f"<GenerationRole gen={self.generation} role={self.discord_role_id}>"
