"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
import uuid
from datetime import UTC, datetime

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from stembot.config import RoleConfig, StemBotConfig, SyncOptions
from stembot.database.engine import get_session, init_db
from stembot.database.models import (
    GenerationRole,
    Member,
    MemberTeamRelation,
    Team,
    TeamLeader,
)
from stembot.errors import NotFoundError, UpstreamError

TEST_API_TOKEN = "test-api-token-for-pytest-only"
GUILD_ID = 1100000000000000001

# Fixed category role ids used across the suite
LEADER_ROLE = 10
JUNIOR_ROLE = 11
SENIOR_ROLE = 12
ALUMNUS_ROLE = 13
MEMBER_ROLE = 14
VERIFIED_ROLE = 15
UNRELATED_ROLE = 999  # e.g. a moderator role the sync must never touch


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------
@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all roster tables.

    Uses StaticPool so every thread shares the same in-memory database
    (required by ``asyncio.to_thread`` inside ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    init_db(engine)
    return engine


@pytest.fixture
def file_engine(tmp_path) -> Engine:
    """File-backed SQLite engine; one connection per thread for concurrent sync."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'roster.db'}",
        connect_args={"check_same_thread": False},
    )
    init_db(engine)
    return engine


class Roster:
    """Small writer for seeding roster rows in tests."""

    def __init__(self, engine: Engine) -> None:
        self.engine = engine

    def member(
        self,
        discord_uid: int,
        *,
        generation: int = 52,
        status: int = 0,
        student_number: str | None = "12345",
        deleted: bool = False,
    ) -> str:
        member_id = str(uuid.uuid4())
        with get_session(self.engine) as session:
            session.add(Member(
                id=member_id,
                discord_uid=discord_uid,
                generation=generation,
                status=status,
                student_number=student_number,
                joined_at=datetime(2024, 4, 1, tzinfo=UTC),
                deleted_at=datetime(2025, 3, 31, tzinfo=UTC) if deleted else None,
            ))
        return member_id

    def team(self, name: str, role_id: int) -> str:
        team_id = str(uuid.uuid4())
        with get_session(self.engine) as session:
            session.add(Team(id=team_id, name=name, discord_role_id=role_id))
        return team_id

    def join(self, member_id: str, team_id: str) -> None:
        with get_session(self.engine) as session:
            session.add(MemberTeamRelation(member_id=member_id, team_id=team_id))

    def lead(self, member_id: str, team_id: str) -> None:
        with get_session(self.engine) as session:
            session.add(TeamLeader(member_id=member_id, team_id=team_id))

    def generation_role(self, generation: int, role_id: int) -> None:
        with get_session(self.engine) as session:
            session.add(GenerationRole(generation=generation, discord_role_id=role_id))


@pytest.fixture
def roster(db_engine) -> Roster:
    return Roster(db_engine)


# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------
@pytest.fixture
def role_config() -> RoleConfig:
    return RoleConfig(
        leader=LEADER_ROLE,
        junior=JUNIOR_ROLE,
        senior=SENIOR_ROLE,
        alumnus=ALUMNUS_ROLE,
        member=MEMBER_ROLE,
        verified=VERIFIED_ROLE,
    )


@pytest.fixture
def app_config(role_config) -> StemBotConfig:
    return StemBotConfig(guild_id=GUILD_ID, roles=role_config, sync=SyncOptions())


# ---------------------------------------------------------------------------
# Fake Discord gateway
# ---------------------------------------------------------------------------
class FakeMember:
    """Stand-in for ``discord.Member`` holding a mutable set of role ids."""

    def __init__(
        self,
        uid: int,
        *,
        name: str = "user",
        nick: str | None = None,
        role_ids: set[int] | None = None,
    ) -> None:
        self.id = uid
        self.name = name
        self.nick = nick
        self.role_ids: set[int] = set(role_ids or ())

    @property
    def display_name(self) -> str:
        return self.nick or self.name

    def __str__(self) -> str:
        return self.name


class FakeGateway:
    """In-memory :class:`~stembot.bot.gateway.GuildGateway` replacement.

    Failure knobs:
    * ``fail_add`` / ``fail_remove`` — role ids whose mutation raises
    * ``fail_resolve`` — user ids whose lookup raises UpstreamError
    * ``delays`` — user id → seconds to sleep inside resolve_member
    * ``fail_create`` / ``fail_nickname`` — make those calls raise
    """

    def __init__(self) -> None:
        self.members: dict[int, FakeMember] = {}
        self.role_labels: dict[int, str] = {}
        self.calls: list[tuple[str, int, int]] = []
        self.created_roles: list[tuple[str, int]] = []
        self.fail_add: set[int] = set()
        self.fail_remove: set[int] = set()
        self.fail_resolve: set[int] = set()
        self.delays: dict[int, float] = {}
        self.fail_create = False
        self.fail_nickname = False
        self._next_role_id = 9000
        self.in_flight = 0
        self.max_in_flight = 0

    def add_member(self, uid: int, **kwargs) -> FakeMember:
        member = FakeMember(uid, **kwargs)
        self.members[uid] = member
        return member

    async def resolve_member(self, discord_uid: int) -> FakeMember:
        if discord_uid in self.delays:
            self.in_flight += 1
            self.max_in_flight = max(self.max_in_flight, self.in_flight)
            try:
                await asyncio.sleep(self.delays[discord_uid])
            finally:
                self.in_flight -= 1
        if discord_uid in self.fail_resolve:
            raise UpstreamError(f"Failed to fetch Discord member {discord_uid}: 503")
        member = self.members.get(discord_uid)
        if member is None:
            raise NotFoundError(f"Discord member not found: {discord_uid}")
        return member

    async def find_member(self, discord_uid: int) -> FakeMember | None:
        try:
            return await self.resolve_member(discord_uid)
        except NotFoundError:
            return None

    def current_roles(self, member: FakeMember) -> set[int]:
        return set(member.role_ids)

    def role_names(self, member: FakeMember) -> list[str]:
        return [self.role_labels.get(rid, str(rid)) for rid in sorted(member.role_ids)]

    def current_nickname(self, member: FakeMember) -> str:
        return member.nick or member.name

    def display_name(self, member: FakeMember) -> str:
        return member.display_name

    async def add_role(self, member: FakeMember, role_id: int, *, reason: str = "") -> None:
        self.calls.append(("add", member.id, role_id))
        if role_id in self.fail_add:
            raise UpstreamError(f"Failed to add role {role_id}: 403 Forbidden")
        member.role_ids.add(role_id)

    async def remove_role(self, member: FakeMember, role_id: int, *, reason: str = "") -> None:
        self.calls.append(("remove", member.id, role_id))
        if role_id in self.fail_remove:
            raise UpstreamError(f"Failed to remove role {role_id}: 403 Forbidden")
        member.role_ids.discard(role_id)

    async def create_role(self, name: str, *, reason: str = "") -> int:
        if self.fail_create:
            raise UpstreamError("Failed to create role on Discord: 403 Forbidden")
        self._next_role_id += 1
        self.created_roles.append((name, self._next_role_id))
        return self._next_role_id

    async def set_nickname(self, member: FakeMember, nickname: str) -> None:
        if self.fail_nickname:
            raise UpstreamError("Failed to update nickname on Discord: 403 Forbidden")
        member.nick = nickname


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
