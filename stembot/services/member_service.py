"""
stembot.services.member_service — Roster Reads & Member Directory
==================================================================

Synchronous roster queries (call them through ``run_db``) plus the two
directory lookups that join the roster with live guild state:

* :func:`get_member_status` — is this user in the guild, and as what?
* :func:`list_member_names` — every active member's bare display name.

Soft-deleted members (``deleted_at`` set) are invisible to every query
here.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from sqlalchemy import Engine, select
from sqlalchemy.orm import Session

from stembot.bot.gateway import GuildGateway
from stembot.config import RoleConfig
from stembot.database.engine import run_db
from stembot.database.models import (
    GenerationRole,
    Member,
    MemberStatus,
    MemberTeamRelation,
    Team,
    TeamLeader,
)
from stembot.engine.nickname import extract_name
from stembot.engine.roles import MemberProfile, RoleCatalog, TeamRole
from stembot.errors import NotFoundError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MemberRecord:
    """Detached copy of a ``members`` row."""

    id: str
    discord_uid: int
    status: int
    generation: int
    student_number: str | None = None


def _to_record(row: Member) -> MemberRecord:
    return MemberRecord(
        id=row.id,
        discord_uid=row.discord_uid,
        status=row.status,
        generation=row.generation,
        student_number=row.student_number,
    )


# ---------------------------------------------------------------------------
# Roster queries (sync — run via run_db)
# ---------------------------------------------------------------------------
def get_active_member(engine: Engine, discord_uid: int) -> MemberRecord:
    """Load the non-deleted member linked to *discord_uid*.

    Raises :class:`NotFoundError` if there is none.
    """
    with Session(engine) as session:
        row = session.scalars(
            select(Member).where(
                Member.discord_uid == discord_uid,
                Member.deleted_at.is_(None),
            )
        ).first()
        if row is None:
            raise NotFoundError("Member not found in database")
        return _to_record(row)


def list_active_members(engine: Engine) -> list[MemberRecord]:
    """All non-deleted members, newest generation first."""
    with Session(engine) as session:
        rows = session.scalars(
            select(Member)
            .where(Member.deleted_at.is_(None))
            .order_by(Member.generation.desc(), Member.student_number.asc())
        ).all()
        return [_to_record(row) for row in rows]


def load_member_profile(engine: Engine, record: MemberRecord) -> MemberProfile:
    """Collect the roster facts the role policy needs for one member.

    Raises :class:`ValidationError` for a status outside
    :class:`MemberStatus`.
    """
    try:
        status = MemberStatus(record.status)
    except ValueError:
        raise ValidationError(f"Invalid member status: {record.status!r}")

    with Session(engine) as session:
        team_ids = session.scalars(
            select(MemberTeamRelation.team_id).where(
                MemberTeamRelation.member_id == record.id
            )
        ).all()
        leader_row = session.scalars(
            select(TeamLeader.team_id).where(TeamLeader.member_id == record.id).limit(1)
        ).first()

    return MemberProfile(
        status=status,
        generation=record.generation,
        team_ids=frozenset(team_ids),
        is_leader=leader_row is not None,
    )


def load_role_catalog(engine: Engine, roles: RoleConfig) -> RoleCatalog:
    """Read every generation and team role, combined with *roles*."""
    with Session(engine) as session:
        generation_rows = session.scalars(select(GenerationRole)).all()
        team_rows = session.scalars(select(Team).order_by(Team.name)).all()
        return RoleCatalog(
            generation_roles={g.generation: g.discord_role_id for g in generation_rows},
            team_roles=tuple(
                TeamRole(team_id=t.id, name=t.name, role_id=t.discord_role_id)
                for t in team_rows
            ),
            config=roles,
        )


# ---------------------------------------------------------------------------
# Directory lookups (async — roster + guild)
# ---------------------------------------------------------------------------
async def get_member_status(gateway: GuildGateway, discord_uid: int) -> dict:
    """Report whether *discord_uid* is in the guild, with nickname and roles.

    A user outside the guild is a normal answer, not an error.
    """
    member = await gateway.find_member(discord_uid)
    if member is None:
        return {
            "discord_uid": str(discord_uid),
            "is_in_server": False,
            "current_nickname": None,
            "current_roles": [],
        }
    return {
        "discord_uid": str(discord_uid),
        "is_in_server": True,
        "current_nickname": gateway.current_nickname(member),
        "current_roles": gateway.role_names(member),
    }


async def list_member_names(engine: Engine, gateway: GuildGateway) -> list[dict]:
    """Return ``{"uid", "name"}`` for every active member found in the guild.

    Guild lookups run concurrently; members who left the guild, or whose
    lookup failed, are skipped.
    """
    records = await run_db(list_active_members, engine)

    async def _lookup(record: MemberRecord) -> dict | None:
        try:
            member = await gateway.resolve_member(record.discord_uid)
        except (NotFoundError, UpstreamError) as exc:
            logger.warning("Skipping member %s: %s", record.discord_uid, exc)
            return None
        return {
            "uid": str(record.discord_uid),
            "name": extract_name(gateway.display_name(member)),
        }

    entries = await asyncio.gather(*(_lookup(r) for r in records))
    found = [entry for entry in entries if entry is not None]
    logger.info("Fetched %d/%d members from the guild", len(found), len(records))
    return found
