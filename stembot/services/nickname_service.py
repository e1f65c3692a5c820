"""
stembot.services.nickname_service — Nickname Read / Update
===========================================================
"""

from __future__ import annotations

import logging

from sqlalchemy import Engine

from stembot.bot.gateway import GuildGateway
from stembot.database.engine import run_db
from stembot.engine.nickname import format_nickname, strip_trailing_group
from stembot.services.member_service import get_active_member

logger = logging.getLogger(__name__)


async def get_nickname(gateway: GuildGateway, discord_uid: int) -> dict:
    """Current nickname of *discord_uid* and its name part."""
    member = await gateway.resolve_member(discord_uid)
    full_nickname = gateway.current_nickname(member)
    return {
        "discord_uid": str(discord_uid),
        "full_nickname": full_nickname,
        "name_only": strip_trailing_group(full_nickname),
    }


async def update_nickname(
    engine: Engine, gateway: GuildGateway, discord_uid: int, name: str
) -> dict:
    """Set *discord_uid*'s nickname to the canonical form for *name*.

    Raises NotFoundError (guild or roster), ValidationError (see
    :func:`format_nickname`) or UpstreamError (Discord refused the edit).
    """
    member = await gateway.resolve_member(discord_uid)
    record = await run_db(get_active_member, engine, discord_uid)

    nickname = format_nickname(
        name,
        status=record.status,
        generation=record.generation,
        student_number=record.student_number,
    )
    await gateway.set_nickname(member, nickname)

    logger.info("Nickname updated for %s → %s", discord_uid, nickname)
    return {"success": True, "name": name.strip(), "updated_nickname": nickname}
