"""
stembot.api.routes.members — Member directory endpoints
=========================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from sqlalchemy import Engine

from stembot.api.deps import get_engine, get_gateway, require_api_token
from stembot.bot.gateway import GuildGateway
from stembot.services import member_service

router = APIRouter(tags=["members"], dependencies=[Depends(require_api_token)])


@router.get("/member/status")
async def get_member_status(
    discord_uid: Annotated[int, Query(gt=0)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
):
    """Whether the user is in the guild, with nickname and role names."""
    return await member_service.get_member_status(gateway, discord_uid)


@router.get("/members")
async def list_members(
    engine: Annotated[Engine, Depends(get_engine)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
):
    """Bare names of every active member present in the guild."""
    members = await member_service.list_member_names(engine, gateway)
    return {"success": True, "data": members}
