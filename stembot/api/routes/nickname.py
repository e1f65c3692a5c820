"""
stembot.api.routes.nickname — Nickname read / update
======================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from stembot.api.deps import get_engine, get_gateway, require_api_token
from stembot.bot.gateway import GuildGateway
from stembot.services import nickname_service

router = APIRouter(
    prefix="/nickname",
    tags=["nickname"],
    dependencies=[Depends(require_api_token)],
)


class NicknameUpdateRequest(BaseModel):
    discord_uid: int = Field(gt=0)
    name: str = Field(min_length=1)


@router.get("")
async def get_nickname(
    discord_uid: Annotated[int, Query(gt=0)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
):
    return await nickname_service.get_nickname(gateway, discord_uid)


@router.post("/update")
async def update_nickname(
    body: NicknameUpdateRequest,
    engine: Annotated[Engine, Depends(get_engine)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
):
    return await nickname_service.update_nickname(engine, gateway, body.discord_uid, body.name)
