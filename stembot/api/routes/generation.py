"""
stembot.api.routes.generation — Generation role creation
==========================================================
"""

from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy import Engine

from stembot.api.deps import get_engine, get_gateway, require_api_token
from stembot.bot.gateway import GuildGateway
from stembot.services.generation_service import create_generation_role

router = APIRouter(tags=["generation"], dependencies=[Depends(require_api_token)])


class GenerationCreateRequest(BaseModel):
    generation: int = Field(gt=0)


@router.post("/generation")
async def create_generation(
    body: GenerationCreateRequest,
    engine: Annotated[Engine, Depends(get_engine)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
):
    created = await create_generation_role(engine, gateway, body.generation)
    return {
        "success": True,
        "role_id": str(created["role_id"]),
        "generation": created["generation"],
    }
