"""
stembot.api.deps — FastAPI dependency injection
=================================================
"""

from __future__ import annotations

import logging
import os
import secrets
from functools import lru_cache
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy import Engine

from stembot.bot.gateway import GuildGateway
from stembot.config import StemBotConfig, load_config
from stembot.database.engine import create_db_engine
from stembot.services.role_sync_service import RoleSynchronizer

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def get_engine() -> Engine:
    return create_db_engine()


@lru_cache(maxsize=1)
def get_config() -> StemBotConfig:
    return load_config()


def get_gateway(request: Request) -> GuildGateway:
    """The guild gateway built by the lifespan once the bot is ready."""
    gateway = getattr(request.app.state, "gateway", None)
    if gateway is None:
        raise HTTPException(status.HTTP_503_SERVICE_UNAVAILABLE, "Discord client is not ready")
    return gateway


def get_synchronizer(
    engine: Annotated[Engine, Depends(get_engine)],
    gateway: Annotated[GuildGateway, Depends(get_gateway)],
    cfg: Annotated[StemBotConfig, Depends(get_config)],
) -> RoleSynchronizer:
    return RoleSynchronizer(engine, gateway, cfg.roles, cfg.sync)


def require_api_token(
    request: Request,
    authorization: Annotated[str | None, Header()] = None,
) -> None:
    """Check ``Authorization: Bearer <API_AUTH_TOKEN>``.  Raises 401/500."""
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized: Bearer token required")

    valid_token = os.getenv("API_AUTH_TOKEN", "")
    if not valid_token:
        logger.error("API_AUTH_TOKEN is not set in environment variables")
        raise HTTPException(status.HTTP_500_INTERNAL_SERVER_ERROR, "Server configuration error")

    token = authorization.split(" ", 1)[1]
    if not secrets.compare_digest(token.encode(), valid_token.encode()):
        client_host = request.client.host if request.client else "unknown"
        logger.warning("Invalid token attempt from %s", client_host)
        raise HTTPException(status.HTTP_401_UNAUTHORIZED, "Unauthorized: Invalid token")
