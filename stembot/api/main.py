"""
stembot.api.main — FastAPI application entry point
=====================================================

Run with::

    python -m stembot.api
    # or
    uvicorn stembot.api.main:app --port 3000

The lifespan logs the Discord bot in on the same event loop as the API,
so route handlers can await discord.py calls directly.
"""

from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

load_dotenv()

from stembot.api.deps import get_config, get_engine  # noqa: E402
from stembot.api.routes.generation import router as generation_router  # noqa: E402
from stembot.api.routes.members import router as members_router  # noqa: E402
from stembot.api.routes.nickname import router as nickname_router  # noqa: E402
from stembot.api.routes.roles import router as roles_router  # noqa: E402
from stembot.bot.core import StemBot, start_bot  # noqa: E402
from stembot.bot.gateway import GuildGateway  # noqa: E402
from stembot.errors import (  # noqa: E402
    ConfigError,
    ConflictError,
    NotFoundError,
    StemBotError,
    UpstreamError,
    ValidationError,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses must precede their bases.
_ERROR_STATUS: tuple[tuple[type[StemBotError], int], ...] = (
    (NotFoundError, 404),
    (ValidationError, 400),
    (ConflictError, 409),
    (UpstreamError, 502),
    (ConfigError, 500),
)


def _cors_origins() -> list[str]:
    """Allowed CORS origins from ``CORS_ALLOW_ORIGINS`` (comma-separated)."""
    raw = os.getenv("CORS_ALLOW_ORIGINS", "").strip()
    return [origin.strip().rstrip("/") for origin in raw.split(",") if origin.strip()]


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup/shutdown lifecycle — log the bot in, build the gateway."""
    cfg = get_config()
    engine = get_engine()

    token = os.getenv("DISCORD_TOKEN")
    if not token:
        raise ConfigError("DISCORD_TOKEN is not set in environment variables")

    bot = StemBot()
    gateway_task = await start_bot(bot, token)
    app.state.bot = bot
    app.state.gateway = GuildGateway(bot, cfg.guild_id)
    logger.info(
        "stembot API started — guild %s, engine ready (%s)",
        cfg.guild_id, engine.url.database,
    )
    try:
        yield
    finally:
        logger.info("stembot API shutting down")
        app.state.gateway = None
        await bot.close()
        await asyncio.gather(gateway_task, return_exceptions=True)


app = FastAPI(
    title="stembot API",
    version="2.0.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins(),
    allow_methods=["*"],
    allow_headers=["*"],
)

# Mount routers
app.include_router(roles_router, prefix="/api")
app.include_router(nickname_router, prefix="/api")
app.include_router(generation_router, prefix="/api")
app.include_router(members_router, prefix="/api")


# ---------------------------------------------------------------------------
# Error rendering — every failure answers {"success": false, "error": ...}
# ---------------------------------------------------------------------------
@app.exception_handler(StemBotError)
async def domain_error_handler(request: Request, exc: StemBotError) -> JSONResponse:
    status_code = next(
        (code for cls, code in _ERROR_STATUS if isinstance(exc, cls)), 500
    )
    message = str(exc)
    if isinstance(exc, ConfigError):
        logger.error("Configuration error on %s: %s", request.url.path, exc)
        message = "Server configuration error"
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError) -> JSONResponse:
    logger.exception("Database error on %s", request.url.path)
    return JSONResponse(
        status_code=502,
        content={"success": False, "error": "Database error"},
    )


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    error = "Endpoint not found" if exc.status_code == 404 else exc.detail
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "error": error},
        headers=getattr(exc, "headers", None),
    )


@app.get("/api/health")
@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "timestamp": datetime.now(UTC).isoformat()}
