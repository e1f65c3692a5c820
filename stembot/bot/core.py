"""
stembot.bot.core — Discord Client & Login
==========================================

The service talks to Discord through one :class:`StemBot` client owned by
the API process.  There are no commands or cogs: the client only needs a
live gateway session so guild members and roles can be fetched and edited.

The client is created and logged in by the FastAPI lifespan and handed to
a :class:`~stembot.bot.gateway.GuildGateway`; nothing reaches for it
through module state.
"""

from __future__ import annotations

import asyncio
import logging

import discord

from stembot.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_READY_TIMEOUT = 60.0


class StemBot(discord.Client):
    """Minimal client with the intents role and nickname management needs."""

    def __init__(self) -> None:
        # GUILD_MEMBERS is privileged; enable it in the Developer Portal.
        intents = discord.Intents.default()
        intents.members = True
        intents.presences = False
        intents.message_content = False
        super().__init__(intents=intents)

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Discord bot is online — logged in as %s (ID: %s)", self.user, self.user.id)


async def start_bot(
    bot: discord.Client,
    token: str,
    *,
    ready_timeout: float = DEFAULT_READY_TIMEOUT,
) -> asyncio.Task:
    """Log *bot* in, open the gateway in a background task, wait for ready.

    Returns the gateway task so the caller can await it on shutdown.

    Raises
    ------
    discord.LoginFailure
        If the token is rejected.
    UpstreamError
        If the client is not ready within *ready_timeout* seconds.
    """
    logger.info("Logging in Discord bot…")
    await bot.login(token)
    task = asyncio.create_task(bot.connect(), name="discord-gateway")
    try:
        await asyncio.wait_for(bot.wait_until_ready(), timeout=ready_timeout)
    except TimeoutError:
        task.cancel()
        await bot.close()
        raise UpstreamError(
            f"Discord client was not ready after {ready_timeout:.0f}s"
        )
    return task
