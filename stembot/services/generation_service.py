"""
stembot.services.generation_service — Generation Role Creation
===============================================================

Creates the ``"{n}期生"`` role for a new generation and records the
mapping in ``generation_roles`` so role sync starts granting it.

Check → create → insert runs under one lock per event loop, so two
requests for the same generation in this process cannot both create a
Discord role.  A mapping inserted by another process in the meantime
still surfaces as :class:`ConflictError` via the primary key.
"""

from __future__ import annotations

import asyncio
import logging
import weakref

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from stembot.bot.gateway import GuildGateway
from stembot.constants import generation_label
from stembot.database.engine import get_session, run_db
from stembot.database.models import GenerationRole
from stembot.errors import ConflictError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

_creation_locks: weakref.WeakKeyDictionary[asyncio.AbstractEventLoop, asyncio.Lock] = (
    weakref.WeakKeyDictionary()
)


def _creation_lock() -> asyncio.Lock:
    loop = asyncio.get_running_loop()
    lock = _creation_locks.get(loop)
    if lock is None:
        lock = _creation_locks[loop] = asyncio.Lock()
    return lock


def get_generation_role_id(engine: Engine, generation: int) -> int | None:
    with Session(engine) as session:
        row = session.get(GenerationRole, generation)
        return row.discord_role_id if row else None


def insert_generation_role(engine: Engine, generation: int, role_id: int) -> None:
    with get_session(engine) as session:
        session.add(GenerationRole(generation=generation, discord_role_id=role_id))


async def create_generation_role(
    engine: Engine, gateway: GuildGateway, generation: int
) -> dict:
    """Create the Discord role for *generation* and save the mapping.

    Returns ``{"role_id": ..., "generation": ...}``.

    Raises
    ------
    ValidationError
        If *generation* is not a positive integer.
    ConflictError
        If the generation already has a role.  Nothing is created.
    UpstreamError
        If Discord refuses the role, or the row cannot be saved (the
        message names the Discord role left without a mapping).
    """
    if isinstance(generation, bool) or not isinstance(generation, int) or generation < 1:
        raise ValidationError("generation must be a positive integer")

    async with _creation_lock():
        existing = await run_db(get_generation_role_id, engine, generation)
        if existing is not None:
            raise ConflictError("Generation role already exists")

        role_id = await gateway.create_role(generation_label(generation))

        try:
            await run_db(insert_generation_role, engine, generation, role_id)
        except IntegrityError as exc:
            logger.error(
                "Generation %d was mapped concurrently; Discord role %s has no mapping",
                generation, role_id,
            )
            raise ConflictError(
                f"Generation role already exists "
                f"(Discord role {role_id} was created without a mapping)"
            ) from exc
        except SQLAlchemyError as exc:
            logger.error(
                "Failed to insert generation role %d (Discord role %s): %s",
                generation, role_id, exc,
            )
            raise UpstreamError(
                f"Failed to save generation role to database "
                f"(Discord role {role_id} was created without a mapping)"
            ) from exc

    logger.info("Generation role created: %d → %s", generation, role_id)
    return {"role_id": role_id, "generation": generation}
