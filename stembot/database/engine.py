"""
stembot.database.engine — Database Connection & Async Helper
=============================================================

The API runs on an ``asyncio`` event loop (FastAPI + discord.py) while
SQLAlchemy + psycopg2 is synchronous.  Every roster query is written as a
plain synchronous function and shipped to a worker thread with
:func:`run_db`, so a slow query never stalls the Discord gateway.

Usage::

    from stembot.database.engine import create_db_engine, run_db

    engine = create_db_engine()          # reads DATABASE_URL from .env

    # Inside a coroutine:
    members = await run_db(list_active_members, engine)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from stembot.database.models import Base
from stembot.errors import ConfigError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine() -> Engine:
    """Build a SQLAlchemy :class:`Engine` from the ``DATABASE_URL`` env var.

    The roster is small and the service issues a handful of queries per
    request, so the pool stays small:
    * ``pool_size=3`` — three persistent connections.
    * ``max_overflow=5`` — up to 5 extra connections during bulk sync.
    * ``pool_timeout=10`` — fail after 10 s if no connection is available.
    * ``pool_recycle=1800`` — recycle connections after 30 minutes; hosted
      Postgres poolers drop idle connections well before an hour.

    Raises
    ------
    ConfigError
        If ``DATABASE_URL`` is not set.
    """
    url = os.getenv("DATABASE_URL")
    if not url:
        raise ConfigError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=3,
        max_overflow=5,
        pool_pre_ping=True,   # Reconnect stale connections automatically
        pool_timeout=10,
        pool_recycle=1800,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create the roster tables if they don't exist.

    .. note::

        In production the roster schema belongs to the membership app and
        is managed by Alembic.  This exists for local development and
        tests against an empty database.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine):
    """Yield a :class:`Session` that commits on success and rolls back on
    exception."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every roster query made from a coroutine goes through here::

        record = await run_db(get_active_member, engine, discord_uid)

    Under the hood it calls :func:`asyncio.to_thread`, which schedules
    *func* on the default ``ThreadPoolExecutor``.
    """
    return await asyncio.to_thread(func, *args, **kwargs)
