"""
stembot.config — YAML Configuration Loader
===========================================

Reads ``config.yaml`` for the non-secret settings: which guild to act on,
the Discord role id of each managed role category, and bulk-sync tuning.
Secrets (``DISCORD_TOKEN``, ``API_AUTH_TOKEN``, ``DATABASE_URL``) stay in
``.env``.

Every role id is optional.  A category whose id is left out is inert: the
sync neither grants nor revokes it.

Usage::

    from stembot.config import load_config

    cfg = load_config()          # reads ./config.yaml by default
    print(cfg.guild_id)          # 1100000000000000001
    print(cfg.roles.leader)      # 1100000000000000010 or None
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import assert_never

import yaml

from stembot.database.models import MemberStatus
from stembot.errors import ConfigError

DEFAULT_CONFIG_PATH = "config.yaml"


# ---------------------------------------------------------------------------
# Typed settings objects
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class RoleConfig:
    """Discord role id per fixed managed category (``None`` = unmanaged)."""

    leader: int | None = None    # 班長
    junior: int | None = None    # 中学生
    senior: int | None = None    # 高校生
    alumnus: int | None = None   # OB
    member: int | None = None    # 部員
    verified: int | None = None  # 認証済み

    def status_role(self, status: MemberStatus) -> int | None:
        """Role id configured for *status*."""
        match status:
            case MemberStatus.JUNIOR:
                return self.junior
            case MemberStatus.SENIOR:
                return self.senior
            case MemberStatus.ALUMNUS:
                return self.alumnus
            case _:
                assert_never(status)


@dataclass(frozen=True, slots=True)
class SyncOptions:
    """Bulk sync tuning."""

    concurrency: int = 1                       # 1 = strictly sequential
    member_timeout_seconds: float = 30.0
    batch_timeout_seconds: float | None = None


@dataclass(frozen=True, slots=True)
class StemBotConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    guild_id: int  # The club's Discord server
    roles: RoleConfig = field(default_factory=RoleConfig)
    sync: SyncOptions = field(default_factory=SyncOptions)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _optional_id(raw: dict, key: str) -> int | None:
    value = raw.get(key)
    if value in (None, ""):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"roles.{key} must be a Discord role id, got {value!r}")


def _parse_roles(raw: dict | None) -> RoleConfig:
    raw = raw or {}
    return RoleConfig(
        leader=_optional_id(raw, "leader"),
        junior=_optional_id(raw, "junior"),
        senior=_optional_id(raw, "senior"),
        alumnus=_optional_id(raw, "alumnus"),
        member=_optional_id(raw, "member"),
        verified=_optional_id(raw, "verified"),
    )


def _parse_sync(raw: dict | None) -> SyncOptions:
    raw = raw or {}
    try:
        concurrency = int(raw.get("concurrency", 1))
        member_timeout = float(raw.get("member_timeout_seconds", 30.0))
        batch_timeout = raw.get("batch_timeout_seconds")
        batch_timeout = float(batch_timeout) if batch_timeout is not None else None
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid sync settings: {exc}")

    if concurrency < 1:
        raise ConfigError("sync.concurrency must be at least 1")
    if member_timeout <= 0:
        raise ConfigError("sync.member_timeout_seconds must be positive")
    if batch_timeout is not None and batch_timeout <= 0:
        raise ConfigError("sync.batch_timeout_seconds must be positive")

    return SyncOptions(
        concurrency=concurrency,
        member_timeout_seconds=member_timeout,
        batch_timeout_seconds=batch_timeout,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path | None = None) -> StemBotConfig:
    """Read *path* and return a :class:`StemBotConfig` instance.

    Parameters
    ----------
    path:
        Filesystem path to the YAML configuration file.  Defaults to the
        ``STEMBOT_CONFIG`` env var, then ``config.yaml`` in the working
        directory.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ConfigError
        If ``guild_id`` is missing or a value has the wrong shape.
    """
    if path is None:
        path = os.getenv("STEMBOT_CONFIG", DEFAULT_CONFIG_PATH)
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw = yaml.safe_load(fh) or {}

    if not isinstance(raw, dict):
        raise ConfigError(f"{config_path} must contain a mapping at the top level")

    if not raw.get("guild_id"):
        raise ConfigError("guild_id is not set in the configuration file")
    try:
        guild_id = int(raw["guild_id"])
    except (TypeError, ValueError):
        raise ConfigError(f"guild_id must be a Discord guild id, got {raw['guild_id']!r}")

    return StemBotConfig(
        guild_id=guild_id,
        roles=_parse_roles(raw.get("roles")),
        sync=_parse_sync(raw.get("sync")),
    )
