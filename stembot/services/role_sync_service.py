"""
stembot.services.role_sync_service — Roster → Guild Role Sync
==============================================================

Applies the role policy of :mod:`stembot.engine.roles` to live guild
members.

How a member is synced:
    1. Resolve the guild member (fresh fetch, so the role list is current).
    2. Load the roster row and the member's team / leader facts.
    3. ``evaluate_roles`` → desired roles; ``plan_role_changes`` → plan.
    4. Grant, then revoke, one role at a time.  Each call is independent:
       a failed call is recorded as a :class:`RoleMutation` with
       ``ok=False`` and the remaining calls still run.  Nothing is rolled
       back.

Bulk sync loads the roster and role catalog once, then syncs every
member with the same steps.  One member failing (not in the guild, bad
status, Discord error, failed mutation, timeout) is recorded and the batch
moves on.  Each member task returns its own outcome; totals are counted
after all tasks finish.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from dataclasses import dataclass, field

import discord
from sqlalchemy import Engine

from stembot.bot.gateway import GuildGateway
from stembot.config import RoleConfig, SyncOptions
from stembot.database.engine import run_db
from stembot.engine.roles import (
    ManagedRole,
    RoleCatalog,
    RolePlan,
    evaluate_roles,
    plan_role_changes,
)
from stembot.errors import StemBotError, UpstreamError
from stembot.services.member_service import (
    MemberRecord,
    get_active_member,
    list_active_members,
    load_member_profile,
    load_role_catalog,
)

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------
class MutationAction(enum.StrEnum):
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True, slots=True)
class RoleMutation:
    """Outcome of one grant or revoke call."""

    role: ManagedRole
    action: MutationAction
    ok: bool
    error: str | None = None


@dataclass
class MemberSyncResult:
    """What one member sync did."""

    discord_uid: int
    mutations: list[RoleMutation] = field(default_factory=list)

    @property
    def assigned(self) -> list[str]:
        return [m.role.label for m in self.mutations if m.ok and m.action is MutationAction.ADD]

    @property
    def removed(self) -> list[str]:
        return [m.role.label for m in self.mutations if m.ok and m.action is MutationAction.REMOVE]

    @property
    def failed(self) -> list[RoleMutation]:
        return [m for m in self.mutations if not m.ok]

    @property
    def ok(self) -> bool:
        return not self.failed

    def failure_summary(self) -> str:
        return "Failed role updates: " + ", ".join(
            f"{m.action} {m.role.label} ({m.error})" for m in self.failed
        )

    def to_dict(self) -> dict:
        return {
            "success": self.ok,
            "roles_assigned": self.assigned,
            "roles_removed": self.removed,
            "roles_failed": [
                {"role": m.role.label, "action": str(m.action), "error": m.error}
                for m in self.failed
            ],
        }


@dataclass(frozen=True, slots=True)
class MemberSyncError:
    discord_uid: int
    error: str

    def to_dict(self) -> dict:
        return {"discord_uid": str(self.discord_uid), "error": self.error}


@dataclass
class BulkSyncResult:
    synced: int = 0
    failed: int = 0
    total: int = 0
    errors: list[MemberSyncError] = field(default_factory=list)

    def to_dict(self) -> dict:
        body: dict = {
            "success": True,
            "synced": self.synced,
            "failed": self.failed,
            "total": self.total,
        }
        if self.total == 0:
            body["message"] = "No members to sync"
        if self.errors:
            body["errors"] = [e.to_dict() for e in self.errors]
        return body


# ---------------------------------------------------------------------------
# Synchronizer
# ---------------------------------------------------------------------------
class RoleSynchronizer:
    """Brings guild roles in line with the roster.

    Parameters
    ----------
    engine:
        Roster database engine.
    gateway:
        Guild-scoped Discord operations.
    roles:
        Role ids of the fixed categories (leader, status, member, verified).
    options:
        Bulk sync concurrency and timeouts.
    """

    def __init__(
        self,
        engine: Engine,
        gateway: GuildGateway,
        roles: RoleConfig,
        options: SyncOptions | None = None,
    ) -> None:
        self.engine = engine
        self.gateway = gateway
        self.roles = roles
        self.options = options or SyncOptions()

    # -------------------------------------------------------------------
    # Single member
    # -------------------------------------------------------------------
    async def sync_member(self, discord_uid: int) -> MemberSyncResult:
        """Sync one member's roles.

        Raises
        ------
        NotFoundError
            If the user is not in the guild, or has no active roster row.
        ValidationError
            If the roster row carries an unknown status.
        UpstreamError
            If Discord fails before any mutation is attempted.
        """
        member = await self.gateway.resolve_member(discord_uid)
        record = await run_db(get_active_member, self.engine, discord_uid)
        catalog = await run_db(load_role_catalog, self.engine, self.roles)
        result = await self._sync_record(record, catalog, member)
        logger.info(
            "Roles synced for %s — assigned %s, removed %s, failed %d",
            discord_uid, result.assigned, result.removed, len(result.failed),
        )
        return result

    async def _sync_record(
        self,
        record: MemberRecord,
        catalog: RoleCatalog,
        member: discord.Member | None = None,
    ) -> MemberSyncResult:
        if member is None:
            member = await self.gateway.resolve_member(record.discord_uid)
        profile = await run_db(load_member_profile, self.engine, record)

        desired = evaluate_roles(profile, catalog)
        plan = plan_role_changes(
            desired, self.gateway.current_roles(member), catalog.managed_roles()
        )
        result = MemberSyncResult(discord_uid=record.discord_uid)
        result.mutations.extend(await self.apply_plan(member, plan))
        return result

    async def apply_plan(self, member: discord.Member, plan: RolePlan) -> list[RoleMutation]:
        """Grant then revoke every role in *plan*, one call per role."""
        mutations: list[RoleMutation] = []
        for role in plan.to_add:
            mutations.append(await self._mutate(member, role, MutationAction.ADD))
        for role in plan.to_remove:
            mutations.append(await self._mutate(member, role, MutationAction.REMOVE))
        return mutations

    async def _mutate(
        self, member: discord.Member, role: ManagedRole, action: MutationAction
    ) -> RoleMutation:
        try:
            if action is MutationAction.ADD:
                await self.gateway.add_role(member, role.role_id)
            else:
                await self.gateway.remove_role(member, role.role_id)
        except UpstreamError as exc:
            logger.error(
                "Failed to %s %s role %s (%s) for %s: %s",
                action, role.category, role.label, role.role_id, member, exc,
            )
            return RoleMutation(role=role, action=action, ok=False, error=str(exc))
        return RoleMutation(role=role, action=action, ok=True)

    # -------------------------------------------------------------------
    # Whole roster
    # -------------------------------------------------------------------
    async def sync_all(self) -> BulkSyncResult:
        """Sync every non-deleted member, isolating per-member failures."""
        logger.info("Starting sync for all members…")
        records = await run_db(list_active_members, self.engine)
        if not records:
            logger.info("No members found in database")
            return BulkSyncResult()

        catalog = await run_db(load_role_catalog, self.engine, self.roles)
        loop = asyncio.get_running_loop()
        deadline = None
        if self.options.batch_timeout_seconds is not None:
            deadline = loop.time() + self.options.batch_timeout_seconds
        semaphore = asyncio.Semaphore(self.options.concurrency)

        async def _run(record: MemberRecord) -> MemberSyncError | None:
            async with semaphore:
                return await self._sync_isolated(record, catalog, deadline)

        outcomes = await asyncio.gather(*(_run(r) for r in records))
        errors = [outcome for outcome in outcomes if outcome is not None]

        result = BulkSyncResult(
            synced=len(records) - len(errors),
            failed=len(errors),
            total=len(records),
            errors=errors,
        )
        logger.info("Sync completed — Synced: %d, Failed: %d", result.synced, result.failed)
        return result

    async def _sync_isolated(
        self,
        record: MemberRecord,
        catalog: RoleCatalog,
        deadline: float | None,
    ) -> MemberSyncError | None:
        """Sync one member for the batch; return an error entry or ``None``."""
        uid = record.discord_uid
        timeout = self.options.member_timeout_seconds
        if deadline is not None:
            remaining = deadline - asyncio.get_running_loop().time()
            if remaining <= 0:
                logger.warning("Batch deadline passed — skipping %s", uid)
                return MemberSyncError(uid, "Batch deadline exceeded before sync started")
            timeout = min(timeout, remaining)

        logger.info("Syncing roles for member: %s", uid)
        try:
            result = await asyncio.wait_for(self._sync_record(record, catalog), timeout)
        except TimeoutError:
            logger.warning("Role sync for %s timed out after %.1fs", uid, timeout)
            return MemberSyncError(uid, f"Timed out after {timeout:.1f}s")
        except StemBotError as exc:
            logger.warning("Failed to sync roles for %s: %s", uid, exc)
            return MemberSyncError(uid, str(exc))
        except Exception as exc:
            logger.exception("Unexpected error syncing roles for %s", uid)
            return MemberSyncError(uid, str(exc) or type(exc).__name__)

        if not result.ok:
            return MemberSyncError(uid, result.failure_summary())
        logger.info(
            "Successfully synced roles for %s — Assigned: %d, Removed: %d",
            uid, len(result.assigned), len(result.removed),
        )
        return None
