"""
stembot.engine.roles — Role Policy Evaluator & Diff Planner
============================================================

Pure role computation.  No Discord I/O, no DB I/O inside the engine.

Pipeline::

    MemberProfile + RoleCatalog → evaluate_roles → desired roles
    desired + current guild roles + managed roles → plan_role_changes → RolePlan

Only *managed* roles are ever compared: a role the catalog does not know
about (moderator roles, bot roles, ``@everyone``) is never planned for
removal.  Every catalog collection is built in category order
(generation, team, leader, status, member, verified), so plans come out
in that order too.
"""

from __future__ import annotations

import enum
from collections.abc import Set
from dataclasses import dataclass, field
from typing import assert_never

from stembot.config import RoleConfig
from stembot.constants import (
    LEADER_LABEL,
    MEMBER_LABEL,
    STATUS_LABELS,
    VERIFIED_LABEL,
    generation_label,
)
from stembot.database.models import MemberStatus

__all__ = [
    "ManagedRole",
    "MemberProfile",
    "RoleCatalog",
    "RoleCategory",
    "RolePlan",
    "TeamRole",
    "evaluate_roles",
    "is_enrolled",
    "plan_role_changes",
]


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------
class RoleCategory(enum.StrEnum):
    """Role categories the sync asserts and retracts authoritatively."""
    GENERATION = "generation"
    TEAM = "team"
    LEADER = "leader"
    STATUS = "status"
    MEMBER = "member"
    VERIFIED = "verified"


@dataclass(frozen=True, slots=True)
class ManagedRole:
    """A Discord role id tagged with its category and report label."""

    role_id: int
    category: RoleCategory
    label: str


@dataclass(frozen=True, slots=True)
class TeamRole:
    team_id: str
    name: str
    role_id: int


@dataclass(frozen=True, slots=True)
class RoleCatalog:
    """Every role the sync manages, as read from the roster + config."""

    generation_roles: dict[int, int] = field(default_factory=dict)  # generation → role id
    team_roles: tuple[TeamRole, ...] = ()
    config: RoleConfig = field(default_factory=RoleConfig)

    def managed_roles(self) -> dict[int, ManagedRole]:
        """Map every managed role id to its category and label.

        Unset config entries are skipped, which is what makes an
        unconfigured category inert.  When one role id appears in two
        categories the first registration wins.
        """
        roles: dict[int, ManagedRole] = {}

        def _register(role_id: int | None, category: RoleCategory, label: str) -> None:
            if role_id is not None:
                roles.setdefault(role_id, ManagedRole(role_id, category, label))

        for generation, role_id in sorted(self.generation_roles.items()):
            _register(role_id, RoleCategory.GENERATION, generation_label(generation))
        for team in self.team_roles:
            _register(team.role_id, RoleCategory.TEAM, team.name)
        _register(self.config.leader, RoleCategory.LEADER, LEADER_LABEL)
        for status in MemberStatus:
            _register(self.config.status_role(status), RoleCategory.STATUS, STATUS_LABELS[status])
        _register(self.config.member, RoleCategory.MEMBER, MEMBER_LABEL)
        _register(self.config.verified, RoleCategory.VERIFIED, VERIFIED_LABEL)
        return roles


@dataclass(frozen=True, slots=True)
class MemberProfile:
    """The roster facts that drive a member's roles."""

    status: MemberStatus
    generation: int
    team_ids: frozenset[str] = frozenset()
    is_leader: bool = False


@dataclass(frozen=True, slots=True)
class RolePlan:
    """Roles to grant and revoke to move a member to the desired state."""

    to_add: tuple[ManagedRole, ...] = ()
    to_remove: tuple[ManagedRole, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.to_add and not self.to_remove


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------
def is_enrolled(status: MemberStatus) -> bool:
    """Juniors and seniors are current members; alumni are not."""
    match status:
        case MemberStatus.JUNIOR | MemberStatus.SENIOR:
            return True
        case MemberStatus.ALUMNUS:
            return False
        case _:
            assert_never(status)


def evaluate_roles(profile: MemberProfile, catalog: RoleCatalog) -> dict[int, ManagedRole]:
    """Compute the managed roles *profile* should hold, keyed by role id.

    * the generation role of the member's own generation, when one exists
    * the role of every team the member belongs to
    * the leader role when the member leads any team
    * the status role matching the member's status
    * the member role for juniors and seniors
    * the verified role, always (being on the roster is the verification)
    """
    cfg = catalog.config
    desired: dict[int, ManagedRole] = {}

    def _want(role_id: int | None, category: RoleCategory, label: str) -> None:
        if role_id is not None:
            desired.setdefault(role_id, ManagedRole(role_id, category, label))

    _want(
        catalog.generation_roles.get(profile.generation),
        RoleCategory.GENERATION,
        generation_label(profile.generation),
    )
    for team in catalog.team_roles:
        if team.team_id in profile.team_ids:
            _want(team.role_id, RoleCategory.TEAM, team.name)
    if profile.is_leader:
        _want(cfg.leader, RoleCategory.LEADER, LEADER_LABEL)
    _want(cfg.status_role(profile.status), RoleCategory.STATUS, STATUS_LABELS[profile.status])
    if is_enrolled(profile.status):
        _want(cfg.member, RoleCategory.MEMBER, MEMBER_LABEL)
    _want(cfg.verified, RoleCategory.VERIFIED, VERIFIED_LABEL)
    return desired


# ---------------------------------------------------------------------------
# Diff
# ---------------------------------------------------------------------------
def plan_role_changes(
    desired: dict[int, ManagedRole],
    current: Set[int],
    managed: dict[int, ManagedRole],
) -> RolePlan:
    """Diff *desired* against the roles the member holds right now.

    Grants every desired role not held.  Revokes only held roles that are
    in *managed* and not desired.
    """
    to_add = tuple(role for role_id, role in desired.items() if role_id not in current)
    to_remove = tuple(
        role
        for role_id, role in managed.items()
        if role_id in current and role_id not in desired
    )
    return RolePlan(to_add=to_add, to_remove=to_remove)
