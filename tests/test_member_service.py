"""
tests/test_member_service.py — Roster Queries & Member Directory Tests
=======================================================================
"""

from __future__ import annotations

import asyncio

import pytest

from stembot.database.models import MemberStatus
from stembot.errors import NotFoundError, ValidationError
from stembot.services.member_service import (
    MemberRecord,
    get_active_member,
    get_member_status,
    list_active_members,
    list_member_names,
    load_member_profile,
    load_role_catalog,
)

from conftest import MEMBER_ROLE, VERIFIED_ROLE

UID_1 = 600000000000000001
UID_2 = 600000000000000002
UID_3 = 600000000000000003


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


# ===========================================================================
# Roster queries
# ===========================================================================
class TestRosterQueries:

    def test_get_active_member(self, db_engine, roster):
        member_id = roster.member(UID_1, generation=51, status=1, student_number="20001")

        record = get_active_member(db_engine, UID_1)

        assert record == MemberRecord(
            id=member_id,
            discord_uid=UID_1,
            status=1,
            generation=51,
            student_number="20001",
        )

    def test_get_active_member_missing(self, db_engine):
        with pytest.raises(NotFoundError, match="Member not found in database"):
            get_active_member(db_engine, UID_1)

    def test_get_active_member_soft_deleted(self, db_engine, roster):
        roster.member(UID_1, deleted=True)
        with pytest.raises(NotFoundError):
            get_active_member(db_engine, UID_1)

    def test_list_active_members_order(self, db_engine, roster):
        roster.member(UID_1, generation=51, student_number="300")
        roster.member(UID_2, generation=52, student_number="200")
        roster.member(UID_3, generation=52, student_number="100")
        roster.member(700000000000000001, deleted=True)

        uids = [r.discord_uid for r in list_active_members(db_engine)]

        assert uids == [UID_3, UID_2, UID_1]

    def test_load_member_profile(self, db_engine, roster):
        member_id = roster.member(UID_1, status=1)
        team_a = roster.team("Robotics", 601)
        team_b = roster.team("Rocketry", 602)
        roster.join(member_id, team_a)
        roster.join(member_id, team_b)
        roster.lead(member_id, team_b)

        profile = load_member_profile(db_engine, get_active_member(db_engine, UID_1))

        assert profile.status is MemberStatus.SENIOR
        assert profile.team_ids == frozenset({team_a, team_b})
        assert profile.is_leader is True

    def test_load_member_profile_no_teams(self, db_engine, roster):
        roster.member(UID_1)
        profile = load_member_profile(db_engine, get_active_member(db_engine, UID_1))
        assert profile.team_ids == frozenset()
        assert profile.is_leader is False

    def test_load_member_profile_bad_status(self, db_engine, roster):
        roster.member(UID_1, status=3)
        with pytest.raises(ValidationError):
            load_member_profile(db_engine, get_active_member(db_engine, UID_1))

    def test_load_role_catalog(self, db_engine, roster, role_config):
        roster.generation_role(52, 502)
        roster.team("Rocketry", 602)
        roster.team("Biology", 603)

        catalog = load_role_catalog(db_engine, role_config)

        assert catalog.generation_roles == {52: 502}
        assert [t.name for t in catalog.team_roles] == ["Biology", "Rocketry"]
        assert catalog.config is role_config


# ===========================================================================
# Directory lookups
# ===========================================================================
class TestGetMemberStatus:

    def test_in_server(self, gateway):
        gateway.add_member(UID_1, name="taro_u", nick="Taro(12345)", role_ids={MEMBER_ROLE, VERIFIED_ROLE})
        gateway.role_labels = {MEMBER_ROLE: "部員", VERIFIED_ROLE: "認証済み"}

        body = run_async(get_member_status(gateway, UID_1))

        assert body == {
            "discord_uid": str(UID_1),
            "is_in_server": True,
            "current_nickname": "Taro(12345)",
            "current_roles": ["部員", "認証済み"],
        }

    def test_not_in_server(self, gateway):
        body = run_async(get_member_status(gateway, UID_1))

        assert body == {
            "discord_uid": str(UID_1),
            "is_in_server": False,
            "current_nickname": None,
            "current_roles": [],
        }


class TestListMemberNames:

    def test_lists_names_and_skips_absent(self, db_engine, roster, gateway):
        roster.member(UID_1, generation=52)
        roster.member(UID_2, generation=51)
        roster.member(UID_3, generation=50)
        roster.member(700000000000000001, generation=53, deleted=True)
        gateway.add_member(UID_1, nick="Taro(12345)")
        gateway.add_member(UID_3, name="hanako_u")
        gateway.add_member(700000000000000001, nick="Gone(1)")

        names = run_async(list_member_names(db_engine, gateway))

        assert names == [
            {"uid": str(UID_1), "name": "Taro"},
            {"uid": str(UID_3), "name": "hanako_u"},
        ]

    def test_upstream_failure_skipped(self, db_engine, roster, gateway):
        roster.member(UID_1)
        roster.member(UID_2)
        gateway.add_member(UID_1, nick="Taro(1)")
        gateway.add_member(UID_2, nick="Jiro(2)")
        gateway.fail_resolve.add(UID_2)

        names = run_async(list_member_names(db_engine, gateway))

        assert names == [{"uid": str(UID_1), "name": "Taro"}]

    def test_empty_roster(self, db_engine, gateway):
        assert run_async(list_member_names(db_engine, gateway)) == []
