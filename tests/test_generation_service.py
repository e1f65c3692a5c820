"""
tests/test_generation_service.py — Generation Role Creation Tests
==================================================================
"""

from __future__ import annotations

import asyncio
from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from stembot.errors import ConflictError, UpstreamError, ValidationError
from stembot.services.generation_service import (
    create_generation_role,
    get_generation_role_id,
)


def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.get_event_loop_policy().new_event_loop().run_until_complete(coro)


class TestCreateGenerationRole:

    def test_creates_role_and_mapping(self, db_engine, gateway):
        body = run_async(create_generation_role(db_engine, gateway, 53))

        assert gateway.created_roles == [("53期生", body["role_id"])]
        assert body == {"role_id": body["role_id"], "generation": 53}
        assert get_generation_role_id(db_engine, 53) == body["role_id"]

    def test_conflict_creates_nothing(self, db_engine, roster, gateway):
        roster.generation_role(52, 502)

        with pytest.raises(ConflictError, match="Generation role already exists"):
            run_async(create_generation_role(db_engine, gateway, 52))

        assert gateway.created_roles == []
        assert get_generation_role_id(db_engine, 52) == 502

    @pytest.mark.parametrize("generation", [0, -3, True, "53", 5.0])
    def test_invalid_generation(self, db_engine, gateway, generation):
        with pytest.raises(ValidationError):
            run_async(create_generation_role(db_engine, gateway, generation))
        assert gateway.created_roles == []

    def test_discord_failure_writes_nothing(self, db_engine, gateway):
        gateway.fail_create = True

        with pytest.raises(UpstreamError):
            run_async(create_generation_role(db_engine, gateway, 53))

        assert get_generation_role_id(db_engine, 53) is None

    def test_insert_failure_names_orphan_role(self, db_engine, gateway):
        err = OperationalError("INSERT", {}, Exception("disk full"))
        with patch(
            "stembot.services.generation_service.insert_generation_role",
            side_effect=err,
        ):
            with pytest.raises(UpstreamError, match="9001"):
                run_async(create_generation_role(db_engine, gateway, 53))

        assert gateway.created_roles == [("53期生", 9001)]

    def test_concurrent_requests_create_one_role(self, db_engine, gateway):
        async def _inner():
            return await asyncio.gather(
                create_generation_role(db_engine, gateway, 60),
                create_generation_role(db_engine, gateway, 60),
                return_exceptions=True,
            )

        outcomes = run_async(_inner())

        created = [o for o in outcomes if isinstance(o, dict)]
        conflicts = [o for o in outcomes if isinstance(o, ConflictError)]
        assert len(created) == 1
        assert len(conflicts) == 1
        assert gateway.created_roles == [("60期生", created[0]["role_id"])]
        assert get_generation_role_id(db_engine, 60) == created[0]["role_id"]

    def test_duplicate_key_on_insert_is_conflict(self, db_engine, gateway):
        err = IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed"))
        with patch(
            "stembot.services.generation_service.insert_generation_role",
            side_effect=err,
        ):
            with pytest.raises(ConflictError, match="Generation role already exists"):
                run_async(create_generation_role(db_engine, gateway, 53))


class TestGetGenerationRoleId:

    def test_missing(self, db_engine):
        assert get_generation_role_id(db_engine, 1) is None

    def test_present(self, db_engine, roster):
        roster.generation_role(7, 707)
        assert get_generation_role_id(db_engine, 7) == 707
