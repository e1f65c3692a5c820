"""Initial roster schema

Revision ID: 5a2c7e91b4d0
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "5a2c7e91b4d0"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create members, teams, their relations and generation_roles."""
    op.create_table(
        "members",
        sa.Column("supabase_auth_user_id", sa.String(36), primary_key=True),
        sa.Column("status", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("generation", sa.Integer(), nullable=False),
        sa.Column("student_number", sa.String(32), nullable=True),
        sa.Column("discord_uid", sa.BigInteger(), nullable=False, unique=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "joined_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_members_generation", "members", ["generation"])

    op.create_table(
        "teams",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("discord_role_id", sa.BigInteger(), nullable=False),
    )

    op.create_table(
        "member_team_relations",
        sa.Column(
            "member_id",
            sa.String(36),
            sa.ForeignKey("members.supabase_auth_user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "team_id",
            sa.String(36),
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "team_leaders",
        sa.Column(
            "team_id",
            sa.String(36),
            sa.ForeignKey("teams.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "member_id",
            sa.String(36),
            sa.ForeignKey("members.supabase_auth_user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "generation_roles",
        sa.Column("generation", sa.Integer(), primary_key=True, autoincrement=False),
        sa.Column("discord_role_id", sa.BigInteger(), nullable=False),
    )


def downgrade() -> None:
    """Drop the roster tables."""
    op.drop_table("generation_roles")
    op.drop_table("team_leaders")
    op.drop_table("member_team_relations")
    op.drop_table("teams")
    op.drop_index("ix_members_generation", table_name="members")
    op.drop_table("members")
