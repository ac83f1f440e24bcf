"""appeals initial schema

Revision ID: 0001_appeals_initial
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001_appeals_initial"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

OPEN_STATUS_PREDICATE = sa.text("status IN ('PENDING', 'UNDER_REVIEW')")


def _enum(name: str, *values: str) -> sa.Enum:
    return sa.Enum(*values, name=name, native_enum=False, length=20)


def upgrade() -> None:
    """Create users, moderation actions and appeals."""
    op.create_table(
        "users",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("is_moderator", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.PrimaryKeyConstraint("id"),
    )

    op.create_table(
        "moderation_actions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column(
            "target_type",
            _enum("moderation_target_type", "RESPONSE", "USER", "TOPIC"),
            nullable=False,
        ),
        sa.Column("target_id", sa.String(length=36), nullable=False),
        sa.Column(
            "action_type",
            _enum("moderation_action_type", "EDUCATE", "WARN", "HIDE", "REMOVE", "SUSPEND", "BAN"),
            nullable=False,
        ),
        sa.Column(
            "severity",
            _enum("moderation_severity", "NON_PUNITIVE", "CONSEQUENTIAL"),
            nullable=False,
        ),
        sa.Column("reasoning", sa.Text(), nullable=False),
        sa.Column("ai_recommended", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("ai_confidence", sa.Numeric(precision=3, scale=2), nullable=True),
        sa.Column("approved_by_id", sa.String(length=36), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "status",
            _enum("moderation_status", "PENDING", "ACTIVE", "APPEALED", "REVERSED"),
            nullable=False,
        ),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("executed_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(["approved_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_moderation_actions_target",
        "moderation_actions",
        ["target_type", "target_id"],
    )
    op.create_index("ix_moderation_actions_status", "moderation_actions", ["status"])

    op.create_table(
        "appeals",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("moderation_action_id", sa.String(length=36), nullable=False),
        sa.Column("appellant_id", sa.String(length=36), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column(
            "status",
            _enum("appeal_status", "PENDING", "UNDER_REVIEW", "UPHELD", "DENIED"),
            nullable=False,
        ),
        sa.Column("reviewer_id", sa.String(length=36), nullable=True),
        sa.Column("decision_reasoning", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(
            ["moderation_action_id"], ["moderation_actions.id"], ondelete="CASCADE"
        ),
        sa.ForeignKeyConstraint(["appellant_id"], ["users.id"], ondelete="RESTRICT"),
        sa.ForeignKeyConstraint(["reviewer_id"], ["users.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_appeals_moderation_action_id", "appeals", ["moderation_action_id"]
    )
    op.create_index("ix_appeals_status", "appeals", ["status"])
    op.create_index("ix_appeals_created_at_id", "appeals", ["created_at", "id"])
    op.create_index(
        "uq_appeals_open_per_action",
        "appeals",
        ["moderation_action_id"],
        unique=True,
        sqlite_where=OPEN_STATUS_PREDICATE,
        postgresql_where=OPEN_STATUS_PREDICATE,
    )


def downgrade() -> None:
    """Drop the appeal schema."""
    op.drop_index("uq_appeals_open_per_action", table_name="appeals")
    op.drop_index("ix_appeals_created_at_id", table_name="appeals")
    op.drop_index("ix_appeals_status", table_name="appeals")
    op.drop_index("ix_appeals_moderation_action_id", table_name="appeals")
    op.drop_table("appeals")
    op.drop_index("ix_moderation_actions_status", table_name="moderation_actions")
    op.drop_index("ix_moderation_actions_target", table_name="moderation_actions")
    op.drop_table("moderation_actions")
    op.drop_table("users")
