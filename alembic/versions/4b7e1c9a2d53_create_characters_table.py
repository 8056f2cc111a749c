"""Create characters table

Revision ID: 4b7e1c9a2d53
Revises:
Create Date: 2026-10-19 09:12:41.208511

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4b7e1c9a2d53"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "characters",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("user_id", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("class_name", sa.String(length=100), nullable=False),
        sa.Column("level", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("hp_current", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("hp_max", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("spell_slots", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("spells_known", sa.JSON(), nullable=False, server_default=sa.text("'[]'")),
        sa.Column("character_data", sa.JSON(), nullable=False, server_default=sa.text("'{}'")),
        sa.Column("share_token", sa.String(length=36), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(op.f("ix_characters_user_id"), "characters", ["user_id"], unique=False)
    op.create_index(op.f("ix_characters_share_token"), "characters", ["share_token"], unique=True)
    # List endpoint reads a user's characters newest first
    op.create_index(
        "ix_characters_user_id_created_at", "characters", ["user_id", sa.text("created_at DESC")]
    )


def downgrade() -> None:
    op.drop_index("ix_characters_user_id_created_at", table_name="characters")
    op.drop_index(op.f("ix_characters_share_token"), table_name="characters")
    op.drop_index(op.f("ix_characters_user_id"), table_name="characters")
    op.drop_table("characters")
