"""initial schema: score events and leaderboards

Revision ID: 001
Revises:
Create Date: 2026-10-19
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_VARIANT = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "score_events",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("user_id", sa.String(), nullable=False),
        sa.Column("score", sa.BigInteger(), nullable=False),
        sa.Column("timestamp", sa.BigInteger(), nullable=False),
    )
    op.create_index("ix_score_events_user_id", "score_events", ["user_id"])
    op.create_index("ix_score_events_timestamp", "score_events", ["timestamp"])

    op.create_table(
        "leaderboards",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("generated_at", sa.BigInteger(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("entries_jsonb", JSON_VARIANT, nullable=True),
    )
    op.create_index("ix_leaderboards_generated_at", "leaderboards", ["generated_at"])


def downgrade() -> None:
    op.drop_index("ix_leaderboards_generated_at", table_name="leaderboards")
    op.drop_table("leaderboards")
    op.drop_index("ix_score_events_timestamp", table_name="score_events")
    op.drop_index("ix_score_events_user_id", table_name="score_events")
    op.drop_table("score_events")
