"""match results

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19

"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op


revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "match_results",
        sa.Column("result_id", sa.Uuid(as_uuid=True), primary_key=True, nullable=False),
        sa.Column("character_data", sa.JSON(), nullable=False),
        sa.Column("character_image", sa.Text(), nullable=False),
        sa.Column("matched_candidates", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now()),
    )
    op.create_index("ix_match_results_created_at", "match_results", ["created_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_match_results_created_at", table_name="match_results")
    op.drop_table("match_results")
