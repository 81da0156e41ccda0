"""Create llm_models

Revision ID: 0002
Revises: 0001
Create Date: 2025-10-01

Adds the model catalogue used to route model names to providers.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "0002"
down_revision: str | None = "0001"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Create the llm_models table."""
    op.create_table(
        "llm_models",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("provider", sa.String(32), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("config", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_llm_models")),
        sa.UniqueConstraint("name", name=op.f("uq_llm_models_name")),
    )
    op.create_index(op.f("ix_llm_models_provider"), "llm_models", ["provider"])
    op.create_index(op.f("ix_llm_models_enabled"), "llm_models", ["enabled"])


def downgrade() -> None:
    """Drop the llm_models table."""
    op.drop_index(op.f("ix_llm_models_enabled"), table_name="llm_models")
    op.drop_index(op.f("ix_llm_models_provider"), table_name="llm_models")
    op.drop_table("llm_models")
