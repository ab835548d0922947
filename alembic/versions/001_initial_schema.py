"""Initial schema with queue_entries table

Revision ID: 001
Revises: 
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def upgrade() -> None:
    op.create_table(
        "queue_entries",
        sa.Column("identity", sa.String(255), nullable=False),
        sa.Column("payload", JSON_TYPE, nullable=False),
        sa.Column("context", JSON_TYPE, nullable=True),
        sa.Column("relations", JSON_TYPE, nullable=False),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("identity"),
    )

    # Sweeps list the whole queue in creation order
    op.create_index("ix_queue_entries_created_at", "queue_entries", ["created_at"])


def downgrade() -> None:
    op.drop_index("ix_queue_entries_created_at", table_name="queue_entries")
    op.drop_table("queue_entries")
