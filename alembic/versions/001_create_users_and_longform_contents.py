"""create_users_and_longform_contents

Revision ID: 001
Revises:
Create Date: 2025-06-02 09:00:00.000000

- Creates users table holding plan type and quota counters
- Creates longform_contents table for completed and failed generation records
- Indexes on user_id, status and (user_id, created_at) for history queries
"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create users and longform_contents tables."""
    op.create_table(
        "users",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True, index=True),
        sa.Column("plan_type", sa.String(50), nullable=False, server_default="free"),
        sa.Column("requests_used", sa.Integer, nullable=False, server_default="0"),
        sa.Column("requests_limit", sa.Integer, nullable=False, server_default="0"),
        sa.Column("flexy_requests", sa.Integer, nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("requests_used >= 0", name="ck_users_requests_used_nonneg"),
        sa.CheckConstraint("flexy_requests >= 0", name="ck_users_flexy_requests_nonneg"),
    )

    op.create_table(
        "longform_contents",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
        ),
        sa.Column("module_type", sa.String(50), nullable=False, server_default="longform"),
        sa.Column("status", sa.String(20), nullable=False, index=True),
        sa.Column("inputs", postgresql.JSONB, nullable=False),
        sa.Column("outline", postgresql.JSONB, nullable=True),
        sa.Column("content", sa.Text, nullable=True),
        sa.Column("generation_metadata", postgresql.JSONB, nullable=True),
        sa.Column("error", sa.Text, nullable=True),
        sa.Column("created_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime, nullable=False, server_default=sa.func.now()),
    )

    # Composite index for per-user history queries
    op.create_index(
        "idx_longform_user_created",
        "longform_contents",
        ["user_id", "created_at"],
    )


def downgrade() -> None:
    """Drop longform_contents and users tables."""
    op.drop_index("idx_longform_user_created", table_name="longform_contents")
    op.drop_table("longform_contents")
    op.drop_table("users")
