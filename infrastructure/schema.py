"""
Database Schema: SQLAlchemy Core Table Definitions

Defines database tables using SQLAlchemy Core for type-safe query building.
The users table owns the quota counters; long-form records reference it.
"""

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import UUID as PG_UUID

# Metadata instance for all tables
metadata = MetaData()

# Users Table (quota owner)
users_table = Table(
    "users",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column("email", String(255), nullable=True, unique=True, index=True),
    Column("plan_type", String(50), nullable=False, server_default="free"),
    Column("requests_used", Integer, nullable=False, server_default="0"),
    Column("requests_limit", Integer, nullable=False, server_default="0"),
    Column("flexy_requests", Integer, nullable=False, server_default="0"),
    Column("created_at", DateTime, default=func.now()),
    Column("updated_at", DateTime, default=func.now(), onupdate=func.now()),
)

# Long-form Content Table
longform_contents_table = Table(
    "longform_contents",
    metadata,
    Column("id", PG_UUID(as_uuid=True), primary_key=True),
    Column(
        "user_id",
        PG_UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("module_type", String(50), nullable=False, server_default="longform"),
    Column("status", String(20), nullable=False, index=True),
    Column("inputs", JSONB, nullable=False),
    Column("outline", JSONB),
    Column("content", Text),
    Column("generation_metadata", JSONB),
    Column("error", Text),
    Column("created_at", DateTime, default=func.now(), index=True),
    Column("updated_at", DateTime, default=func.now(), onupdate=func.now()),
    # Composite index for per-user history queries
    Index("idx_longform_user_created", "user_id", "created_at"),
)


__all__ = ["metadata", "users_table", "longform_contents_table"]
