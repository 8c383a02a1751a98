"""
Table definitions for the record store.

Nested, document-shaped fields (member lists, invitation events, letter
customizations) are kept in JSON columns (JSONB on PostgreSQL).
"""

from __future__ import annotations

from sqlalchemy import JSON as SAJSON
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
)
from sqlalchemy.dialects.postgresql import JSONB

ID_LENGTH = 32

metadata = MetaData()
json_type = SAJSON().with_variant(JSONB, "postgresql")

users = Table(
    "users",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("full_name", String(255), nullable=False),
    Column("email", String(255), nullable=False, unique=True),
    Column("password", String(255), nullable=True),
    Column("google_id", String(255), nullable=True),
    Column("facebook_id", String(255), nullable=True),
    Column("picture", String(1024), nullable=True),
    Column("avatar", String(1024), nullable=True),
    Column("is_verified", Boolean, nullable=False, default=False),
    Column("account_type", String(16), nullable=False, default="FREE", index=True),
    Column("account_expires", DateTime, nullable=True),
    Column("last_login", DateTime, nullable=True),
    Column("created_at", DateTime, nullable=False, index=True),
    Column("updated_at", DateTime, nullable=False),
)

wedding_events = Table(
    "wedding_events",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("creator_id", String(ID_LENGTH), nullable=False, index=True),
    Column("bride_name", String(255), nullable=False),
    Column("groom_name", String(255), nullable=False),
    Column("budget", Float, nullable=False),
    Column("wedding_date", DateTime, nullable=False, index=True),
    Column("member_ids", json_type, nullable=False, default=list),
    Column("created_at", DateTime, nullable=False, index=True),
    Column("updated_at", DateTime, nullable=False),
)

invitation_letters = Table(
    "invitation_letters",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("user_id", String(ID_LENGTH), nullable=False, index=True),
    Column("template_id", String(255), nullable=False),
    Column("groom_name", String(255), nullable=False),
    Column("bride_name", String(255), nullable=False),
    Column("wedding_date", String(64), nullable=False),
    Column("wedding_time", String(64), nullable=False),
    Column("events", json_type, nullable=False, default=list),
    Column("customizations", json_type, nullable=False, default=dict),
    Column("created_at", DateTime, nullable=False),
    Column("updated_at", DateTime, nullable=False),
)

feedbacks = Table(
    "feedbacks",
    metadata,
    Column("id", String(ID_LENGTH), primary_key=True),
    Column("user_id", String(ID_LENGTH), nullable=False, unique=True),
    Column("star", Integer, nullable=False),
    Column("content", Text, nullable=False),
    Column("created_at", DateTime, nullable=False, index=True),
    Column("updated_at", DateTime, nullable=False),
    CheckConstraint("star >= 1 AND star <= 5", name="ck_feedbacks_star_range"),
)
