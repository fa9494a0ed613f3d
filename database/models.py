"""
SQLAlchemy ORM models for host users and the shared options table.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, String, Uuid
from sqlalchemy.orm import DeclarativeBase

DEFAULT_ROLE = "customer"


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    login = Column(String(64), unique=True, nullable=False)
    display_name = Column(String(128))
    password_hash = Column(String(255), nullable=False, default="")
    role = Column(String(32), nullable=False, default=DEFAULT_ROLE)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Option(Base):
    """Key-value configuration row (one JSON blob per key)."""

    __tablename__ = "options"

    option_key = Column(String(191), primary_key=True)
    option_value = Column(JSON, nullable=False, default=dict)
    updated_at = Column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
