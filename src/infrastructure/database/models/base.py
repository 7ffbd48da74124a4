# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Declarative base and shared column helpers for all ORM models.

All timestamps are timezone-aware UTC. JSON columns map to JSONB on
PostgreSQL and to the generic JSON type elsewhere (SQLite in tests).
"""

from datetime import datetime

from sqlalchemy import JSON, DateTime, Numeric, func
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from src.utils.datetime import utc_now

JSONType = JSON().with_variant(JSONB(), "postgresql")

# Scores, averages and council points share the persisted DECIMAL(5,2) precision.
ScoreType = Numeric(5, 2, asdecimal=True)


class Base(DeclarativeBase):
    """Declarative base for the academic records schema."""

    pass


class TimestampMixin:
    """Adds created_at and updated_at columns.

    Values are assigned on the Python side so that freshly flushed rows
    never need a round-trip to read them back.
    """

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        server_default=func.now(),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utc_now,
        onupdate=utc_now,
        server_default=func.now(),
    )
