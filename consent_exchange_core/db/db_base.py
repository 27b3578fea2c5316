"""
Base column types and mixins shared by every model.

Keeps cross-database compatibility (SQLite/PostgreSQL) for timestamps.
"""

import uuid
from datetime import UTC, datetime
from typing import Optional

from sqlalchemy import Column, DateTime, String
from sqlalchemy.types import TypeDecorator


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Normalize a datetime to aware UTC; naive values are taken as UTC already."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


class UTCDateTime(TypeDecorator):
    """
    Timezone-aware UTC datetime for SQLite/PostgreSQL.

    SQLite drops tzinfo on storage, so values are normalized to UTC before
    binding and re-tagged as UTC on load. This keeps SQL comparisons against
    stored timestamps consistent on both backends.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        value = as_utc(value)
        if dialect.name == "sqlite":
            return value.replace(tzinfo=None)
        return value

    def process_result_value(self, value, dialect):
        return as_utc(value)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(UTCDateTime, default=utc_now, nullable=False)
    updated_at = Column(UTCDateTime, default=utc_now, onupdate=utc_now, nullable=False)


class UUIDMixin:
    """Simple mixin for UUID primary keys."""

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
