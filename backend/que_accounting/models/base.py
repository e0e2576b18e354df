"""
Base mixins for database models.

Provides common functionality:
- TimestampMixin: created_at, updated_at timestamps
- BusinessScopedMixin: business_id for multi-tenant isolation
- generate_uuid: UUID generation for primary keys
- utcnow / ensure_utc: timezone-aware clock helpers
"""

import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import Column, String, DateTime, ForeignKey, func
from sqlalchemy.orm import declared_attr


def generate_uuid() -> str:
    """Generate a UUID4 string for use as a primary key default."""
    return str(uuid.uuid4())


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """
    Normalize a datetime read back from the database to aware UTC.

    Some backends (SQLite) drop tzinfo on round-trip; values are always
    written in UTC, so a naive value is interpreted as UTC.
    """
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamp columns."""

    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        comment="Timestamp when record was created"
    )

    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
        server_default=func.now(),
        onupdate=utcnow,
        comment="Timestamp when record was last updated"
    )


class BusinessScopedMixin:
    """
    Mixin that adds business_id column for multi-tenant isolation.

    SECURITY: business_id is ONLY taken from the resolved tenant context.
    NEVER accept business_id for scoped resources from client input.
    """

    @declared_attr
    def business_id(cls):
        return Column(
            String(255),
            ForeignKey("businesses.id", ondelete="CASCADE"),
            nullable=False,
            index=True,
            comment="Owning business (tenant) ID"
        )
