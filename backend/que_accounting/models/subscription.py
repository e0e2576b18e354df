"""
Subscription model: the billing state that gates write access per business.

CRITICAL: One subscription per business (business_id is unique).
Active-ness is derived, never stored: status == ACTIVE and expires_at > now.
Expiry is evaluated lazily at read time; there is no background sweep.
"""

import enum

from sqlalchemy import Column, String, DateTime, Enum, Text, ForeignKey
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class SubscriptionStatus(str, enum.Enum):
    """Stored subscription status values."""
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"
    EXPIRED = "EXPIRED"


class Subscription(Base, TimestampMixin):
    """Subscription record, 1:1 with Business."""

    __tablename__ = "subscriptions"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid
    )

    business_id = Column(
        String(255),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
        index=True,
        comment="One subscription per business"
    )

    status = Column(
        Enum(SubscriptionStatus, name="subscription_status", create_constraint=True),
        nullable=False,
        default=SubscriptionStatus.INACTIVE,
        index=True,
        comment="Stored status; see is_subscription_active for the derived state"
    )

    start_date = Column(
        DateTime(timezone=True),
        nullable=True,
        comment="When the current period started"
    )

    expires_at = Column(
        DateTime(timezone=True),
        nullable=True,
        index=True,
        comment="End of the current period"
    )

    plan_name = Column(String(100), nullable=True, comment="Plan label set by the administrator")
    notes = Column(Text, nullable=True, comment="Free-form administrator notes")

    business = relationship("Business", back_populates="subscription")

    def __repr__(self) -> str:
        return (
            f"<Subscription(business_id={self.business_id}, "
            f"status={self.status}, expires_at={self.expires_at})>"
        )
