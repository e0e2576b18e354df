"""
Business (tenant) model.

Business.id IS the business_id used by every tenant-scoped model.

Key concepts:
- owner_id is fixed at creation and is NOT necessarily backed by a
  membership row; owner authority is checked against this column directly
- is_active starts False and is flipped by subscription activation
- exactly one Subscription exists per business after provisioning
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, Text
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class Business(Base, TimestampMixin):
    """A tenant: an isolated customer account with its own roles and data."""

    __tablename__ = "businesses"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Primary key - this IS the business_id used across all models"
    )

    owner_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Creating user; immutable after provisioning"
    )

    name = Column(
        String(255),
        nullable=False,
        comment="Display name of the business"
    )

    email = Column(String(255), nullable=True, comment="Contact email")
    phone = Column(String(50), nullable=True, comment="Contact phone")
    address = Column(Text, nullable=True, comment="Postal address")

    is_active = Column(
        Boolean,
        nullable=False,
        default=False,
        index=True,
        comment="False until the first subscription activation"
    )

    owner = relationship("User", back_populates="owned_businesses")

    subscription = relationship(
        "Subscription",
        back_populates="business",
        uselist=False,
        cascade="all, delete-orphan",
    )

    roles = relationship(
        "Role",
        back_populates="business",
        cascade="all, delete-orphan",
    )

    memberships = relationship(
        "BusinessUser",
        back_populates="business",
        cascade="all, delete-orphan",
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "owner_id": self.owner_id,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
        }

    def __repr__(self) -> str:
        return f"<Business(id={self.id}, name={self.name}, is_active={self.is_active})>"
