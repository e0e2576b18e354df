"""
User model for the invoicing platform.

A User is a global identity; access to a business is granted through a
BusinessUser membership (or through ownership of the business).

CRITICAL SECURITY:
- password_hash stores a bcrypt hash only, never the raw password
- role is the coarse, platform-wide authority axis (USER, ADMIN, SUPER_ADMIN)
  and is independent of the per-business Role held through a membership
- active_business_id is the remembered tenant; it is re-validated against
  membership on every request and never trusted on its own
"""

import enum

from sqlalchemy import Column, String, Boolean, Enum
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class UserRole(str, enum.Enum):
    """Coarse platform role carried in tokens."""
    USER = "USER"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"


class User(Base, TimestampMixin):
    """Registered account that can own or be invited into businesses."""

    __tablename__ = "users"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    name = Column(
        String(255),
        nullable=True,
        comment="Display name"
    )

    email = Column(
        String(255),
        nullable=False,
        unique=True,
        index=True,
        comment="Login email (unique)"
    )

    password_hash = Column(
        String(255),
        nullable=False,
        comment="bcrypt hash of the account password"
    )

    role = Column(
        Enum(UserRole, name="user_role", create_constraint=True),
        nullable=False,
        default=UserRole.USER,
        comment="Coarse platform role"
    )

    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        index=True,
        comment="Deactivated accounts are rejected on every request"
    )

    active_business_id = Column(
        String(255),
        nullable=True,
        comment="Remembered active business (soft reference to businesses.id)"
    )

    memberships = relationship(
        "BusinessUser",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    owned_businesses = relationship(
        "Business",
        back_populates="owner",
    )

    @property
    def is_super_admin(self) -> bool:
        return self.role == UserRole.SUPER_ADMIN

    def to_public_dict(self) -> dict:
        """Serialize without credential material."""
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "role": self.role.value if self.role else None,
            "is_active": self.is_active,
            "active_business_id": self.active_business_id,
        }

    def __repr__(self) -> str:
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"
