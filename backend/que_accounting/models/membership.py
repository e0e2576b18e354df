"""
Membership (BusinessUser) model: the binding of a User to a Business.

Unique per (user, business). Each membership carries exactly one Role of
the SAME business and an optional set of direct UserPermission grants
layered on top of that role.

SECURITY:
- is_active soft-disables access without deleting history
- role.business_id must equal business_id (enforced by the services that
  create or update memberships)
"""

from sqlalchemy import Column, String, Boolean, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class BusinessUser(Base, TimestampMixin):
    """A user's membership in a business."""

    __tablename__ = "business_users"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    user_id = Column(
        String(255),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Member user ID"
    )

    business_id = Column(
        String(255),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Business ID"
    )

    role_id = Column(
        String(255),
        ForeignKey("roles.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
        comment="Role within the same business"
    )

    is_active = Column(
        Boolean,
        nullable=False,
        default=True,
        comment="Disabled memberships are rejected by tenant resolution"
    )

    user = relationship("User", back_populates="memberships")
    business = relationship("Business", back_populates="memberships")
    role = relationship("Role")

    direct_permissions = relationship(
        "UserPermission",
        back_populates="membership",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("user_id", "business_id", name="uq_business_users_user_business"),
    )

    def __repr__(self) -> str:
        return (
            f"<BusinessUser(id={self.id}, user_id={self.user_id}, "
            f"business_id={self.business_id}, is_active={self.is_active})>"
        )


class UserPermission(Base, TimestampMixin):
    """Direct grant of one catalog permission to one membership."""

    __tablename__ = "user_permissions"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    business_user_id = Column(
        String(255),
        ForeignKey("business_users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Membership receiving the grant"
    )

    permission_id = Column(
        String(255),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Granted catalog permission"
    )

    membership = relationship("BusinessUser", back_populates="direct_permissions")
    permission = relationship("Permission", back_populates="user_grants")

    __table_args__ = (
        UniqueConstraint("business_user_id", "permission_id", name="uq_user_permissions_pair"),
    )
