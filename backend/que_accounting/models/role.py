"""
Business-scoped Role model.

Roles are defined per business and are never shared across tenants.
Provisioning seeds every business with two roles:
- "Admin": structurally bypasses the catalog check, and additionally starts
  with a RolePermission for every catalog entry known at provisioning time
- "User": no permissions; the landing role for invited collaborators
"""

from sqlalchemy import Column, String, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class Role(Base, TimestampMixin):
    """Named, business-scoped bundle of permissions."""

    __tablename__ = "roles"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    business_id = Column(
        String(255),
        ForeignKey("businesses.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Owning business ID"
    )

    name = Column(
        String(100),
        nullable=False,
        comment="Role name (e.g. 'Admin', 'User')"
    )

    business = relationship("Business", back_populates="roles")

    permissions = relationship(
        "RolePermission",
        back_populates="role",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("business_id", "name", name="uq_roles_business_name"),
    )

    def __repr__(self) -> str:
        return f"<Role(id={self.id}, business_id={self.business_id}, name={self.name})>"


class RolePermission(Base, TimestampMixin):
    """Grant of one catalog permission to one role."""

    __tablename__ = "role_permissions"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    role_id = Column(
        String(255),
        ForeignKey("roles.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Role receiving the grant"
    )

    permission_id = Column(
        String(255),
        ForeignKey("permissions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
        comment="Granted catalog permission"
    )

    role = relationship("Role", back_populates="permissions")
    permission = relationship("Permission", back_populates="role_grants")

    __table_args__ = (
        UniqueConstraint("role_id", "permission_id", name="uq_role_permissions_pair"),
    )
