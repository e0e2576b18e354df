"""
Global permission catalog.

A Permission is a (module, action) capability unit shared by every
business. Businesses reference catalog entries through RolePermission and
UserPermission; they never define their own.
"""

from sqlalchemy import Column, String, UniqueConstraint
from sqlalchemy.orm import relationship

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, generate_uuid


class Permission(Base, TimestampMixin):
    """Catalog entry identified by the unique (module, action) pair."""

    __tablename__ = "permissions"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    module = Column(
        String(100),
        nullable=False,
        index=True,
        comment="Module name (e.g. 'invoice')"
    )

    action = Column(
        String(100),
        nullable=False,
        comment="Action name (e.g. 'create')"
    )

    role_grants = relationship(
        "RolePermission",
        back_populates="permission",
        cascade="all, delete-orphan",
    )

    user_grants = relationship(
        "UserPermission",
        back_populates="permission",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        UniqueConstraint("module", "action", name="uq_permissions_module_action"),
    )

    @property
    def key(self) -> str:
        return f"{self.module}:{self.action}"

    def __repr__(self) -> str:
        return f"<Permission({self.module}:{self.action})>"
