"""
Customer model: the representative tenant-scoped business resource.

SECURITY: rows are always read and written through the resolved business
context; business_id is never taken from request input.
"""

from sqlalchemy import Column, String, Text

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, BusinessScopedMixin, generate_uuid


class Customer(Base, TimestampMixin, BusinessScopedMixin):
    """A customer invoiced by a business."""

    __tablename__ = "customers"

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    name = Column(String(255), nullable=False, comment="Customer name")
    email = Column(String(255), nullable=True, comment="Billing email")
    phone = Column(String(50), nullable=True, comment="Contact phone")
    address = Column(Text, nullable=True, comment="Billing address")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }
