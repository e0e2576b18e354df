"""
Business settings: company details printed on invoices and receipts.

One row per business, created on the first save.
"""

from sqlalchemy import Column, String, Text, UniqueConstraint

from que_accounting.db_base import Base
from que_accounting.models.base import TimestampMixin, BusinessScopedMixin, generate_uuid


class BusinessSettings(Base, TimestampMixin, BusinessScopedMixin):
    """Company profile and banking details of a business."""

    __tablename__ = "business_settings"

    __table_args__ = (
        UniqueConstraint("business_id", name="uq_business_settings_business"),
    )

    id = Column(
        String(255),
        primary_key=True,
        default=generate_uuid,
        comment="Internal UUID primary key"
    )

    company_name = Column(String(255), nullable=True, comment="Name printed on documents")
    company_logo = Column(String(1024), nullable=True, comment="Logo URL")
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(Text, nullable=True)
    trn = Column(String(50), nullable=True, comment="Tax registration number")
    bank_name = Column(String(255), nullable=True)
    account_name = Column(String(255), nullable=True)
    iban = Column(String(64), nullable=True)
    swift_code = Column(String(32), nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "business_id": self.business_id,
            "company_name": self.company_name,
            "company_logo": self.company_logo,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "trn": self.trn,
            "bank_name": self.bank_name,
            "account_name": self.account_name,
            "iban": self.iban,
            "swift_code": self.swift_code,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }
