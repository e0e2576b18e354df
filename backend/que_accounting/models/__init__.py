"""
Database models for identity, tenancy, subscriptions and permissions.

Tenant-scoped resource models inherit from BusinessScopedMixin.
Importing this package registers every table on Base.metadata.
"""

from que_accounting.models.base import TimestampMixin, BusinessScopedMixin
from que_accounting.models.user import User, UserRole
from que_accounting.models.business import Business
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.models.permission import Permission
from que_accounting.models.role import Role, RolePermission
from que_accounting.models.membership import BusinessUser, UserPermission
from que_accounting.models.customer import Customer
from que_accounting.models.business_settings import BusinessSettings

__all__ = [
    "TimestampMixin",
    "BusinessScopedMixin",
    "User",
    "UserRole",
    "Business",
    "Subscription",
    "SubscriptionStatus",
    "Permission",
    "Role",
    "RolePermission",
    "BusinessUser",
    "UserPermission",
    "Customer",
    "BusinessSettings",
]
