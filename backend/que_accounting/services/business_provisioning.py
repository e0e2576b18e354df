"""
Business Provisioning: atomic creation of a tenant and business switching.

create_business runs every step inside one savepoint:
1. Business (owner = creator, inactive)
2. Subscription (INACTIVE)
3. Role "Admin"
4. Role "User" (no permissions)
5. RolePermission for every catalog entry on the Admin role
6. Owner membership holding the Admin role
7. Owner's remembered active business = new business

Any failure rolls the savepoint back and raises ProvisioningFailedError, so
a business never exists without its subscription, default roles and owner
membership. The caller commits the request transaction.
"""

import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, joinedload

from que_accounting.constants.permissions import ADMIN_ROLE_NAME, DEFAULT_ROLE_NAME
from que_accounting.entitlements.rules import SubscriptionSnapshot
from que_accounting.models.business import Business
from que_accounting.models.membership import BusinessUser
from que_accounting.models.permission import Permission
from que_accounting.models.role import Role, RolePermission
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.models.user import User
from que_accounting.platform.errors import (
    MembershipDisabledError,
    NotAMemberError,
    NotFoundError,
    ProvisioningFailedError,
    ValidationFailedError,
)

logger = logging.getLogger(__name__)

MAX_BUSINESS_NAME_LENGTH = 255


class BusinessProvisioningService:
    """Creates businesses and moves users between them."""

    def __init__(self, session: Session):
        """
        Initialize service with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def create_business(
        self,
        owner_id: str,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        address: Optional[str] = None,
    ) -> Business:
        """
        Provision a new business owned by owner_id.

        Returns:
            The new Business (inactive until subscription activation)

        Raises:
            ValidationFailedError: Empty or overlong name
            NotFoundError: Owner does not exist
            ProvisioningFailedError: Any step failed; nothing was persisted
        """
        name = (name or "").strip()
        if not name:
            raise ValidationFailedError("Business name is required")
        if len(name) > MAX_BUSINESS_NAME_LENGTH:
            raise ValidationFailedError("Business name is too long")

        owner = self.session.query(User).filter(User.id == owner_id).first()
        if owner is None:
            raise NotFoundError("User not found")

        try:
            with self.session.begin_nested():
                business = Business(
                    owner_id=owner.id,
                    name=name,
                    email=email,
                    phone=phone,
                    address=address,
                    is_active=False,
                )
                self.session.add(business)
                self.session.flush()

                self.session.add(
                    Subscription(business_id=business.id, status=SubscriptionStatus.INACTIVE)
                )

                admin_role = Role(business_id=business.id, name=ADMIN_ROLE_NAME)
                user_role = Role(business_id=business.id, name=DEFAULT_ROLE_NAME)
                self.session.add_all([admin_role, user_role])
                self.session.flush()

                granted = self._grant_catalog_to_role(admin_role)

                self.session.add(
                    BusinessUser(
                        user_id=owner.id,
                        business_id=business.id,
                        role_id=admin_role.id,
                        is_active=True,
                    )
                )

                owner.active_business_id = business.id
                self.session.flush()
        except Exception as exc:
            logger.error(
                "Business provisioning failed",
                extra={"owner_id": owner_id},
                exc_info=True,
            )
            raise ProvisioningFailedError() from exc

        logger.info(
            "Business provisioned",
            extra={
                "business_id": business.id,
                "owner_id": owner.id,
                "admin_permissions": granted,
            },
        )
        return business

    def _grant_catalog_to_role(self, role: Role) -> int:
        """Bulk-create a RolePermission for every catalog entry."""
        permission_ids = [row[0] for row in self.session.query(Permission.id).all()]
        self.session.add_all(
            [RolePermission(role_id=role.id, permission_id=permission_id) for permission_id in permission_ids]
        )
        self.session.flush()
        return len(permission_ids)

    def switch_business(self, user: User, business_id: str) -> Business:
        """
        Make business_id the user's remembered active business.

        Members (active membership) and owners may switch; the business itself
        may still be inactive (e.g. awaiting its first activation).

        Raises:
            NotAMemberError: No membership and not the owner (403)
            MembershipDisabledError: Membership is disabled (403)
        """
        business = self.session.query(Business).filter(Business.id == business_id).first()
        if business is None:
            raise NotAMemberError()

        membership = (
            self.session.query(BusinessUser)
            .filter(
                BusinessUser.user_id == user.id,
                BusinessUser.business_id == business.id,
            )
            .first()
        )

        if membership is None and business.owner_id != user.id:
            logger.warning(
                "Business switch denied: not a member",
                extra={"user_id": user.id, "business_id": business_id},
            )
            raise NotAMemberError()
        if membership is not None and not membership.is_active:
            raise MembershipDisabledError()

        user.active_business_id = business.id
        self.session.flush()

        logger.info(
            "Active business switched",
            extra={"user_id": user.id, "business_id": business.id},
        )
        return business

    def list_user_businesses(self, user: User) -> List[Dict]:
        """
        Businesses the user can act in: memberships plus owned businesses.

        Returns:
            List of business summaries ordered by membership age
        """
        memberships = (
            self.session.query(BusinessUser)
            .options(
                joinedload(BusinessUser.business).joinedload(Business.subscription),
                joinedload(BusinessUser.role),
            )
            .filter(BusinessUser.user_id == user.id)
            .order_by(BusinessUser.created_at.asc(), BusinessUser.id.asc())
            .all()
        )

        summaries = []
        seen = set()
        for membership in memberships:
            seen.add(membership.business_id)
            summaries.append(
                self._summary(user, membership.business, membership)
            )

        owned = (
            self.session.query(Business)
            .options(joinedload(Business.subscription))
            .filter(Business.owner_id == user.id)
            .order_by(Business.created_at.asc(), Business.id.asc())
            .all()
        )
        for business in owned:
            if business.id not in seen:
                summaries.append(self._summary(user, business, None))

        return summaries

    @staticmethod
    def _summary(user: User, business: Business, membership: Optional[BusinessUser]) -> Dict:
        snapshot = SubscriptionSnapshot.of(business.subscription)
        return {
            "id": business.id,
            "name": business.name,
            "is_active": business.is_active,
            "is_owner": business.owner_id == user.id,
            "membership_id": membership.id if membership is not None else None,
            "membership_active": membership.is_active if membership is not None else None,
            "role": membership.role.name if membership is not None and membership.role else None,
            "is_current": business.id == user.active_business_id,
            "subscription": {
                "status": snapshot.status.value if snapshot.status else None,
                "is_active": snapshot.is_active,
                "expires_at": snapshot.expires_at,
                "remaining_days": snapshot.remaining_days,
            },
        }
