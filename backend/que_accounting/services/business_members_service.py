"""
Business Members Service for managing who can act in a business.

This service handles:
- Listing memberships of a business
- Inviting an existing user by email
- Enabling/disabling a membership
- Changing a membership's role (within the same business)
- Cancelling (deleting) a membership

Invariants:
- A membership's role always belongs to the membership's business
- The owner's membership can never be disabled, demoted or cancelled
- A membership holding the Admin role can never be cancelled
- The last active Admin membership cannot be disabled or demoted

All lookups are scoped to the acting business; memberships of other
businesses are reported as not found.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from que_accounting.constants.permissions import ADMIN_ROLE_NAME, DEFAULT_ROLE_NAME
from que_accounting.models.membership import BusinessUser
from que_accounting.models.role import Role
from que_accounting.models.user import User
from que_accounting.platform.errors import (
    ConflictError,
    LastAdminError,
    NotFoundError,
    OwnerMembershipError,
    ValidationFailedError,
)
from que_accounting.repositories.membership_repository import MembershipRepository

logger = logging.getLogger(__name__)


class BusinessMembersService:
    """Membership management for one business."""

    def __init__(self, session: Session, business_id: str):
        """
        Initialize service for one business.

        Args:
            session: SQLAlchemy session for database operations
            business_id: Acting business (from tenant context)
        """
        self.session = session
        self.business_id = business_id
        self.memberships = MembershipRepository(session, business_id)

    def list_members(self, include_inactive: bool = True) -> List[Dict[str, Any]]:
        """List memberships with user and role details."""
        members = [
            self.describe(membership)
            for membership in self.memberships.list_members(include_inactive=include_inactive)
        ]
        logger.info(
            "Listed business members",
            extra={"business_id": self.business_id, "count": len(members)},
        )
        return members

    def list_roles(self) -> List[Role]:
        return (
            self.session.query(Role)
            .filter(Role.business_id == self.business_id)
            .order_by(Role.name.asc())
            .all()
        )

    def invite(self, email: str, role_id: Optional[str] = None) -> BusinessUser:
        """
        Add an existing user to the business.

        Args:
            email: Email of a registered user
            role_id: Role of this business; defaults to the "User" role

        Raises:
            ValidationFailedError: Missing email, or role of another business
            NotFoundError: No user with that email, or default role missing
            ConflictError: User is already a member
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationFailedError("Email is required")

        user = self.session.query(User).filter(User.email == email).first()
        if user is None:
            raise NotFoundError("User not found")

        if self.memberships.get_for_user(user.id) is not None:
            raise ConflictError("User is already a member of this business")

        role = self._resolve_role(role_id)

        membership = BusinessUser(
            user_id=user.id,
            business_id=self.business_id,
            role_id=role.id,
            is_active=True,
        )
        try:
            with self.session.begin_nested():
                self.session.add(membership)
                self.session.flush()
        except IntegrityError:
            raise ConflictError("User is already a member of this business")

        logger.info(
            "User invited to business",
            extra={
                "business_id": self.business_id,
                "user_id": user.id,
                "role": role.name,
            },
        )
        return membership

    def toggle_status(self, membership_id: str) -> BusinessUser:
        """
        Flip a membership's is_active flag.

        Raises:
            NotFoundError: Membership not in this business
            OwnerMembershipError: Membership belongs to the business owner
            LastAdminError: Would disable the last active Admin membership
        """
        membership = self._get(membership_id)
        self._ensure_not_owner(membership)

        if membership.is_active and self._is_last_active_admin(membership):
            raise LastAdminError("Cannot disable the last active Admin of the business")

        membership.is_active = not membership.is_active
        self.session.flush()

        logger.info(
            "Membership status changed",
            extra={
                "business_id": self.business_id,
                "membership_id": membership.id,
                "is_active": membership.is_active,
            },
        )
        return membership

    def change_role(self, membership_id: str, role_id: str) -> BusinessUser:
        """
        Assign another role of the same business.

        Raises:
            NotFoundError: Membership not in this business
            ValidationFailedError: Role of another business
            OwnerMembershipError: Membership belongs to the business owner
            LastAdminError: Would demote the last active Admin membership
        """
        membership = self._get(membership_id)
        self._ensure_not_owner(membership)
        role = self._resolve_role(role_id)

        if role.id == membership.role_id:
            return membership

        if role.name != ADMIN_ROLE_NAME and self._is_last_active_admin(membership):
            raise LastAdminError("Cannot demote the last active Admin of the business")

        membership.role_id = role.id
        self.session.flush()
        self.session.expire(membership, ["role"])

        logger.info(
            "Membership role changed",
            extra={
                "business_id": self.business_id,
                "membership_id": membership.id,
                "role": role.name,
            },
        )
        return membership

    def cancel(self, membership_id: str) -> None:
        """
        Delete a membership (cancel an invite).

        Raises:
            NotFoundError: Membership not in this business
            OwnerMembershipError: Membership belongs to the business owner
            LastAdminError: Membership holds the Admin role
        """
        membership = self._get(membership_id)
        self._ensure_not_owner(membership)

        if membership.role is not None and membership.role.name == ADMIN_ROLE_NAME:
            logger.warning(
                "Refused to cancel Admin membership",
                extra={"business_id": self.business_id, "membership_id": membership.id},
            )
            raise LastAdminError()

        self.session.delete(membership)
        self.session.flush()

        logger.info(
            "Membership cancelled",
            extra={"business_id": self.business_id, "membership_id": membership_id},
        )

    @staticmethod
    def describe(membership: BusinessUser) -> Dict[str, Any]:
        user = membership.user
        return {
            "id": membership.id,
            "user_id": membership.user_id,
            "email": user.email if user is not None else None,
            "name": user.name if user is not None else None,
            "role_id": membership.role_id,
            "role": membership.role.name if membership.role is not None else None,
            "is_active": membership.is_active,
            "joined_at": membership.created_at,
        }

    def _get(self, membership_id: str) -> BusinessUser:
        membership = self.memberships.get_by_id(membership_id)
        if membership is None:
            raise NotFoundError("Membership not found")
        return membership

    def _ensure_not_owner(self, membership: BusinessUser) -> None:
        business = membership.business
        if business is not None and business.owner_id == membership.user_id:
            logger.warning(
                "Refused to modify owner membership",
                extra={"business_id": self.business_id, "membership_id": membership.id},
            )
            raise OwnerMembershipError()

    def _resolve_role(self, role_id: Optional[str]) -> Role:
        if role_id is None:
            role = (
                self.session.query(Role)
                .filter(Role.business_id == self.business_id, Role.name == DEFAULT_ROLE_NAME)
                .first()
            )
            if role is None:
                raise NotFoundError("Default role not found")
            return role

        role = self.session.query(Role).filter(Role.id == role_id).first()
        if role is None or role.business_id != self.business_id:
            logger.warning(
                "Cross-business role assignment rejected",
                extra={"business_id": self.business_id, "role_id": role_id},
            )
            raise ValidationFailedError("Role does not belong to this business")
        return role

    def _is_last_active_admin(self, membership: BusinessUser) -> bool:
        if membership.role is None or membership.role.name != ADMIN_ROLE_NAME:
            return False
        if not membership.is_active:
            return False
        return self.memberships.count_active_with_role_name(ADMIN_ROLE_NAME) <= 1
