"""
User lookup by email, used before inviting someone to a business.

Only the public profile is returned (id, name, email, active flag) together
with whether the user already belongs to the acting business.
"""

import logging
from typing import Any, Dict

from sqlalchemy.orm import Session

from que_accounting.models.user import User
from que_accounting.platform.errors import NotFoundError, ValidationFailedError
from que_accounting.repositories.membership_repository import MembershipRepository

logger = logging.getLogger(__name__)


class UserDirectoryService:

    def __init__(self, session: Session, business_id: str):
        self.session = session
        self.business_id = business_id
        self.memberships = MembershipRepository(session, business_id)

    def check_email(self, email: str) -> Dict[str, Any]:
        """
        Raises:
            ValidationFailedError: Missing email
            NotFoundError: No user with that email
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationFailedError("Email is required")

        user = self.session.query(User).filter(User.email == email).first()
        if user is None:
            logger.info("User lookup missed", extra={"business_id": self.business_id})
            raise NotFoundError("User not found")

        return {
            "id": user.id,
            "name": user.name,
            "email": user.email,
            "is_active": user.is_active,
            "is_member": self.memberships.get_for_user(user.id) is not None,
        }
