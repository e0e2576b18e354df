"""
Direct permission assignment for memberships of one business.

grant and revoke are idempotent:
- granting an already-held permission is a no-op (unique membership/permission pair)
- revoking a permission that is not held is a no-op

SECURITY: memberships are looked up within the caller's business only; a
membership of another business is reported as not found (404).
"""

import logging
from typing import Iterable, List

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from que_accounting.models.membership import BusinessUser, UserPermission
from que_accounting.models.permission import Permission
from que_accounting.platform.errors import NotFoundError, ValidationFailedError
from que_accounting.repositories.membership_repository import MembershipRepository
from que_accounting.repositories.permission_repository import PermissionRepository

logger = logging.getLogger(__name__)


class PermissionAssignmentService:
    """Grants and revokes direct (per-membership) permissions."""

    def __init__(self, session: Session, business_id: str):
        """
        Initialize service for one business.

        Args:
            session: SQLAlchemy session
            business_id: Business of the acting principal (from tenant context)
        """
        self.session = session
        self.business_id = business_id
        self.memberships = MembershipRepository(session, business_id)
        self.catalog = PermissionRepository(session)

    def grant(self, membership_id: str, permission_ids: Iterable[str]) -> List[Permission]:
        """
        Grant catalog permissions directly to a membership.

        Returns:
            The requested permissions (held after the call)

        Raises:
            NotFoundError: Membership not in this business, or unknown permission ids
        """
        membership = self._get_membership(membership_id)
        permissions = self._resolve_ids(permission_ids)
        added = self._insert_missing(membership, [p.id for p in permissions])

        logger.info(
            "Direct permissions granted",
            extra={
                "business_id": self.business_id,
                "membership_id": membership.id,
                "requested": len(permissions),
                "added": added,
            },
        )
        return permissions

    def revoke(self, membership_id: str, permission_ids: Iterable[str]) -> int:
        """
        Remove direct grants from a membership.

        Returns:
            Number of grants removed (0 when none were held)

        Raises:
            NotFoundError: Membership not in this business
        """
        membership = self._get_membership(membership_id)
        ids = list(dict.fromkeys(permission_ids))
        if not ids:
            return 0

        removed = (
            self.session.query(UserPermission)
            .filter(
                UserPermission.business_user_id == membership.id,
                UserPermission.permission_id.in_(ids),
            )
            .delete(synchronize_session=False)
        )
        self.session.flush()
        self.session.expire(membership, ["direct_permissions"])

        logger.info(
            "Direct permissions revoked",
            extra={
                "business_id": self.business_id,
                "membership_id": membership.id,
                "removed": removed,
            },
        )
        return removed

    def grant_actions(self, membership_id: str, module: str, actions: Iterable[str]) -> List[Permission]:
        """
        Grant (module, action) pairs resolved against the catalog.

        Raises:
            ValidationFailedError: No actions supplied
            NotFoundError: Membership not in this business, or no matching catalog entries
        """
        permissions = self._resolve_actions(module, actions)
        return self.grant(membership_id, [p.id for p in permissions])

    def revoke_actions(self, membership_id: str, module: str, actions: Iterable[str]) -> int:
        """
        Revoke (module, action) pairs resolved against the catalog.

        Raises:
            ValidationFailedError: No actions supplied
            NotFoundError: Membership not in this business, or no matching catalog entries
        """
        permissions = self._resolve_actions(module, actions)
        return self.revoke(membership_id, [p.id for p in permissions])

    def list_direct(self, membership_id: str) -> List[Permission]:
        """
        Raises:
            NotFoundError: Membership not in this business
        """
        membership = self._get_membership(membership_id)
        return (
            self.session.query(Permission)
            .join(UserPermission, UserPermission.permission_id == Permission.id)
            .filter(UserPermission.business_user_id == membership.id)
            .order_by(Permission.module.asc(), Permission.action.asc())
            .all()
        )

    def _get_membership(self, membership_id: str) -> BusinessUser:
        membership = self.memberships.get_by_id(membership_id)
        if membership is None:
            logger.warning(
                "Membership not found in business",
                extra={"business_id": self.business_id, "membership_id": membership_id},
            )
            raise NotFoundError("Membership not found")
        return membership

    def _resolve_ids(self, permission_ids: Iterable[str]) -> List[Permission]:
        ids = list(dict.fromkeys(permission_ids))
        permissions = self.catalog.get_by_ids(ids)
        missing = set(ids) - {p.id for p in permissions}
        if missing:
            raise NotFoundError(f"Unknown permission ids: {', '.join(sorted(missing))}")
        return permissions

    def _resolve_actions(self, module: str, actions: Iterable[str]) -> List[Permission]:
        module = (module or "").strip().lower()
        actions = [a.strip().lower() for a in actions if a and a.strip()]
        if not module or not actions:
            raise ValidationFailedError("module and at least one action are required")
        permissions = self.catalog.find(module, actions)
        if not permissions:
            raise NotFoundError(f"No permissions found for module '{module}'")
        return permissions

    def _held_ids(self, membership: BusinessUser) -> set:
        rows = (
            self.session.query(UserPermission.permission_id)
            .filter(UserPermission.business_user_id == membership.id)
            .all()
        )
        return {row[0] for row in rows}

    def _insert_missing(self, membership: BusinessUser, permission_ids: List[str], retry: bool = True) -> int:
        missing = [pid for pid in permission_ids if pid not in self._held_ids(membership)]
        if not missing:
            return 0
        try:
            with self.session.begin_nested():
                self.session.add_all(
                    [UserPermission(business_user_id=membership.id, permission_id=pid) for pid in missing]
                )
                self.session.flush()
        except IntegrityError:
            # A concurrent grant inserted some of the same pairs
            if not retry:
                raise
            return self._insert_missing(membership, permission_ids, retry=False)
        self.session.expire(membership, ["direct_permissions"])
        return len(missing)
