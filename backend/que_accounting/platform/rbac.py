"""
Permission Evaluator: allow/deny for a (module, action) pair in a business.

Decision order (first match wins):
1. Owner bypass: acting user == Business.owner_id (independent of membership)
2. Admin-role bypass: membership role name == ADMIN_ROLE_NAME
3. Role grant: a RolePermission of the membership's role matches
4. Direct grant: a UserPermission of the membership matches
5. Deny with PermissionDeniedError(module, action)

Owner and admin bypass are structural, so new catalog modules never lock
out a business's administrators.

Membership/business active flags are enforced by the tenant resolver
before evaluation; the evaluator only decides authority.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Iterable, Optional

from que_accounting.constants.permissions import ADMIN_ROLE_NAME, ALL_PERMISSIONS
from que_accounting.models.business import Business
from que_accounting.models.membership import BusinessUser
from que_accounting.platform.errors import PermissionDeniedError
from que_accounting.platform.tenant_context import TenantContext

logger = logging.getLogger(__name__)


class DecisionReason(str, Enum):
    OWNER_BYPASS = "owner_bypass"
    ADMIN_ROLE_BYPASS = "admin_role_bypass"
    ROLE_GRANT = "role_grant"
    DIRECT_GRANT = "direct_grant"
    DENIED = "denied"


@dataclass(frozen=True)
class PermissionDecision:
    allowed: bool
    reason: DecisionReason
    module: str
    action: str


def permission_key(module: str, action: str) -> str:
    return f"{module}:{action}"


def _grant_keys(grants: Iterable) -> FrozenSet[str]:
    return frozenset(
        permission_key(grant.permission.module, grant.permission.action)
        for grant in grants
        if grant.permission is not None
    )


def role_permission_keys(membership: Optional[BusinessUser]) -> FrozenSet[str]:
    """Keys granted through the membership's role."""
    if membership is None or membership.role is None:
        return frozenset()
    return _grant_keys(membership.role.permissions)


def direct_permission_keys(membership: Optional[BusinessUser]) -> FrozenSet[str]:
    """Keys granted directly to the membership."""
    if membership is None:
        return frozenset()
    return _grant_keys(membership.direct_permissions)


class PermissionEvaluator:
    """Computes effective permissions and allow/deny decisions."""

    def __init__(self, admin_role_name: str = ADMIN_ROLE_NAME):
        self.admin_role_name = admin_role_name

    def evaluate(
        self,
        user_id: str,
        business: Business,
        membership: Optional[BusinessUser],
        module: str,
        action: str,
    ) -> PermissionDecision:
        """
        Decide whether user_id may perform (module, action) in business.

        Args:
            user_id: Acting user id
            business: Target business (owner_id is read directly)
            membership: The user's membership in business, or None
            module: Permission module
            action: Permission action

        Returns:
            PermissionDecision (never raises)
        """
        if business is not None and business.owner_id == user_id:
            return PermissionDecision(True, DecisionReason.OWNER_BYPASS, module, action)

        if membership is None or membership.business_id != getattr(business, "id", None):
            return PermissionDecision(False, DecisionReason.DENIED, module, action)

        if self.is_admin_membership(membership):
            return PermissionDecision(True, DecisionReason.ADMIN_ROLE_BYPASS, module, action)

        key = permission_key(module, action)
        if key in role_permission_keys(membership):
            return PermissionDecision(True, DecisionReason.ROLE_GRANT, module, action)

        if key in direct_permission_keys(membership):
            return PermissionDecision(True, DecisionReason.DIRECT_GRANT, module, action)

        return PermissionDecision(False, DecisionReason.DENIED, module, action)

    def evaluate_membership(self, membership: BusinessUser, module: str, action: str) -> PermissionDecision:
        """Evaluate for the membership's own user and business."""
        return self.evaluate(membership.user_id, membership.business, membership, module, action)

    def evaluate_context(self, context: TenantContext, module: str, action: str) -> PermissionDecision:
        return self.evaluate(context.user_id, context.business, context.membership, module, action)

    def is_admin_membership(self, membership: Optional[BusinessUser]) -> bool:
        return (
            membership is not None
            and membership.role is not None
            and membership.role.name == self.admin_role_name
        )

    def check(self, context: TenantContext, module: str, action: str) -> PermissionDecision:
        """
        Evaluate and raise on deny.

        Raises:
            PermissionDeniedError: 403 naming the module and action
        """
        decision = self.evaluate_context(context, module, action)
        if not decision.allowed:
            logger.warning(
                "Permission denied",
                extra={
                    "user_id": context.user_id,
                    "business_id": context.business_id,
                    "permission": permission_key(module, action),
                },
            )
            raise PermissionDeniedError(module, action)
        return decision

    def effective_permissions(
        self,
        user_id: str,
        business: Business,
        membership: Optional[BusinessUser],
    ) -> FrozenSet[str]:
        """
        Effective permission keys.

        Returns frozenset({"*"}) for owner and admin-role bypass, since those
        hold every current and future catalog entry.
        """
        if business is not None and business.owner_id == user_id:
            return frozenset({ALL_PERMISSIONS})
        if membership is None or membership.business_id != getattr(business, "id", None):
            return frozenset()
        if self.is_admin_membership(membership):
            return frozenset({ALL_PERMISSIONS})
        return role_permission_keys(membership) | direct_permission_keys(membership)

