"""
Tenant Resolver: binds an authenticated principal to one business per request.

CRITICAL SECURITY REQUIREMENTS:
- The target business is resolved from the x-business-id header (explicit),
  the user's remembered active business, or auto-pick, depending on the
  strategy chosen by the route. It is NEVER taken from a request body.
- The remembered business in the store is authoritative; the
  active_business_id claim in the token is only a hint.
- Every rejection terminates the request; there is no degraded mode.

Strategies (chosen per route at composition time):
- ACTIVE_BUSINESS (default): remembered business, else auto-pick
- HEADER: explicit x-business-id required
- HEADER_OR_ACTIVE: explicit > remembered > auto-pick

Auto-pick selects the user's oldest active membership (falling back to
the oldest owned business) and persists it as the remembered business.

Owner fallback: the owner of a business may have no membership row. When
the route allows it, the resolver returns a context with membership=None
and is_owner=True; authority is then decided by the permission evaluator.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple

from fastapi import Depends, Request
from sqlalchemy.orm import Session, joinedload, selectinload

from que_accounting.auth.middleware import require_auth
from que_accounting.auth.principal import Principal, StoredUserPrincipal
from que_accounting.database.session import get_db_session
from que_accounting.models.business import Business
from que_accounting.models.membership import BusinessUser, UserPermission
from que_accounting.models.role import Role, RolePermission
from que_accounting.models.subscription import Subscription
from que_accounting.platform.errors import (
    BusinessInactiveError,
    MembershipDisabledError,
    NoActiveBusinessError,
    NotAMemberError,
)

logger = logging.getLogger(__name__)

BUSINESS_ID_HEADER = "x-business-id"
BUSINESS_ID_QUERY_PARAM = "business_id"


class TenantStrategy(str, Enum):
    """How the target business is determined for a route."""
    ACTIVE_BUSINESS = "active_business"
    HEADER = "header"
    HEADER_OR_ACTIVE = "header_or_active"


class BusinessSource(str, Enum):
    """Where the resolved business id came from."""
    EXPLICIT = "explicit"
    REMEMBERED = "remembered"
    AUTO_PICK = "auto_pick"


@dataclass
class TenantContext:
    """
    Resolved tenant for the current request.

    business has its subscription loaded; membership (when present) has
    role -> role permissions -> permission and direct permissions loaded.
    """
    principal: StoredUserPrincipal
    business: Business
    membership: Optional[BusinessUser]
    source: BusinessSource

    @property
    def business_id(self) -> str:
        return self.business.id

    @property
    def user_id(self) -> str:
        return self.principal.id

    @property
    def is_owner(self) -> bool:
        return self.business.owner_id == self.principal.id

    @property
    def subscription(self) -> Optional[Subscription]:
        return self.business.subscription

    @property
    def role_name(self) -> Optional[str]:
        if self.membership is not None and self.membership.role is not None:
            return self.membership.role.name
        return None


def membership_load_options():
    """Eager-load options for a membership's role and direct grants."""
    return (
        joinedload(BusinessUser.role)
        .selectinload(Role.permissions)
        .joinedload(RolePermission.permission),
        selectinload(BusinessUser.direct_permissions)
        .joinedload(UserPermission.permission),
    )


class TenantResolver:
    """Resolves {Business, Membership} for a principal."""

    def __init__(self, session: Session, allow_owner_fallback: bool = True):
        """
        Initialize resolver.

        Args:
            session: SQLAlchemy session
            allow_owner_fallback: Resolve an owner without a membership row
        """
        self.session = session
        self.allow_owner_fallback = allow_owner_fallback

    def resolve(
        self,
        principal: Principal,
        explicit_business_id: Optional[str] = None,
        strategy: TenantStrategy = TenantStrategy.ACTIVE_BUSINESS,
    ) -> TenantContext:
        """
        Resolve the tenant context.

        Args:
            principal: Authenticated principal
            explicit_business_id: Business id from x-business-id (if any)
            strategy: Business selection strategy for the route

        Returns:
            TenantContext

        Raises:
            NoActiveBusinessError: No business id could be determined (400)
            NotAMemberError: No membership (and no owner fallback) (403)
            MembershipDisabledError: Membership is disabled (403)
            BusinessInactiveError: Business is inactive (403)
        """
        if not isinstance(principal, StoredUserPrincipal):
            raise NoActiveBusinessError("Administrator principals have no business context")

        business_id, source = self._target_business_id(principal, explicit_business_id, strategy)
        if not business_id:
            logger.warning("No resolvable business", extra={"user_id": principal.id})
            raise NoActiveBusinessError()

        business = (
            self.session.query(Business)
            .options(joinedload(Business.subscription))
            .filter(Business.id == business_id)
            .first()
        )
        if business is None:
            # Unknown and foreign businesses are indistinguishable to the caller
            logger.warning(
                "Business not found during tenant resolution",
                extra={"user_id": principal.id, "business_id": business_id},
            )
            raise NotAMemberError()

        membership = self.load_membership(principal.id, business.id)

        if membership is None:
            if not (self.allow_owner_fallback and business.owner_id == principal.id):
                logger.warning(
                    "Tenant access denied: not a member",
                    extra={"user_id": principal.id, "business_id": business.id},
                )
                raise NotAMemberError()
        elif not membership.is_active:
            logger.warning(
                "Tenant access denied: membership disabled",
                extra={"user_id": principal.id, "business_id": business.id},
            )
            raise MembershipDisabledError()

        if not business.is_active:
            logger.warning(
                "Tenant access denied: business inactive",
                extra={"user_id": principal.id, "business_id": business.id},
            )
            raise BusinessInactiveError()

        if source == BusinessSource.AUTO_PICK:
            principal.user.active_business_id = business.id
            self.session.flush()
            logger.info(
                "Auto-selected active business",
                extra={"user_id": principal.id, "business_id": business.id},
            )

        return TenantContext(
            principal=principal,
            business=business,
            membership=membership,
            source=source,
        )

    def load_membership(self, user_id: str, business_id: str) -> Optional[BusinessUser]:
        """Load a membership with its role and direct grants, bypassing stale identity-map state."""
        return (
            self.session.query(BusinessUser)
            .options(*membership_load_options())
            .filter(
                BusinessUser.user_id == user_id,
                BusinessUser.business_id == business_id,
            )
            .populate_existing()
            .first()
        )

    def auto_pick_business_id(self, user_id: str) -> Optional[str]:
        """Oldest active membership, else oldest owned business."""
        membership = (
            self.session.query(BusinessUser)
            .filter(
                BusinessUser.user_id == user_id,
                BusinessUser.is_active.is_(True),
            )
            .order_by(BusinessUser.created_at.asc(), BusinessUser.id.asc())
            .first()
        )
        if membership is not None:
            return membership.business_id

        owned = (
            self.session.query(Business)
            .filter(Business.owner_id == user_id)
            .order_by(Business.created_at.asc(), Business.id.asc())
            .first()
        )
        return owned.id if owned is not None else None

    def _target_business_id(
        self,
        principal: StoredUserPrincipal,
        explicit_business_id: Optional[str],
        strategy: TenantStrategy,
    ) -> Tuple[Optional[str], BusinessSource]:
        if strategy == TenantStrategy.HEADER:
            if not explicit_business_id:
                raise NoActiveBusinessError(f"{BUSINESS_ID_HEADER} header is required")
            return explicit_business_id, BusinessSource.EXPLICIT

        if strategy == TenantStrategy.HEADER_OR_ACTIVE and explicit_business_id:
            return explicit_business_id, BusinessSource.EXPLICIT

        if principal.active_business_id:
            return principal.active_business_id, BusinessSource.REMEMBERED

        return self.auto_pick_business_id(principal.id), BusinessSource.AUTO_PICK


def explicit_business_id_from_request(request: Request) -> Optional[str]:
    """Read the explicit business id from the header, then the query string."""
    value = request.headers.get(BUSINESS_ID_HEADER) or request.query_params.get(BUSINESS_ID_QUERY_PARAM)
    return value.strip() if value and value.strip() else None


def get_tenant_context(
    strategy: TenantStrategy = TenantStrategy.ACTIVE_BUSINESS,
    allow_owner_fallback: bool = True,
):
    """
    Create a dependency that resolves the tenant context.

    Usage:
        @router.get("/customers")
        def list_customers(ctx: TenantContext = Depends(get_tenant_context())):
            ...
    """
    def dependency(
        request: Request,
        principal: Principal = Depends(require_auth),
        db: Session = Depends(get_db_session),
    ) -> TenantContext:
        resolver = TenantResolver(db, allow_owner_fallback=allow_owner_fallback)
        context = resolver.resolve(
            principal,
            explicit_business_id=explicit_business_id_from_request(request),
            strategy=strategy,
        )
        if context.source == BusinessSource.AUTO_PICK:
            db.commit()
        request.state.tenant_context = context
        return context

    return dependency
