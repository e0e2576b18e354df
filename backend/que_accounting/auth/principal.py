"""
Principal Resolver: turns verified token claims into a Principal.

A Principal is one of two variants:
- StoredUserPrincipal: backed by a users row that is RE-FETCHED on every
  request. Role and active flag in the token are never trusted, so a
  backend-side deactivation takes effect before the token expires.
- BootstrapAdminPrincipal: the environment-configured subscription
  administrator. It has no users row; it is resolved from configuration
  only and its claims are re-checked against the configured email.

SECURITY:
- Unknown user id -> AuthRequiredError (401)
- Inactive user -> AccountInactiveError (403)
- Bootstrap claims while the bootstrap admin is disabled, or for another
  email -> TokenInvalidError (401)
"""

import hmac
import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy.orm import Session

from que_accounting.auth.jwt import PrincipalClaims, PrincipalType, TokenClaims
from que_accounting.config.settings import BootstrapAdminSettings
from que_accounting.models.user import User, UserRole
from que_accounting.platform.errors import (
    AccountInactiveError,
    AuthRequiredError,
    TokenInvalidError,
)

logger = logging.getLogger(__name__)

BOOTSTRAP_ADMIN_ID_PREFIX = "bootstrap:"


@dataclass(frozen=True)
class StoredUserPrincipal:
    """Principal backed by a persisted User."""

    user: User

    is_bootstrap_admin = False

    @property
    def id(self) -> str:
        return self.user.id

    @property
    def email(self) -> str:
        return self.user.email

    @property
    def role(self) -> UserRole:
        return self.user.role

    @property
    def is_active(self) -> bool:
        return bool(self.user.is_active)

    @property
    def active_business_id(self) -> Optional[str]:
        return self.user.active_business_id

    @property
    def is_subscription_admin(self) -> bool:
        return self.user.role == UserRole.SUPER_ADMIN

    def to_claims(self, active_business_id: Optional[str] = None) -> PrincipalClaims:
        return PrincipalClaims(
            sub=self.user.id,
            email=self.user.email,
            role=self.user.role.value,
            is_active=bool(self.user.is_active),
            principal_type=PrincipalType.USER,
            active_business_id=active_business_id or self.user.active_business_id,
        )


@dataclass(frozen=True)
class BootstrapAdminPrincipal:
    """Environment-configured subscription administrator (no users row)."""

    email: str

    is_bootstrap_admin = True
    is_active = True
    is_subscription_admin = True
    active_business_id = None

    @property
    def id(self) -> str:
        return f"{BOOTSTRAP_ADMIN_ID_PREFIX}{self.email}"

    @property
    def role(self) -> UserRole:
        return UserRole.SUPER_ADMIN

    def to_claims(self, active_business_id: Optional[str] = None) -> PrincipalClaims:
        return PrincipalClaims(
            sub=self.id,
            email=self.email,
            role=UserRole.SUPER_ADMIN.value,
            is_active=True,
            principal_type=PrincipalType.BOOTSTRAP_ADMIN,
            active_business_id=None,
        )


Principal = Union[StoredUserPrincipal, BootstrapAdminPrincipal]


def matches_bootstrap_email(config: BootstrapAdminSettings, email: Optional[str]) -> bool:
    """Constant-time comparison of an email against the configured admin."""
    if not config.enabled or not email:
        return False
    return hmac.compare_digest(
        email.strip().lower().encode("utf-8"),
        config.email.strip().lower().encode("utf-8"),
    )


class PrincipalResolver:
    """Resolves a Principal from verified claims."""

    def __init__(self, session: Session, bootstrap_admin: BootstrapAdminSettings):
        """
        Initialize resolver.

        Args:
            session: SQLAlchemy session for the user lookup
            bootstrap_admin: Bootstrap admin configuration
        """
        self.session = session
        self.bootstrap_admin = bootstrap_admin

    def resolve(self, claims: TokenClaims) -> Principal:
        """
        Resolve claims to a Principal.

        Returns:
            StoredUserPrincipal or BootstrapAdminPrincipal

        Raises:
            TokenInvalidError: Bootstrap claims that do not match configuration
            AuthRequiredError: User no longer exists
            AccountInactiveError: User is deactivated
        """
        if claims.is_bootstrap_admin:
            return self._resolve_bootstrap(claims)

        user = self.session.query(User).filter(User.id == claims.sub).first()
        if user is None:
            logger.warning("Token subject not found", extra={"user_id": claims.sub})
            raise AuthRequiredError("User not found")

        if not user.is_active:
            logger.warning("Inactive account rejected", extra={"user_id": user.id})
            raise AccountInactiveError()

        return StoredUserPrincipal(user=user)

    def _resolve_bootstrap(self, claims: TokenClaims) -> BootstrapAdminPrincipal:
        if not matches_bootstrap_email(self.bootstrap_admin, claims.email):
            logger.warning("Bootstrap admin token rejected")
            raise TokenInvalidError(
                "revoked", message="Bootstrap administrator is not configured"
            )
        return BootstrapAdminPrincipal(email=self.bootstrap_admin.email)
