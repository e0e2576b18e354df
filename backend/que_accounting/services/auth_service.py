"""
Authentication service: registration, login, token refresh.

Login paths:
- Bootstrap admin: credentials match BOOTSTRAP_ADMIN_EMAIL/PASSWORD
  (constant-time comparison). No users row is read; the token carries
  principal_type=bootstrap_admin and no businesses are returned.
- Stored user: bcrypt verification, active check, and auto-assignment of
  the oldest active membership as the remembered business when none is set.

SECURITY:
- Unknown email and wrong password produce the same 401
- Password hashes never leave this module
"""

import hmac
import logging
from typing import Any, Dict, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from que_accounting.auth.jwt import TokenType
from que_accounting.auth.passwords import hash_password, verify_password
from que_accounting.auth.principal import (
    BootstrapAdminPrincipal,
    Principal,
    PrincipalResolver,
    StoredUserPrincipal,
    matches_bootstrap_email,
)
from que_accounting.auth.token_codec import TokenCodec
from que_accounting.config.settings import BootstrapAdminSettings
from que_accounting.models.membership import BusinessUser
from que_accounting.models.user import User, UserRole
from que_accounting.platform.errors import (
    AccountInactiveError,
    ConflictError,
    InvalidCredentialsError,
    ValidationFailedError,
)
from que_accounting.services.business_provisioning import BusinessProvisioningService

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService:
    """Registers users and issues tokens."""

    def __init__(self, session: Session, codec: TokenCodec, bootstrap_admin: BootstrapAdminSettings):
        """
        Initialize service.

        Args:
            session: SQLAlchemy session
            codec: Token codec for issuing tokens
            bootstrap_admin: Bootstrap admin configuration
        """
        self.session = session
        self.codec = codec
        self.bootstrap_admin = bootstrap_admin

    def register(self, name: Optional[str], email: str, password: str) -> User:
        """
        Create a USER account.

        Raises:
            ValidationFailedError: Missing email or short password
            ConflictError: Email already registered
        """
        email = (email or "").strip().lower()
        if not email:
            raise ValidationFailedError("Email is required")
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            raise ValidationFailedError(
                f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
            )
        if matches_bootstrap_email(self.bootstrap_admin, email):
            raise ConflictError("Email already registered")
        if self.session.query(User).filter(User.email == email).first() is not None:
            raise ConflictError("Email already registered")

        user = User(
            name=(name or "").strip() or None,
            email=email,
            password_hash=hash_password(password),
            role=UserRole.USER,
            is_active=True,
        )
        try:
            with self.session.begin_nested():
                self.session.add(user)
                self.session.flush()
        except IntegrityError:
            raise ConflictError("Email already registered")

        logger.info("User registered", extra={"user_id": user.id})
        return user

    def login(self, email: str, password: str) -> Dict[str, Any]:
        """
        Authenticate and issue an access/refresh token pair.

        Returns:
            {token, refresh_token, user, businesses, active_business_id}

        Raises:
            InvalidCredentialsError: Unknown email or wrong password (401)
            AccountInactiveError: Account deactivated (403)
        """
        email = (email or "").strip().lower()
        password = password or ""

        if self._is_bootstrap_login(email, password):
            principal = BootstrapAdminPrincipal(email=self.bootstrap_admin.email)
            tokens = self.codec.issue_pair(principal.to_claims())
            logger.info("Bootstrap admin logged in")
            return {
                "token": tokens.access_token,
                "refresh_token": tokens.refresh_token,
                "expires_at": tokens.expires_at,
                "user": {
                    "id": principal.id,
                    "email": principal.email,
                    "role": UserRole.SUPER_ADMIN.value,
                    "is_active": True,
                    "is_bootstrap_admin": True,
                },
                "businesses": [],
                "active_business_id": None,
            }

        user = self.session.query(User).filter(User.email == email).first()
        if user is None or not verify_password(password, user.password_hash):
            logger.warning("Login failed")
            raise InvalidCredentialsError()

        if not user.is_active:
            logger.warning("Login rejected for inactive account", extra={"user_id": user.id})
            raise AccountInactiveError()

        if not user.active_business_id:
            first_membership = (
                self.session.query(BusinessUser)
                .filter(BusinessUser.user_id == user.id, BusinessUser.is_active.is_(True))
                .order_by(BusinessUser.created_at.asc(), BusinessUser.id.asc())
                .first()
            )
            if first_membership is not None:
                user.active_business_id = first_membership.business_id
                self.session.flush()
                logger.info(
                    "Auto-assigned active business on login",
                    extra={"user_id": user.id, "business_id": first_membership.business_id},
                )

        principal = StoredUserPrincipal(user=user)
        tokens = self.codec.issue_pair(principal.to_claims())
        businesses = BusinessProvisioningService(self.session).list_user_businesses(user)

        logger.info("User logged in", extra={"user_id": user.id})
        return {
            "token": tokens.access_token,
            "refresh_token": tokens.refresh_token,
            "expires_at": tokens.expires_at,
            "user": user.to_public_dict(),
            "businesses": businesses,
            "active_business_id": user.active_business_id,
        }

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """
        Issue a new access token from a refresh token.

        The principal is re-resolved, so deactivated accounts cannot refresh.

        Raises:
            TokenInvalidError: Not a valid refresh token (401)
            AuthRequiredError / AccountInactiveError: Principal no longer valid
        """
        claims = self.codec.verify_or_raise(refresh_token, expected_type=TokenType.REFRESH)
        principal = PrincipalResolver(self.session, self.bootstrap_admin).resolve(claims)
        token = self.issue_access_token(principal)
        return {"token": token, "active_business_id": principal.active_business_id}

    def issue_access_token(self, principal: Principal, active_business_id: Optional[str] = None) -> str:
        """Access token for a principal, optionally carrying an active-business hint."""
        return self.codec.issue(principal.to_claims(active_business_id=active_business_id))

    def _is_bootstrap_login(self, email: str, password: str) -> bool:
        if not matches_bootstrap_email(self.bootstrap_admin, email):
            return False
        return hmac.compare_digest(
            password.encode("utf-8"),
            self.bootstrap_admin.password.encode("utf-8"),
        )
