"""
FastAPI authentication dependencies.

Request Flow:
1. Bearer token extracted from the Authorization header
2. Token verified by the TokenCodec (signature, issuer, audience, expiry, type)
3. Principal resolved (stored user re-fetched, or bootstrap admin from config)
4. Principal attached to request.state.principal

Usage:

    @router.get("/protected")
    def protected_route(principal: Principal = Depends(require_auth)):
        return {"id": principal.id}

    @router.post("/admin-only")
    def admin_route(principal: Principal = Depends(require_subscription_admin)):
        ...
"""

import logging
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session

from que_accounting.auth.jwt import TokenClaims
from que_accounting.auth.principal import Principal, PrincipalResolver, StoredUserPrincipal
from que_accounting.auth.token_codec import TokenCodec, get_token_codec
from que_accounting.config.settings import Settings, get_settings
from que_accounting.database.session import get_db_session
from que_accounting.platform.errors import (
    AuthRequiredError,
    SuperAdminRequiredError,
    UserAccountRequiredError,
)

logger = logging.getLogger(__name__)

# HTTP Bearer security scheme
security = HTTPBearer(auto_error=False)


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> str:
    """Extract the bearer token or raise AuthRequiredError (401)."""
    if credentials is None or not credentials.credentials:
        raise AuthRequiredError()
    return credentials.credentials


def get_token_claims(
    token: str = Depends(get_bearer_token),
    codec: TokenCodec = Depends(get_token_codec),
) -> TokenClaims:
    """Verify the bearer token; failures raise TokenInvalidError (401)."""
    return codec.verify_or_raise(token)


def require_auth(
    request: Request,
    claims: TokenClaims = Depends(get_token_claims),
    db: Session = Depends(get_db_session),
    settings: Settings = Depends(get_settings),
) -> Principal:
    """
    FastAPI dependency that requires an authenticated principal.

    Raises:
        AuthRequiredError / TokenInvalidError: 401
        AccountInactiveError: 403
    """
    principal = PrincipalResolver(db, settings.bootstrap_admin).resolve(claims)
    request.state.principal = principal
    request.state.token_claims = claims
    return principal


def require_user(principal: Principal = Depends(require_auth)) -> StoredUserPrincipal:
    """Require a stored-user principal (the bootstrap admin has no account)."""
    if not isinstance(principal, StoredUserPrincipal):
        raise UserAccountRequiredError()
    return principal


def require_subscription_admin(principal: Principal = Depends(require_auth)) -> Principal:
    """
    Require the subscription-management authority.

    Granted to the bootstrap admin and to users with coarse role SUPER_ADMIN.
    This axis is independent of business-level roles.
    """
    if not principal.is_subscription_admin:
        logger.warning(
            "Subscription admin access denied",
            extra={"principal_id": principal.id},
        )
        raise SuperAdminRequiredError()
    return principal
