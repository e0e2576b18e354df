"""
Authentication API Routes.

Provides endpoints for:
- Registering an account
- Logging in (stored users and the bootstrap subscription admin)
- Refreshing an access token
- Reading the current principal

SECURITY:
- Login failures do not reveal whether the email exists
- /me requires a valid access token; refresh requires a refresh token
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.schemas import ApiModel
from que_accounting.auth.middleware import require_auth
from que_accounting.auth.principal import Principal, StoredUserPrincipal
from que_accounting.auth.token_codec import TokenCodec, get_token_codec
from que_accounting.config.settings import Settings, get_settings
from que_accounting.database.session import get_db_session
from que_accounting.platform.responses import success_response
from que_accounting.services.auth_service import AuthService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])


# --- Request Models ---


class RegisterRequest(ApiModel):
    name: Optional[str] = Field(None, max_length=255)
    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)


class LoginRequest(ApiModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=1024)


class RefreshRequest(ApiModel):
    refresh_token: str = Field(..., min_length=1)


# --- Helpers ---


def get_auth_service(
    db: Session = Depends(get_db_session),
    codec: TokenCodec = Depends(get_token_codec),
    settings: Settings = Depends(get_settings),
) -> AuthService:
    return AuthService(db, codec, settings.bootstrap_admin)


# --- Endpoints ---


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(
    body: RegisterRequest,
    db: Session = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    user = service.register(body.name, body.email, body.password)
    db.commit()
    return success_response(user.to_public_dict(), "User registered successfully")


@router.post("/login")
def login(
    body: LoginRequest,
    db: Session = Depends(get_db_session),
    service: AuthService = Depends(get_auth_service),
):
    result = service.login(body.email, body.password)
    db.commit()
    return success_response(result, "Login successful")


@router.post("/refresh")
def refresh(
    body: RefreshRequest,
    service: AuthService = Depends(get_auth_service),
):
    return success_response(service.refresh(body.refresh_token), "Token refreshed")


@router.get("/me")
def me(principal: Principal = Depends(require_auth)):
    if isinstance(principal, StoredUserPrincipal):
        profile = principal.user.to_public_dict()
        profile["is_bootstrap_admin"] = False
    else:
        profile = {
            "id": principal.id,
            "email": principal.email,
            "role": principal.role.value,
            "is_active": True,
            "active_business_id": None,
            "is_bootstrap_admin": True,
        }
    return success_response(profile)
