"""
Claims models for QUE Accounting tokens.

This module provides:
- Pydantic models for the claims we sign and verify
- The principal discriminator carried in every token

Claims:
- sub: principal id (users.id, or the bootstrap admin's email)
- email, role, is_active: identity snapshot at issue time
- principal_type: "user" for stored users, "bootstrap_admin" for the
  environment-configured subscription administrator
- active_business_id: optional tenant hint (informational; the store is
  authoritative)
- typ: "access" or "refresh"
- iss, aud, iat, nbf, exp, jti: standard registered claims
"""

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class TokenType(str, Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class PrincipalType(str, Enum):
    """Discriminator for the principal variants a token can represent."""
    USER = "user"
    BOOTSTRAP_ADMIN = "bootstrap_admin"


class PrincipalClaims(BaseModel):
    """Identity claims supplied by callers of TokenCodec.issue."""

    sub: str = Field(..., min_length=1, description="Principal id")
    email: str
    role: str = Field(..., description="Coarse platform role")
    is_active: bool = True
    principal_type: PrincipalType = PrincipalType.USER
    active_business_id: Optional[str] = Field(
        None, description="Active business hint; never trusted for authorization"
    )


class TokenClaims(PrincipalClaims):
    """Full verified claim set."""

    typ: TokenType
    iss: str
    aud: str
    iat: int
    exp: int
    nbf: Optional[int] = None
    jti: Optional[str] = None

    model_config = ConfigDict(extra="ignore")

    @property
    def is_bootstrap_admin(self) -> bool:
        return self.principal_type == PrincipalType.BOOTSTRAP_ADMIN
