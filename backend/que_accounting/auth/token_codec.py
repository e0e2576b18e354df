"""
Token Codec: signs and verifies QUE Accounting bearer tokens.

Stateless and CPU-bound. Verification fails closed: every failure maps to a
distinguishable TokenFailureReason and no partial claims are returned.

Access tokens live JWT_ACCESS_TTL_SECONDS (default 7 days); refresh tokens
JWT_REFRESH_TTL_SECONDS (default 30 days) and are only accepted where a
refresh token is expected.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional, Union

import jwt
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    ImmatureSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    MissingRequiredClaimError,
)
from pydantic import ValidationError

from que_accounting.auth.jwt import PrincipalClaims, TokenClaims, TokenType
from que_accounting.config.settings import AuthSettings, get_settings
from que_accounting.platform.errors import TokenInvalidError

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ["sub", "exp", "iat", "iss", "aud", "typ"]


class TokenFailureReason(str, Enum):
    EXPIRED = "expired"
    MALFORMED = "malformed"
    SIGNATURE = "signature"
    NOT_YET_VALID = "not_yet_valid"
    ISSUER = "issuer"
    AUDIENCE = "audience"
    WRONG_TYPE = "wrong_token_type"


@dataclass(frozen=True)
class VerificationResult:
    """Outcome of TokenCodec.verify: claims when valid, a reason otherwise."""
    valid: bool
    claims: Optional[TokenClaims] = None
    reason: Optional[TokenFailureReason] = None


@dataclass(frozen=True)
class IssuedTokens:
    access_token: str
    refresh_token: str
    expires_at: datetime


class TokenCodec:
    """
    Issues and verifies HMAC-signed JWTs.

    Usage:
        codec = TokenCodec(settings.auth)
        token = codec.issue(PrincipalClaims(sub=user.id, email=..., role="USER"))
        result = codec.verify(token)
        if result.valid:
            user_id = result.claims.sub
    """

    def __init__(self, config: AuthSettings):
        self.config = config

    def issue(
        self,
        claims: Union[PrincipalClaims, dict],
        ttl: Optional[timedelta] = None,
        token_type: TokenType = TokenType.ACCESS,
        not_before: Optional[datetime] = None,
    ) -> str:
        """
        Sign a token for the given principal claims.

        Args:
            claims: Identity claims (model or mapping)
            ttl: Lifetime; defaults to the configured TTL for token_type
            token_type: access or refresh
            not_before: Optional nbf; defaults to the issue time

        Returns:
            Encoded JWT string
        """
        if isinstance(claims, dict):
            claims = PrincipalClaims(**claims)

        if ttl is None:
            seconds = (
                self.config.refresh_ttl_seconds
                if token_type == TokenType.REFRESH
                else self.config.access_ttl_seconds
            )
            ttl = timedelta(seconds=seconds)

        now = datetime.now(timezone.utc)
        payload = claims.model_dump(mode="json")
        payload.update({
            "typ": token_type.value,
            "iss": self.config.issuer,
            "aud": self.config.audience,
            "iat": int(now.timestamp()),
            "nbf": int((not_before or now).timestamp()),
            "exp": int((now + ttl).timestamp()),
            "jti": str(uuid.uuid4()),
        })
        return jwt.encode(payload, self.config.jwt_secret, algorithm=self.config.algorithm)

    def issue_pair(self, claims: Union[PrincipalClaims, dict]) -> IssuedTokens:
        """Issue an access token and its companion refresh token."""
        access = self.issue(claims, token_type=TokenType.ACCESS)
        refresh = self.issue(claims, token_type=TokenType.REFRESH)
        expires_at = datetime.now(timezone.utc) + timedelta(seconds=self.config.access_ttl_seconds)
        return IssuedTokens(access_token=access, refresh_token=refresh, expires_at=expires_at)

    def verify(
        self,
        token: Optional[str],
        expected_type: TokenType = TokenType.ACCESS,
    ) -> VerificationResult:
        """
        Verify signature, issuer, audience, time claims and token type.

        Never raises for bad tokens; inspect result.valid / result.reason.
        """
        if not token:
            return VerificationResult(valid=False, reason=TokenFailureReason.MALFORMED)

        try:
            raw = jwt.decode(
                token,
                self.config.jwt_secret,
                algorithms=[self.config.algorithm],
                issuer=self.config.issuer,
                audience=self.config.audience,
                leeway=self.config.leeway_seconds,
                options={"require": REQUIRED_CLAIMS},
            )
        except ExpiredSignatureError:
            return self._fail(TokenFailureReason.EXPIRED)
        except ImmatureSignatureError:
            return self._fail(TokenFailureReason.NOT_YET_VALID)
        except InvalidSignatureError:
            return self._fail(TokenFailureReason.SIGNATURE)
        except InvalidIssuerError:
            return self._fail(TokenFailureReason.ISSUER)
        except InvalidAudienceError:
            return self._fail(TokenFailureReason.AUDIENCE)
        except (DecodeError, MissingRequiredClaimError):
            return self._fail(TokenFailureReason.MALFORMED)
        except InvalidTokenError:
            return self._fail(TokenFailureReason.MALFORMED)

        try:
            claims = TokenClaims(**raw)
        except ValidationError:
            return self._fail(TokenFailureReason.MALFORMED)

        if claims.typ != expected_type:
            return self._fail(TokenFailureReason.WRONG_TYPE)

        return VerificationResult(valid=True, claims=claims)

    def verify_or_raise(
        self,
        token: Optional[str],
        expected_type: TokenType = TokenType.ACCESS,
    ) -> TokenClaims:
        """
        Verify a token and return its claims.

        Raises:
            TokenInvalidError: With the failure reason
        """
        result = self.verify(token, expected_type=expected_type)
        if not result.valid:
            raise TokenInvalidError(result.reason.value)
        return result.claims

    @staticmethod
    def _fail(reason: TokenFailureReason) -> VerificationResult:
        logger.warning("Token verification failed", extra={"reason": reason.value})
        return VerificationResult(valid=False, reason=reason)


def get_token_codec() -> TokenCodec:
    """FastAPI dependency returning a codec for the current settings."""
    return TokenCodec(get_settings().auth)
