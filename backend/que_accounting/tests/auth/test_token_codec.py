"""
Tests for the TokenCodec.

Tests cover:
- Issuing and verifying access and refresh tokens
- Distinguishable failure reasons (expired, signature, issuer, audience,
  not-yet-valid, malformed, wrong token type)
- Tampered payloads never yield claims
"""

import base64
import json
from datetime import datetime, timedelta, timezone

import jwt
import pytest

from que_accounting.auth.jwt import PrincipalClaims, PrincipalType, TokenType
from que_accounting.auth.token_codec import TokenCodec, TokenFailureReason
from que_accounting.config.settings import AuthSettings
from que_accounting.platform.errors import TokenInvalidError

SECRET = "codec-test-secret-with-at-least-thirty-two-bytes"


# =============================================================================
# Test Fixtures
# =============================================================================

@pytest.fixture
def config():
    return AuthSettings(jwt_secret=SECRET)


@pytest.fixture
def codec(config):
    return TokenCodec(config)


@pytest.fixture
def claims():
    return PrincipalClaims(
        sub="user-123",
        email="alice@example.com",
        role="USER",
        active_business_id="biz-1",
    )


def _b64(data: dict) -> str:
    raw = json.dumps(data, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


# =============================================================================
# Issue / Verify
# =============================================================================

class TestIssueAndVerify:
    """Tests for successful round trips."""

    def test_access_token_verifies(self, codec, claims):
        result = codec.verify(codec.issue(claims))

        assert result.valid is True
        assert result.reason is None
        assert result.claims.sub == "user-123"
        assert result.claims.email == "alice@example.com"
        assert result.claims.role == "USER"
        assert result.claims.typ == TokenType.ACCESS
        assert result.claims.principal_type == PrincipalType.USER
        assert result.claims.active_business_id == "biz-1"

    def test_registered_claims_are_set(self, codec, claims, config):
        before = int(datetime.now(timezone.utc).timestamp())
        result = codec.verify(codec.issue(claims))

        assert result.claims.iss == config.issuer
        assert result.claims.aud == config.audience
        assert result.claims.jti
        assert result.claims.iat >= before
        assert result.claims.exp - result.claims.iat == config.access_ttl_seconds

    def test_default_ttls(self, config):
        assert config.access_ttl_seconds == 7 * 24 * 3600
        assert config.refresh_ttl_seconds == 30 * 24 * 3600

    def test_issue_accepts_mapping(self, codec):
        token = codec.issue({"sub": "u1", "email": "u1@example.com", "role": "USER"})

        assert codec.verify(token).claims.sub == "u1"

    def test_refresh_token_verifies_as_refresh(self, codec, claims, config):
        token = codec.issue(claims, token_type=TokenType.REFRESH)
        result = codec.verify(token, expected_type=TokenType.REFRESH)

        assert result.valid is True
        assert result.claims.exp - result.claims.iat == config.refresh_ttl_seconds

    def test_issue_pair(self, codec, claims):
        pair = codec.issue_pair(claims)

        assert codec.verify(pair.access_token).valid
        assert codec.verify(pair.refresh_token, expected_type=TokenType.REFRESH).valid
        assert pair.expires_at > datetime.now(timezone.utc)

    def test_bootstrap_discriminator_round_trips(self, codec):
        token = codec.issue(PrincipalClaims(
            sub="bootstrap:root@que.test",
            email="root@que.test",
            role="SUPER_ADMIN",
            principal_type=PrincipalType.BOOTSTRAP_ADMIN,
        ))

        assert codec.verify(token).claims.is_bootstrap_admin is True


# =============================================================================
# Failure Reasons
# =============================================================================

class TestVerificationFailures:
    """Each failure maps to its own reason and never returns claims."""

    def test_expired(self, codec, claims):
        token = codec.issue(claims, ttl=timedelta(seconds=-30))
        result = codec.verify(token)

        assert result.valid is False
        assert result.claims is None
        assert result.reason == TokenFailureReason.EXPIRED

    def test_not_yet_valid(self, codec, claims):
        token = codec.issue(claims, not_before=datetime.now(timezone.utc) + timedelta(hours=1))

        assert codec.verify(token).reason == TokenFailureReason.NOT_YET_VALID

    def test_wrong_secret(self, codec, claims):
        other = TokenCodec(AuthSettings(jwt_secret="another-secret-with-at-least-thirty-two-bytes"))

        assert other.verify(codec.issue(claims)).reason == TokenFailureReason.SIGNATURE

    def test_wrong_issuer(self, codec, claims):
        other = TokenCodec(AuthSettings(jwt_secret=SECRET, issuer="someone-else"))

        assert other.verify(codec.issue(claims)).reason == TokenFailureReason.ISSUER

    def test_wrong_audience(self, codec, claims):
        other = TokenCodec(AuthSettings(jwt_secret=SECRET, audience="other-audience"))

        assert other.verify(codec.issue(claims)).reason == TokenFailureReason.AUDIENCE

    @pytest.mark.parametrize("token", ["", None, "not-a-jwt", "a.b.c"])
    def test_malformed(self, codec, token):
        assert codec.verify(token).reason == TokenFailureReason.MALFORMED

    def test_missing_token_type_is_malformed(self, codec, config):
        now = int(datetime.now(timezone.utc).timestamp())
        token = jwt.encode(
            {
                "sub": "u1",
                "email": "u1@example.com",
                "role": "USER",
                "iss": config.issuer,
                "aud": config.audience,
                "iat": now,
                "exp": now + 60,
            },
            SECRET,
            algorithm="HS256",
        )

        assert codec.verify(token).reason == TokenFailureReason.MALFORMED

    def test_refresh_token_rejected_as_access(self, codec, claims):
        token = codec.issue(claims, token_type=TokenType.REFRESH)

        assert codec.verify(token).reason == TokenFailureReason.WRONG_TYPE

    def test_access_token_rejected_as_refresh(self, codec, claims):
        result = codec.verify(codec.issue(claims), expected_type=TokenType.REFRESH)

        assert result.reason == TokenFailureReason.WRONG_TYPE

    def test_tampered_payload_is_rejected(self, codec, claims):
        header, payload, signature = codec.issue(claims).split(".")
        decoded = json.loads(base64.urlsafe_b64decode(payload + "=" * (-len(payload) % 4)))
        decoded["role"] = "SUPER_ADMIN"
        forged = ".".join([header, _b64(decoded), signature])

        result = codec.verify(forged)

        assert result.valid is False
        assert result.reason == TokenFailureReason.SIGNATURE

    def test_verify_or_raise(self, codec, claims):
        token = codec.issue(claims, ttl=timedelta(seconds=-30))

        with pytest.raises(TokenInvalidError) as exc_info:
            codec.verify_or_raise(token)

        assert exc_info.value.http_status == 401
        assert exc_info.value.error_code == "token_expired"
        assert exc_info.value.reason == "expired"
