"""
Tests for derived subscription state and the SubscriptionGate.

Active-ness is computed at read time: status ACTIVE and expiry in the
future. No stored field changes when an expiry passes.
"""

from datetime import datetime, timedelta, timezone

import pytest

from que_accounting.entitlements.rules import (
    GateMode,
    SubscriptionGate,
    SubscriptionSnapshot,
    is_lazily_expired,
    is_subscription_active,
    remaining_days,
)
from que_accounting.models.business import Business
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.platform.errors import BusinessInactiveError, SubscriptionInactiveError

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _subscription(status=SubscriptionStatus.ACTIVE, expires_in=timedelta(days=10)):
    return Subscription(
        business_id="biz-1",
        status=status,
        start_date=NOW - timedelta(days=30),
        expires_at=NOW + expires_in if expires_in is not None else None,
    )


def _business(subscription=None, is_active=True):
    business = Business(id="biz-1", owner_id="owner-1", name="Acme", is_active=is_active)
    business.subscription = subscription
    return business


class TestDerivedState:

    def test_active_with_future_expiry(self):
        assert is_subscription_active(_subscription(), NOW) is True

    def test_flips_inactive_when_clock_passes_expiry(self):
        subscription = _subscription(expires_in=timedelta(hours=1))

        assert is_subscription_active(subscription, NOW) is True
        assert is_subscription_active(subscription, NOW + timedelta(hours=2)) is False
        assert subscription.status == SubscriptionStatus.ACTIVE

    def test_expiry_equal_to_now_is_inactive(self):
        assert is_subscription_active(_subscription(expires_in=timedelta(0)), NOW) is False

    @pytest.mark.parametrize("status", [SubscriptionStatus.INACTIVE, SubscriptionStatus.EXPIRED])
    def test_non_active_status(self, status):
        assert is_subscription_active(_subscription(status=status), NOW) is False

    def test_missing_subscription_or_expiry(self):
        assert is_subscription_active(None, NOW) is False
        assert is_subscription_active(_subscription(expires_in=None), NOW) is False

    def test_naive_expiry_is_read_as_utc(self):
        subscription = _subscription()
        subscription.expires_at = (NOW + timedelta(days=1)).replace(tzinfo=None)

        assert is_subscription_active(subscription, NOW) is True

    def test_lazily_expired(self):
        assert is_lazily_expired(_subscription(expires_in=timedelta(days=-1)), NOW) is True
        assert is_lazily_expired(_subscription(status=SubscriptionStatus.EXPIRED), NOW) is True
        assert is_lazily_expired(_subscription(), NOW) is False
        assert is_lazily_expired(_subscription(status=SubscriptionStatus.INACTIVE), NOW) is False


class TestRemainingDays:

    def test_rounds_up_partial_days(self):
        assert remaining_days(_subscription(expires_in=timedelta(days=2, hours=1)), NOW) == 3

    def test_exact_days(self):
        assert remaining_days(_subscription(expires_in=timedelta(days=5)), NOW) == 5

    def test_never_negative(self):
        assert remaining_days(_subscription(expires_in=timedelta(days=-4)), NOW) == 0

    def test_unset(self):
        assert remaining_days(None, NOW) == 0
        assert remaining_days(_subscription(expires_in=None), NOW) == 0


class TestSnapshotHeaders:

    def test_headers(self):
        headers = SubscriptionSnapshot.of(_subscription(expires_in=timedelta(days=3)), NOW).to_headers()

        assert headers["X-Subscription-Status"] == "ACTIVE"
        assert headers["X-Subscription-Active"] == "true"
        assert headers["X-Subscription-Remaining-Days"] == "3"
        assert headers["X-Subscription-Expires-At"].startswith("2026-03-04T12:00:00")

    def test_headers_without_subscription(self):
        headers = SubscriptionSnapshot.of(None, NOW).to_headers()

        assert headers["X-Subscription-Status"] == "NONE"
        assert headers["X-Subscription-Active"] == "false"
        assert headers["X-Subscription-Expires-At"] == ""


class TestSubscriptionGate:

    @pytest.fixture
    def gate(self):
        return SubscriptionGate(clock=lambda: NOW)

    def test_strict_allows_active(self, gate):
        snapshot = gate.check(_business(_subscription()), "POST", GateMode.STRICT)

        assert snapshot.is_active is True

    @pytest.mark.parametrize("method", ["GET", "POST"])
    def test_strict_rejects_lapsed_for_every_method(self, gate, method):
        business = _business(_subscription(expires_in=timedelta(days=-1)))

        with pytest.raises(SubscriptionInactiveError) as exc_info:
            gate.check(business, method, GateMode.STRICT)
        assert exc_info.value.http_status == 403

    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "get"])
    def test_read_only_passes_safe_methods_when_lapsed(self, gate, method):
        business = _business(_subscription(expires_in=timedelta(days=-1)))

        snapshot = gate.check(business, method, GateMode.READ_ONLY)

        assert snapshot.is_active is False

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE"])
    def test_read_only_gates_writes(self, gate, method):
        business = _business(_subscription(expires_in=timedelta(days=-1)))

        with pytest.raises(SubscriptionInactiveError):
            gate.check(business, method, GateMode.READ_ONLY)

    def test_missing_subscription_is_inactive(self, gate):
        with pytest.raises(SubscriptionInactiveError):
            gate.check(_business(None), "POST")

    def test_inactive_business_rejected_on_gated_request(self, gate):
        with pytest.raises(BusinessInactiveError):
            gate.check(_business(_subscription(), is_active=False), "POST")
