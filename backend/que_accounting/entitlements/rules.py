"""
Subscription rules: derived active-ness and the read/write gate.

Provides:
- is_subscription_active: status == ACTIVE and expires_at > now
- remaining_days: whole days left, rounded up, never negative
- SubscriptionSnapshot: derived view used by headers and admin listings
- SubscriptionGate: STRICT / READ_ONLY enforcement for a business

CRITICAL: active-ness is computed at read time from the stored status and
expiry. A subscription whose expiry passes becomes inactive with no write
to the store. A business without a subscription is treated as inactive.
"""

import logging
import math
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Callable, Optional

from que_accounting.models.base import ensure_utc, utcnow
from que_accounting.models.business import Business
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.platform.errors import BusinessInactiveError, SubscriptionInactiveError

logger = logging.getLogger(__name__)

SAFE_METHODS = frozenset({"GET", "HEAD", "OPTIONS"})

SECONDS_PER_DAY = 24 * 60 * 60


class GateMode(str, Enum):
    """
    STRICT: every request requires an active subscription.
    READ_ONLY: safe methods pass regardless of subscription state; other
    methods require an active subscription (grace read access after expiry).
    """
    STRICT = "strict"
    READ_ONLY = "read_only"


def is_subscription_active(subscription: Optional[Subscription], now: Optional[datetime] = None) -> bool:
    """Derived active-ness: status ACTIVE and an expiry strictly in the future."""
    if subscription is None or subscription.status != SubscriptionStatus.ACTIVE:
        return False
    expires_at = ensure_utc(subscription.expires_at)
    if expires_at is None:
        return False
    return expires_at > (now or utcnow())


def is_lazily_expired(subscription: Optional[Subscription], now: Optional[datetime] = None) -> bool:
    """Stored EXPIRED, or stored ACTIVE with an expiry already passed."""
    if subscription is None:
        return False
    if subscription.status == SubscriptionStatus.EXPIRED:
        return True
    expires_at = ensure_utc(subscription.expires_at)
    return (
        subscription.status == SubscriptionStatus.ACTIVE
        and expires_at is not None
        and expires_at <= (now or utcnow())
    )


def remaining_days(subscription: Optional[Subscription], now: Optional[datetime] = None) -> int:
    """Days until expiry rounded up; 0 when expired or unset."""
    if subscription is None:
        return 0
    expires_at = ensure_utc(subscription.expires_at)
    if expires_at is None:
        return 0
    seconds = (expires_at - (now or utcnow())).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


@dataclass(frozen=True)
class SubscriptionSnapshot:
    """Derived subscription state at a point in time."""
    status: Optional[SubscriptionStatus]
    expires_at: Optional[datetime]
    is_active: bool
    remaining_days: int

    @classmethod
    def of(cls, subscription: Optional[Subscription], now: Optional[datetime] = None) -> "SubscriptionSnapshot":
        now = now or utcnow()
        return cls(
            status=subscription.status if subscription is not None else None,
            expires_at=ensure_utc(subscription.expires_at) if subscription is not None else None,
            is_active=is_subscription_active(subscription, now),
            remaining_days=remaining_days(subscription, now),
        )

    def to_headers(self) -> dict:
        """Response headers describing the subscription state."""
        return {
            "X-Subscription-Status": self.status.value if self.status else "NONE",
            "X-Subscription-Expires-At": self.expires_at.isoformat() if self.expires_at else "",
            "X-Subscription-Remaining-Days": str(self.remaining_days),
            "X-Subscription-Active": "true" if self.is_active else "false",
        }


class SubscriptionGate:
    """Applies the subscription rules to a business for a request method."""

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self.clock = clock

    def check(self, business: Business, method: str, mode: GateMode = GateMode.STRICT) -> SubscriptionSnapshot:
        """
        Allow or reject access to a business.

        Args:
            business: Resolved business with its subscription
            method: HTTP method of the request
            mode: STRICT or READ_ONLY

        Returns:
            SubscriptionSnapshot for the allowed request

        Raises:
            SubscriptionInactiveError: Subscription not active on a gated request (403)
            BusinessInactiveError: Business is inactive on a gated request (403)
        """
        snapshot = SubscriptionSnapshot.of(business.subscription, self.clock())

        if mode == GateMode.READ_ONLY and method.upper() in SAFE_METHODS:
            return snapshot

        if not snapshot.is_active:
            logger.warning(
                "Subscription gate rejected request",
                extra={
                    "business_id": business.id,
                    "status": snapshot.status.value if snapshot.status else None,
                    "method": method,
                    "mode": mode.value,
                },
            )
            raise SubscriptionInactiveError()

        if not business.is_active:
            raise BusinessInactiveError()

        return snapshot
