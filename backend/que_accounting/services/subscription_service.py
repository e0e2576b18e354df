"""
Subscription administration service.

Administrative operations (bootstrap admin / SUPER_ADMIN only):
- activate: status ACTIVE, start now, expiry now + N months, and flips
  Business.is_active to True (a business is unusable before first activation)
- extend: adds N months to the current expiry while active and unexpired,
  otherwise to now; a lapsed expiry is never compounded
- deactivate: status INACTIVE only; Business.is_active is left unchanged so
  the business can be reactivated without re-provisioning
- list_all / stats: derived active-ness evaluated lazily at read time

Durations are calendar months (dateutil relativedelta), 1..36.
"""

import logging
from datetime import datetime
from typing import Callable, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.orm import Session

from que_accounting.entitlements.rules import SubscriptionSnapshot, is_subscription_active
from que_accounting.models.base import ensure_utc, utcnow
from que_accounting.models.business import Business
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.platform.errors import NotFoundError, ValidationFailedError
from que_accounting.repositories.subscription_repository import SubscriptionRepository

logger = logging.getLogger(__name__)

MIN_DURATION_MONTHS = 1
MAX_DURATION_MONTHS = 36
MAX_PAGE_SIZE = 100


def validate_duration_months(duration_months: int) -> int:
    """
    Validate an activation/extension duration.

    Raises:
        ValidationFailedError: If outside 1..36
    """
    if isinstance(duration_months, bool) or not isinstance(duration_months, int):
        raise ValidationFailedError("durationMonths must be an integer")
    if not MIN_DURATION_MONTHS <= duration_months <= MAX_DURATION_MONTHS:
        raise ValidationFailedError(
            f"durationMonths must be between {MIN_DURATION_MONTHS} and {MAX_DURATION_MONTHS}"
        )
    return duration_months


class SubscriptionService:
    """Administrative subscription lifecycle."""

    def __init__(self, session: Session, clock: Callable[[], datetime] = utcnow):
        """
        Initialize service.

        Args:
            session: SQLAlchemy session
            clock: Returns the current aware UTC time (injectable for tests)
        """
        self.session = session
        self.clock = clock
        self.repository = SubscriptionRepository(session)

    def get(self, business_id: str) -> Subscription:
        """
        Raises:
            NotFoundError: Unknown business or missing subscription
        """
        subscription = self.repository.get_by_business_id(business_id)
        if subscription is None:
            raise NotFoundError("Subscription not found")
        return subscription

    def describe(self, subscription: Subscription) -> dict:
        """Serialize with derived fields."""
        snapshot = SubscriptionSnapshot.of(subscription, self.clock())
        business = subscription.business
        return {
            "id": subscription.id,
            "business_id": subscription.business_id,
            "business_name": business.name if business is not None else None,
            "business_is_active": business.is_active if business is not None else None,
            "status": subscription.status.value,
            "plan_name": subscription.plan_name,
            "notes": subscription.notes,
            "start_date": ensure_utc(subscription.start_date),
            "expires_at": snapshot.expires_at,
            "is_active": snapshot.is_active,
            "remaining_days": snapshot.remaining_days,
        }

    def activate(
        self,
        business_id: str,
        duration_months: int,
        plan_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        """
        Start a fresh subscription period and activate the business.

        Raises:
            ValidationFailedError: Duration outside 1..36
            NotFoundError: Unknown business
        """
        validate_duration_months(duration_months)
        business = self._get_business(business_id)
        now = self.clock()

        subscription = business.subscription
        if subscription is None:
            # Repair a business provisioned without its subscription row
            subscription = Subscription(business_id=business.id)
            self.session.add(subscription)
            logger.warning("Subscription row missing; created on activation", extra={"business_id": business.id})

        subscription.status = SubscriptionStatus.ACTIVE
        subscription.start_date = now
        subscription.expires_at = now + relativedelta(months=duration_months)
        if plan_name is not None:
            subscription.plan_name = plan_name
        if notes is not None:
            subscription.notes = notes

        business.is_active = True
        self.session.flush()

        logger.info(
            "Subscription activated",
            extra={
                "business_id": business.id,
                "duration_months": duration_months,
                "expires_at": subscription.expires_at.isoformat(),
            },
        )
        return subscription

    def extend(
        self,
        business_id: str,
        duration_months: int,
        plan_name: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> Subscription:
        """
        Extend the subscription by duration_months.

        The new expiry is computed from the current expiry when the
        subscription is active and unexpired, and from now otherwise.

        Raises:
            ValidationFailedError: Duration outside 1..36
            NotFoundError: Unknown business or missing subscription
        """
        validate_duration_months(duration_months)
        subscription = self.get(business_id)
        now = self.clock()

        if is_subscription_active(subscription, now):
            base = max(now, ensure_utc(subscription.expires_at))
        else:
            base = now
            subscription.start_date = now

        subscription.status = SubscriptionStatus.ACTIVE
        subscription.expires_at = base + relativedelta(months=duration_months)
        if plan_name is not None:
            subscription.plan_name = plan_name
        if notes is not None:
            subscription.notes = notes

        self.session.flush()

        logger.info(
            "Subscription extended",
            extra={
                "business_id": business_id,
                "duration_months": duration_months,
                "expires_at": subscription.expires_at.isoformat(),
            },
        )
        return subscription

    def deactivate(self, business_id: str) -> Subscription:
        """
        Set status INACTIVE. Business.is_active is not modified.

        Raises:
            NotFoundError: Unknown business or missing subscription
        """
        subscription = self.get(business_id)
        subscription.status = SubscriptionStatus.INACTIVE
        self.session.flush()
        logger.info("Subscription deactivated", extra={"business_id": business_id})
        return subscription

    def list_all(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[str] = None,
    ) -> dict:
        """
        Paginated listing with derived fields.

        Raises:
            ValidationFailedError: Bad page, page_size or status
        """
        if page < 1:
            raise ValidationFailedError("page must be >= 1")
        if not 1 <= page_size <= MAX_PAGE_SIZE:
            raise ValidationFailedError(f"pageSize must be between 1 and {MAX_PAGE_SIZE}")

        status_filter = None
        if status:
            try:
                status_filter = SubscriptionStatus(status.upper())
            except ValueError:
                raise ValidationFailedError(f"Unknown subscription status: {status}")

        items, total = self.repository.list_paginated(page, page_size, status_filter)
        return {
            "items": [self.describe(item) for item in items],
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total": total,
                "total_pages": (total + page_size - 1) // page_size,
            },
        }

    def stats(self) -> dict:
        """
        Platform statistics.

        active: ACTIVE and unexpired; expired: EXPIRED, or ACTIVE past expiry;
        inactive: everything else among businesses.
        """
        now = self.clock()
        total_businesses = self.repository.count_businesses()
        active = self.repository.count_active(now)
        expired = self.repository.count_expired(now)
        return {
            "total_businesses": total_businesses,
            "active_subscriptions": active,
            "expired_subscriptions": expired,
            "inactive_subscriptions": max(0, total_businesses - active - expired),
            "status_breakdown": self.repository.status_breakdown(),
        }

    def _get_business(self, business_id: str) -> Business:
        business = self.session.query(Business).filter(Business.id == business_id).first()
        if business is None:
            raise NotFoundError("Business not found")
        return business
