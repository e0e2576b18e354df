"""
Subscription repository for data access operations.

Encapsulates subscription queries used by the administrative path:
- Lookup by business
- Paginated listing with an optional stored-status filter
- Statistics with lazy expiry (ACTIVE rows past expires_at count as expired)

Subscription administration is a platform-level concern, so these queries
are intentionally not business-scoped.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Tuple

from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session, joinedload

from que_accounting.models.business import Business
from que_accounting.models.subscription import Subscription, SubscriptionStatus

logger = logging.getLogger(__name__)


class SubscriptionRepository:
    """Repository for subscription data access."""

    def __init__(self, db_session: Session):
        """
        Initialize repository with database session.

        Args:
            db_session: SQLAlchemy database session
        """
        self.db = db_session

    def get_by_business_id(self, business_id: str) -> Optional[Subscription]:
        return (
            self.db.query(Subscription)
            .options(joinedload(Subscription.business))
            .filter(Subscription.business_id == business_id)
            .first()
        )

    def list_paginated(
        self,
        page: int = 1,
        page_size: int = 20,
        status: Optional[SubscriptionStatus] = None,
    ) -> Tuple[List[Subscription], int]:
        """
        List subscriptions newest first.

        Returns:
            (subscriptions for the page, total matching count)
        """
        query = self.db.query(Subscription).options(joinedload(Subscription.business))
        if status is not None:
            query = query.filter(Subscription.status == status)

        total = query.count()
        items = (
            query.order_by(Subscription.created_at.desc(), Subscription.id.asc())
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )
        return items, total

    def count_businesses(self) -> int:
        return self.db.query(func.count(Business.id)).scalar() or 0

    def count_active(self, now: datetime) -> int:
        return (
            self.db.query(func.count(Subscription.id))
            .filter(
                Subscription.status == SubscriptionStatus.ACTIVE,
                Subscription.expires_at > now,
            )
            .scalar()
            or 0
        )

    def count_expired(self, now: datetime) -> int:
        """Stored EXPIRED plus lazily-expired ACTIVE rows."""
        return (
            self.db.query(func.count(Subscription.id))
            .filter(
                or_(
                    Subscription.status == SubscriptionStatus.EXPIRED,
                    and_(
                        Subscription.status == SubscriptionStatus.ACTIVE,
                        Subscription.expires_at <= now,
                    ),
                )
            )
            .scalar()
            or 0
        )

    def status_breakdown(self) -> Dict[str, int]:
        """Count of subscriptions per stored status."""
        rows = (
            self.db.query(Subscription.status, func.count(Subscription.id))
            .group_by(Subscription.status)
            .all()
        )
        breakdown = {status.value: 0 for status in SubscriptionStatus}
        for status, count in rows:
            key = status.value if isinstance(status, SubscriptionStatus) else str(status)
            breakdown[key] = count
        return breakdown
