"""
Subscription Administration API Routes.

Provides endpoints for:
- Listing subscriptions (paginated, optional status filter)
- Platform statistics
- Reading, activating, extending and deactivating a business's subscription

SECURITY:
- Every endpoint requires the subscription-admin authority (bootstrap admin
  or coarse role SUPER_ADMIN); business membership grants nothing here
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.schemas import ApiModel
from que_accounting.auth.middleware import require_subscription_admin
from que_accounting.auth.principal import Principal
from que_accounting.database.session import get_db_session
from que_accounting.platform.responses import success_response
from que_accounting.services.subscription_service import SubscriptionService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/subscriptions",
    tags=["subscriptions"],
    dependencies=[Depends(require_subscription_admin)],
)


class DurationRequest(ApiModel):
    duration_months: int = Field(..., description="Months to add (1..36)")
    plan_name: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None


@router.get("")
def list_subscriptions(
    page: int = Query(1),
    page_size: int = Query(20, alias="pageSize"),
    status: Optional[str] = Query(None),
    db: Session = Depends(get_db_session),
):
    return success_response(SubscriptionService(db).list_all(page, page_size, status))


@router.get("/stats")
def subscription_stats(db: Session = Depends(get_db_session)):
    return success_response(SubscriptionService(db).stats())


@router.get("/{business_id}")
def get_subscription(business_id: str, db: Session = Depends(get_db_session)):
    service = SubscriptionService(db)
    return success_response(service.describe(service.get(business_id)))


@router.post("/{business_id}/activate")
def activate_subscription(
    business_id: str,
    body: DurationRequest,
    principal: Principal = Depends(require_subscription_admin),
    db: Session = Depends(get_db_session),
):
    service = SubscriptionService(db)
    subscription = service.activate(business_id, body.duration_months, body.plan_name, body.notes)
    db.commit()
    logger.info(
        "Subscription activated by admin",
        extra={"business_id": business_id, "admin_id": principal.id},
    )
    return success_response(service.describe(subscription), "Subscription activated successfully")


@router.post("/{business_id}/extend")
def extend_subscription(
    business_id: str,
    body: DurationRequest,
    principal: Principal = Depends(require_subscription_admin),
    db: Session = Depends(get_db_session),
):
    service = SubscriptionService(db)
    subscription = service.extend(business_id, body.duration_months, body.plan_name, body.notes)
    db.commit()
    logger.info(
        "Subscription extended by admin",
        extra={"business_id": business_id, "admin_id": principal.id},
    )
    return success_response(service.describe(subscription), "Subscription extended successfully")


@router.post("/{business_id}/deactivate")
def deactivate_subscription(
    business_id: str,
    principal: Principal = Depends(require_subscription_admin),
    db: Session = Depends(get_db_session),
):
    service = SubscriptionService(db)
    subscription = service.deactivate(business_id)
    db.commit()
    logger.info(
        "Subscription deactivated by admin",
        extra={"business_id": business_id, "admin_id": principal.id},
    )
    return success_response(service.describe(subscription), "Subscription deactivated successfully")
