"""
Customer API Routes - tenant-scoped resource behind the full pipeline.

SECURITY:
- customer:read / create / update / delete per endpoint
- Listing uses the read-only subscription mode (grace reads after expiry);
  writes require an active subscription
- Subscription state is reported in X-Subscription-* response headers
- Queries are always scoped to the resolved business
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.dependencies.access import authorize
from que_accounting.api.schemas import ApiModel
from que_accounting.constants.permissions import Action, Module
from que_accounting.database.session import get_db_session
from que_accounting.entitlements.rules import GateMode
from que_accounting.platform.responses import success_response
from que_accounting.platform.tenant_context import TenantContext
from que_accounting.services.customer_service import CustomerService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/customers", tags=["customers"])


def _authorize(action: Action, mode: GateMode = GateMode.STRICT):
    return authorize(Module.CUSTOMER.value, action.value, mode=mode, expose_subscription_headers=True)


class CustomerRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class CustomerUpdateRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


@router.get("")
def list_customers(
    search: Optional[str] = Query(None, max_length=100),
    ctx: TenantContext = Depends(_authorize(Action.READ, GateMode.READ_ONLY)),
    db: Session = Depends(get_db_session),
):
    customers = CustomerService(db, ctx.business_id).list(search)
    return success_response([c.to_dict() for c in customers])


@router.post("", status_code=status.HTTP_201_CREATED)
def create_customer(
    body: CustomerRequest,
    ctx: TenantContext = Depends(_authorize(Action.CREATE)),
    db: Session = Depends(get_db_session),
):
    customer = CustomerService(db, ctx.business_id).create(body.model_dump())
    db.commit()
    return success_response(customer.to_dict(), "Customer created successfully")


@router.put("/{customer_id}")
def update_customer(
    customer_id: str,
    body: CustomerUpdateRequest,
    ctx: TenantContext = Depends(_authorize(Action.UPDATE)),
    db: Session = Depends(get_db_session),
):
    customer = CustomerService(db, ctx.business_id).update(customer_id, body.model_dump(exclude_unset=True))
    db.commit()
    return success_response(customer.to_dict(), "Customer updated successfully")


@router.delete("/{customer_id}")
def delete_customer(
    customer_id: str,
    ctx: TenantContext = Depends(_authorize(Action.DELETE)),
    db: Session = Depends(get_db_session),
):
    CustomerService(db, ctx.business_id).delete(customer_id)
    db.commit()
    return success_response(None, "Customer deleted successfully")
