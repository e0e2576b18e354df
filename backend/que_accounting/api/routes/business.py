"""
Business API Routes - provisioning and switching.

Provides endpoints for:
- Creating a business (atomic provisioning; caller becomes owner and Admin)
- Listing the caller's businesses
- Switching the caller's active business

SECURITY:
- Requires a stored-user principal (the bootstrap admin owns no businesses)
- Switching requires membership or ownership; otherwise 403 and no token
- Reissued tokens carry the active business only as a hint
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.schemas import ApiModel
from que_accounting.auth.middleware import require_user
from que_accounting.auth.principal import StoredUserPrincipal
from que_accounting.auth.token_codec import TokenCodec, get_token_codec
from que_accounting.database.session import get_db_session
from que_accounting.platform.responses import success_response
from que_accounting.services.business_provisioning import BusinessProvisioningService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/business", tags=["business"])


class CreateBusinessRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None


class SwitchBusinessRequest(ApiModel):
    business_id: str = Field(..., min_length=1)


@router.post("", status_code=status.HTTP_201_CREATED)
def create_business(
    body: CreateBusinessRequest,
    principal: StoredUserPrincipal = Depends(require_user),
    db: Session = Depends(get_db_session),
    codec: TokenCodec = Depends(get_token_codec),
):
    service = BusinessProvisioningService(db)
    business = service.create_business(
        principal.id,
        body.name,
        email=body.email,
        phone=body.phone,
        address=body.address,
    )
    db.commit()

    token = codec.issue(principal.to_claims(active_business_id=business.id))
    return success_response(
        {"business": business.to_dict(), "token": token, "active_business_id": business.id},
        "Business created successfully",
    )


@router.get("")
def list_businesses(
    principal: StoredUserPrincipal = Depends(require_user),
    db: Session = Depends(get_db_session),
):
    businesses = BusinessProvisioningService(db).list_user_businesses(principal.user)
    return success_response(
        {"businesses": businesses, "active_business_id": principal.user.active_business_id}
    )


@router.post("/switch")
def switch_business(
    body: SwitchBusinessRequest,
    principal: StoredUserPrincipal = Depends(require_user),
    db: Session = Depends(get_db_session),
    codec: TokenCodec = Depends(get_token_codec),
):
    business = BusinessProvisioningService(db).switch_business(principal.user, body.business_id)
    db.commit()

    token = codec.issue(principal.to_claims(active_business_id=business.id))
    return success_response(
        {"token": token, "active_business_id": business.id},
        "Business switched successfully",
    )
