"""
User lookup API Routes - check whether an email belongs to a registered user.

SECURITY:
- user:create in the current business (the lookup precedes an invite)
- Tenant: x-business-id header when present, else the active business
- Returns only the public profile, never credentials
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.dependencies.access import authorize
from que_accounting.api.schemas import ApiModel
from que_accounting.constants.permissions import Action, Module
from que_accounting.database.session import get_db_session
from que_accounting.platform.responses import success_response
from que_accounting.platform.tenant_context import TenantContext, TenantStrategy
from que_accounting.services.user_directory_service import UserDirectoryService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["users"])


class CheckEmailRequest(ApiModel):
    email: str = Field(..., min_length=3, max_length=255)


@router.post("/check-email")
def check_user_by_email(
    body: CheckEmailRequest,
    ctx: TenantContext = Depends(
        authorize(Module.USER.value, Action.CREATE.value, strategy=TenantStrategy.HEADER_OR_ACTIVE)
    ),
    db: Session = Depends(get_db_session),
):
    user = UserDirectoryService(db, ctx.business_id).check_email(body.email)
    return success_response(user, "User found")
