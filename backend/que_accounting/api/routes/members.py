"""
Business Members API Routes - manage who can act in the current business.

Provides endpoints for:
- Listing memberships
- Inviting an existing user by email
- Toggling a membership's status
- Changing a membership's role
- Cancelling a membership

SECURITY:
- user:read for listing, user:create to invite, user:update to change
  status or role, user:delete to cancel
- Tenant: x-business-id header when present, else the active business
- Admin memberships cannot be cancelled; the last active Admin cannot be
  disabled or demoted
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.dependencies.access import authorize
from que_accounting.api.schemas import ApiModel
from que_accounting.constants.permissions import Action, Module
from que_accounting.database.session import get_db_session
from que_accounting.entitlements.rules import GateMode
from que_accounting.platform.responses import success_response
from que_accounting.platform.tenant_context import TenantContext, TenantStrategy
from que_accounting.services.business_members_service import BusinessMembersService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/members", tags=["members"])

MEMBERS_STRATEGY = TenantStrategy.HEADER_OR_ACTIVE


def _authorize(action: Action):
    return authorize(Module.USER.value, action.value, mode=GateMode.READ_ONLY, strategy=MEMBERS_STRATEGY)


class InviteRequest(ApiModel):
    email: str = Field(..., min_length=3, max_length=255)
    role_id: Optional[str] = None


class ChangeRoleRequest(ApiModel):
    role_id: str = Field(..., min_length=1)


@router.get("")
def list_members(
    ctx: TenantContext = Depends(_authorize(Action.READ)),
    db: Session = Depends(get_db_session),
):
    service = BusinessMembersService(db, ctx.business_id)
    return success_response({
        "members": service.list_members(),
        "roles": [{"id": role.id, "name": role.name} for role in service.list_roles()],
    })


@router.post("/invite", status_code=status.HTTP_201_CREATED)
def invite_member(
    body: InviteRequest,
    ctx: TenantContext = Depends(_authorize(Action.CREATE)),
    db: Session = Depends(get_db_session),
):
    service = BusinessMembersService(db, ctx.business_id)
    membership = service.invite(body.email, body.role_id)
    db.commit()
    return success_response(service.describe(membership), "User invited successfully")


@router.patch("/{membership_id}/status")
def toggle_member_status(
    membership_id: str,
    ctx: TenantContext = Depends(_authorize(Action.UPDATE)),
    db: Session = Depends(get_db_session),
):
    service = BusinessMembersService(db, ctx.business_id)
    membership = service.toggle_status(membership_id)
    db.commit()
    return success_response(service.describe(membership), "Membership status updated")


@router.patch("/{membership_id}/role")
def change_member_role(
    membership_id: str,
    body: ChangeRoleRequest,
    ctx: TenantContext = Depends(_authorize(Action.UPDATE)),
    db: Session = Depends(get_db_session),
):
    service = BusinessMembersService(db, ctx.business_id)
    membership = service.change_role(membership_id, body.role_id)
    db.commit()
    return success_response(service.describe(membership), "Membership role updated")


@router.delete("/invite/{membership_id}")
def cancel_invite(
    membership_id: str,
    ctx: TenantContext = Depends(_authorize(Action.DELETE)),
    db: Session = Depends(get_db_session),
):
    BusinessMembersService(db, ctx.business_id).cancel(membership_id)
    db.commit()
    return success_response(None, "Invite cancelled")
