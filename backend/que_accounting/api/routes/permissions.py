"""
Permission API Routes - direct grants and effective permissions.

Provides endpoints for:
- Granting (module, actions) directly to a membership
- Revoking direct grants
- Listing a membership's direct grants
- Reading the caller's effective permissions in the current business

SECURITY:
- Grant/revoke require user:update; listing requires user:read
- The membership must belong to the caller's business (404 otherwise)
- Grant and revoke are idempotent
"""

import logging
from typing import List

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.dependencies.access import authorize
from que_accounting.api.schemas import ApiModel
from que_accounting.constants.permissions import Action, Module
from que_accounting.database.session import get_db_session
from que_accounting.entitlements.rules import GateMode
from que_accounting.platform.rbac import PermissionEvaluator
from que_accounting.platform.responses import success_response
from que_accounting.platform.tenant_context import TenantContext, get_tenant_context
from que_accounting.services.permission_assignment_service import PermissionAssignmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/permissions", tags=["permissions"])


class AssignPermissionsRequest(ApiModel):
    module: str = Field(..., min_length=1, max_length=100)
    actions: List[str] = Field(..., min_length=1)


def _permission_dicts(permissions) -> list:
    return [
        {"id": p.id, "module": p.module, "action": p.action}
        for p in sorted(permissions, key=lambda p: (p.module, p.action))
    ]


@router.post("/assign/{membership_id}", status_code=status.HTTP_201_CREATED)
def assign_permissions(
    membership_id: str,
    body: AssignPermissionsRequest,
    ctx: TenantContext = Depends(authorize(Module.USER.value, Action.UPDATE.value)),
    db: Session = Depends(get_db_session),
):
    service = PermissionAssignmentService(db, ctx.business_id)
    permissions = service.grant_actions(membership_id, body.module, body.actions)
    db.commit()
    return success_response(
        {"membership_id": membership_id, "granted": _permission_dicts(permissions)},
        "Permissions assigned successfully",
    )


@router.delete("/assign/{membership_id}")
def revoke_permissions(
    membership_id: str,
    body: AssignPermissionsRequest,
    ctx: TenantContext = Depends(authorize(Module.USER.value, Action.UPDATE.value)),
    db: Session = Depends(get_db_session),
):
    service = PermissionAssignmentService(db, ctx.business_id)
    removed = service.revoke_actions(membership_id, body.module, body.actions)
    db.commit()
    return success_response(
        {"membership_id": membership_id, "removed": removed},
        "Permissions removed successfully",
    )


@router.get("/assign/{membership_id}")
def list_direct_permissions(
    membership_id: str,
    ctx: TenantContext = Depends(
        authorize(Module.USER.value, Action.READ.value, mode=GateMode.READ_ONLY)
    ),
    db: Session = Depends(get_db_session),
):
    permissions = PermissionAssignmentService(db, ctx.business_id).list_direct(membership_id)
    return success_response(
        {"membership_id": membership_id, "permissions": _permission_dicts(permissions)}
    )


@router.get("/effective")
def effective_permissions(ctx: TenantContext = Depends(get_tenant_context())):
    keys = PermissionEvaluator().effective_permissions(ctx.user_id, ctx.business, ctx.membership)
    return success_response({
        "business_id": ctx.business_id,
        "is_owner": ctx.is_owner,
        "role": ctx.role_name,
        "permissions": sorted(keys),
    })
