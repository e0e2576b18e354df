"""
Business Settings API Routes - company details of the current business.

Provides endpoints for:
- Reading the settings of the current business
- Creating or updating them in one call

SECURITY:
- settings:read to view; settings:update to save, plus settings:create the
  first time the settings are saved
- Reads use the read-only subscription mode; saving requires an active
  subscription
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.dependencies.access import authorize
from que_accounting.api.schemas import ApiModel
from que_accounting.constants.permissions import Action, Module
from que_accounting.database.session import get_db_session
from que_accounting.entitlements.rules import GateMode
from que_accounting.platform.rbac import PermissionEvaluator
from que_accounting.platform.responses import success_response
from que_accounting.platform.tenant_context import TenantContext
from que_accounting.services.settings_service import SettingsService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/settings", tags=["settings"])


class SaveSettingsRequest(ApiModel):
    company_name: Optional[str] = Field(None, max_length=255)
    company_logo: Optional[str] = Field(None, max_length=1024)
    email: Optional[str] = Field(None, max_length=255)
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = None
    trn: Optional[str] = Field(None, max_length=50)
    bank_name: Optional[str] = Field(None, max_length=255)
    account_name: Optional[str] = Field(None, max_length=255)
    iban: Optional[str] = Field(None, max_length=64)
    swift_code: Optional[str] = Field(None, max_length=32)


@router.get("")
def get_settings(
    ctx: TenantContext = Depends(
        authorize(Module.SETTINGS.value, Action.READ.value, mode=GateMode.READ_ONLY)
    ),
    db: Session = Depends(get_db_session),
):
    settings = SettingsService(db, ctx.business_id).get()
    return success_response(
        settings.to_dict() if settings is not None else None,
        "Settings fetched successfully",
    )


@router.post("")
def save_settings(
    body: SaveSettingsRequest,
    ctx: TenantContext = Depends(authorize(Module.SETTINGS.value, Action.UPDATE.value)),
    db: Session = Depends(get_db_session),
):
    service = SettingsService(db, ctx.business_id)
    created = not service.exists()
    if created:
        PermissionEvaluator().check(ctx, Module.SETTINGS.value, Action.CREATE.value)

    settings = service.save(body.model_dump(exclude_unset=True))
    db.commit()
    return success_response(
        settings.to_dict(),
        "Settings created successfully" if created else "Settings updated successfully",
    )
