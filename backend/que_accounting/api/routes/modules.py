"""
Permission Catalog API Routes (subscription admin only).

Provides endpoints for:
- Listing catalog modules with their actions
- Creating, updating and deleting a module
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from pydantic import Field
from sqlalchemy.orm import Session

from que_accounting.api.schemas import ApiModel
from que_accounting.auth.middleware import require_subscription_admin
from que_accounting.database.session import get_db_session
from que_accounting.platform.responses import success_response
from que_accounting.services.module_catalog_service import ModuleCatalogService

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/modules",
    tags=["modules"],
    dependencies=[Depends(require_subscription_admin)],
)


class CreateModuleRequest(ApiModel):
    name: str = Field(..., min_length=1, max_length=100)
    actions: List[str] = Field(..., min_length=1)


class UpdateModuleRequest(ApiModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    actions: Optional[List[str]] = None


@router.get("")
def list_modules(db: Session = Depends(get_db_session)):
    return success_response(ModuleCatalogService(db).list_modules())


@router.post("", status_code=status.HTTP_201_CREATED)
def create_module(body: CreateModuleRequest, db: Session = Depends(get_db_session)):
    module = ModuleCatalogService(db).create_module(body.name, body.actions)
    db.commit()
    return success_response(module, "Module created successfully")


@router.get("/{module_name}")
def get_module(module_name: str, db: Session = Depends(get_db_session)):
    return success_response(ModuleCatalogService(db).get_module(module_name))


@router.put("/{module_name}")
def update_module(module_name: str, body: UpdateModuleRequest, db: Session = Depends(get_db_session)):
    module = ModuleCatalogService(db).update_module(module_name, new_name=body.name, actions=body.actions)
    db.commit()
    return success_response(module, "Module updated successfully")


@router.delete("/{module_name}")
def delete_module(module_name: str, db: Session = Depends(get_db_session)):
    removed = ModuleCatalogService(db).delete_module(module_name)
    db.commit()
    return success_response({"removed_permissions": removed}, "Module deleted successfully")
