"""
Permission catalog administration (subscription admin only).

Modules are groups of catalog entries sharing a module name. Updating a
module's action set removes dropped actions together with every role and
direct grant referencing them; adding actions does not grant them to
existing roles (Admin roles still pass through the admin-role bypass).
"""

import logging
from typing import Any, Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from que_accounting.constants.permissions import DEFAULT_PERMISSION_CATALOG
from que_accounting.models.permission import Permission
from que_accounting.platform.errors import ConflictError, NotFoundError, ValidationFailedError
from que_accounting.repositories.permission_repository import PermissionRepository

logger = logging.getLogger(__name__)

MAX_NAME_LENGTH = 100


def _normalize_name(value: Optional[str], label: str) -> str:
    value = (value or "").strip().lower()
    if not value:
        raise ValidationFailedError(f"{label} is required")
    if len(value) > MAX_NAME_LENGTH:
        raise ValidationFailedError(f"{label} is too long")
    return value


def _normalize_actions(actions: Iterable[str]) -> List[str]:
    normalized = list(dict.fromkeys(_normalize_name(a, "action") for a in (actions or [])))
    if not normalized:
        raise ValidationFailedError("At least one action is required")
    return normalized


class ModuleCatalogService:
    """CRUD over modules of the global permission catalog."""

    def __init__(self, session: Session):
        self.session = session
        self.catalog = PermissionRepository(session)

    def list_modules(self) -> List[Dict[str, Any]]:
        return [
            self._describe(module, permissions)
            for module, permissions in self.catalog.grouped().items()
        ]

    def get_module(self, name: str) -> Dict[str, Any]:
        name = _normalize_name(name, "module")
        permissions = self.catalog.list_module(name)
        if not permissions:
            raise NotFoundError("Module not found")
        return self._describe(name, permissions)

    def create_module(self, name: str, actions: Iterable[str]) -> Dict[str, Any]:
        """
        Raises:
            ValidationFailedError: Empty name or actions
            ConflictError: Module already exists
        """
        name = _normalize_name(name, "module")
        actions = _normalize_actions(actions)
        if self.catalog.list_module(name):
            raise ConflictError("Module already exists")

        permissions = [self.catalog.add(name, action) for action in actions]
        logger.info("Catalog module created", extra={"module": name, "actions": actions})
        return self._describe(name, permissions)

    def update_module(
        self,
        name: str,
        new_name: Optional[str] = None,
        actions: Optional[Iterable[str]] = None,
    ) -> Dict[str, Any]:
        """
        Rename a module and/or replace its action set.

        Raises:
            NotFoundError: Module does not exist
            ConflictError: new_name is taken by another module
        """
        name = _normalize_name(name, "module")
        permissions = self.catalog.list_module(name)
        if not permissions:
            raise NotFoundError("Module not found")

        target = name
        if new_name is not None:
            target = _normalize_name(new_name, "module")
            if target != name and self.catalog.list_module(target):
                raise ConflictError("Module already exists")

        if actions is not None:
            wanted = _normalize_actions(actions)
            current = {p.action: p for p in permissions}
            for action, permission in current.items():
                if action not in wanted:
                    # Cascades to role and direct grants
                    self.session.delete(permission)
            for action in wanted:
                if action not in current:
                    self.catalog.add(name, action)
            self.session.flush()

        if target != name:
            for permission in self.catalog.list_module(name):
                permission.module = target
            self.session.flush()

        logger.info("Catalog module updated", extra={"module": name, "new_name": target})
        return self._describe(target, self.catalog.list_module(target))

    def delete_module(self, name: str) -> int:
        """
        Delete a module and every grant referencing it.

        Raises:
            NotFoundError: Module does not exist
        """
        name = _normalize_name(name, "module")
        permissions = self.catalog.list_module(name)
        if not permissions:
            raise NotFoundError("Module not found")
        for permission in permissions:
            self.session.delete(permission)
        self.session.flush()
        logger.info("Catalog module deleted", extra={"module": name, "actions": len(permissions)})
        return len(permissions)

    @staticmethod
    def _describe(module: str, permissions: List[Permission]) -> Dict[str, Any]:
        return {
            "name": module,
            "actions": [
                {"id": p.id, "action": p.action}
                for p in sorted(permissions, key=lambda p: p.action)
            ],
        }


def seed_permission_catalog(session: Session, catalog: Dict = DEFAULT_PERMISSION_CATALOG) -> int:
    """
    Insert missing default catalog entries (idempotent).

    Returns:
        Number of entries created
    """
    repository = PermissionRepository(session)
    created = 0
    for module, actions in catalog.items():
        for action in actions:
            if repository.get(module, action) is None:
                repository.add(module, action)
                created += 1
    logger.info("Permission catalog seeded", extra={"created": created})
    return created
