"""
Permission catalog repository.

The catalog is global (not business-scoped), so this repository does not
extend BaseRepository.
"""

import logging
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from que_accounting.models.permission import Permission

logger = logging.getLogger(__name__)


class PermissionRepository:
    """Read/write access to the global permission catalog."""

    def __init__(self, db_session: Session):
        self.db_session = db_session

    def list_all(self) -> List[Permission]:
        return (
            self.db_session.query(Permission)
            .order_by(Permission.module.asc(), Permission.action.asc())
            .all()
        )

    def list_module(self, module: str) -> List[Permission]:
        return (
            self.db_session.query(Permission)
            .filter(Permission.module == module)
            .order_by(Permission.action.asc())
            .all()
        )

    def find(self, module: str, actions: Iterable[str]) -> List[Permission]:
        """Catalog entries for module restricted to the given actions."""
        actions = list(dict.fromkeys(actions))
        if not actions:
            return []
        return (
            self.db_session.query(Permission)
            .filter(Permission.module == module, Permission.action.in_(actions))
            .all()
        )

    def get_by_ids(self, permission_ids: Iterable[str]) -> List[Permission]:
        ids = list(dict.fromkeys(permission_ids))
        if not ids:
            return []
        return self.db_session.query(Permission).filter(Permission.id.in_(ids)).all()

    def get(self, module: str, action: str) -> Optional[Permission]:
        return (
            self.db_session.query(Permission)
            .filter(Permission.module == module, Permission.action == action)
            .first()
        )

    def module_names(self) -> List[str]:
        rows = self.db_session.query(Permission.module).distinct().order_by(Permission.module).all()
        return [row[0] for row in rows]

    def grouped(self) -> Dict[str, List[Permission]]:
        """Catalog grouped by module name."""
        grouped: Dict[str, List[Permission]] = {}
        for permission in self.list_all():
            grouped.setdefault(permission.module, []).append(permission)
        return grouped

    def add(self, module: str, action: str) -> Permission:
        permission = Permission(module=module, action=action)
        self.db_session.add(permission)
        self.db_session.flush()
        return permission
