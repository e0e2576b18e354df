"""
Membership repository (business-scoped).

A membership id belonging to another business is simply not found here,
so cross-tenant lookups surface as 404 rather than leaking existence.
"""

from typing import List, Optional

from sqlalchemy.orm import joinedload

from que_accounting.models.membership import BusinessUser
from que_accounting.models.role import Role
from que_accounting.platform.tenant_context import membership_load_options
from que_accounting.repositories.base_repo import BaseRepository


class MembershipRepository(BaseRepository[BusinessUser]):

    def _get_model_class(self) -> type:
        return BusinessUser

    def get_with_grants(self, membership_id: str) -> Optional[BusinessUser]:
        """Membership with role grants and direct grants loaded."""
        return (
            self._scoped_query()
            .options(*membership_load_options())
            .filter(BusinessUser.id == membership_id)
            .populate_existing()
            .first()
        )

    def get_for_user(self, user_id: str) -> Optional[BusinessUser]:
        return self._scoped_query().filter(BusinessUser.user_id == user_id).first()

    def list_members(self, include_inactive: bool = True) -> List[BusinessUser]:
        query = self._scoped_query().options(
            joinedload(BusinessUser.user),
            joinedload(BusinessUser.role),
        )
        if not include_inactive:
            query = query.filter(BusinessUser.is_active.is_(True))
        return query.order_by(BusinessUser.created_at.asc()).all()

    def count_active_with_role_name(self, role_name: str) -> int:
        return (
            self._scoped_query()
            .join(Role, BusinessUser.role_id == Role.id)
            .filter(Role.name == role_name, BusinessUser.is_active.is_(True))
            .count()
        )
