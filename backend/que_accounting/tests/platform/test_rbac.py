"""
Tests for the PermissionEvaluator.

Decision order: owner bypass, Admin-role bypass, role grant, direct grant,
deny. Bypasses are structural, so catalog entries added later never lock
out owners or Admins.
"""

import pytest

from que_accounting.auth.principal import StoredUserPrincipal
from que_accounting.constants.permissions import ALL_PERMISSIONS
from que_accounting.models.membership import UserPermission
from que_accounting.models.role import RolePermission
from que_accounting.platform.errors import PermissionDeniedError
from que_accounting.platform.rbac import DecisionReason, PermissionEvaluator, permission_key
from que_accounting.platform.tenant_context import BusinessSource, TenantContext
from que_accounting.repositories.permission_repository import PermissionRepository
from que_accounting.tests.factories import (
    add_member,
    create_user,
    owner_membership,
    provision_business,
    role_named,
)


@pytest.fixture
def evaluator():
    return PermissionEvaluator()


@pytest.fixture
def member(db_session, business):
    """A member holding the permissionless default role."""
    user = create_user(db_session, "member@example.com")
    return add_member(db_session, business, user)


def _permission(db_session, module, action):
    return PermissionRepository(db_session).get(module, action)


class TestBypasses:

    def test_owner_bypass_without_membership(self, evaluator, owner, business):
        decision = evaluator.evaluate(owner.id, business, None, "invoice", "delete")

        assert decision.allowed is True
        assert decision.reason == DecisionReason.OWNER_BYPASS

    def test_owner_bypass_wins_over_membership_role(self, db_session, evaluator, owner, business):
        membership = owner_membership(db_session, business)
        membership.role_id = role_named(db_session, business, "User").id
        db_session.flush()
        db_session.expire(membership, ["role"])

        decision = evaluator.evaluate(owner.id, business, membership, "customer", "create")

        assert decision.reason == DecisionReason.OWNER_BYPASS

    def test_admin_role_bypass(self, db_session, evaluator, business):
        admin = add_member(db_session, business, create_user(db_session, "admin@example.com"), role_name="Admin")

        decision = evaluator.evaluate_membership(admin, "settings", "update")

        assert decision.allowed is True
        assert decision.reason == DecisionReason.ADMIN_ROLE_BYPASS

    def test_admin_bypass_covers_modules_added_later(self, db_session, evaluator, business):
        admin = add_member(db_session, business, create_user(db_session, "admin@example.com"), role_name="Admin")
        PermissionRepository(db_session).add("reports", "read")

        assert evaluator.evaluate_membership(admin, "reports", "read").allowed is True


class TestGrants:

    def test_default_role_has_no_permissions(self, evaluator, member):
        decision = evaluator.evaluate_membership(member, "customer", "read")

        assert decision.allowed is False
        assert decision.reason == DecisionReason.DENIED

    def test_role_grant(self, db_session, evaluator, business, member):
        role = role_named(db_session, business, "User")
        role.permissions.append(RolePermission(permission=_permission(db_session, "customer", "read")))
        db_session.flush()

        assert evaluator.evaluate_membership(member, "customer", "read").reason == DecisionReason.ROLE_GRANT
        assert evaluator.evaluate_membership(member, "customer", "delete").allowed is False

    def test_direct_grant(self, db_session, evaluator, member):
        member.direct_permissions.append(UserPermission(permission=_permission(db_session, "invoice", "create")))
        db_session.flush()

        assert evaluator.evaluate_membership(member, "invoice", "create").reason == DecisionReason.DIRECT_GRANT
        assert evaluator.evaluate_membership(member, "invoice", "delete").allowed is False

    @pytest.mark.security
    def test_membership_of_other_business_grants_nothing(self, db_session, evaluator, business, member):
        other = provision_business(db_session, create_user(db_session, "x@example.com"), name="Other")

        decision = evaluator.evaluate(member.user_id, other, member, "customer", "read")

        assert decision.allowed is False

    def test_unknown_permission_denied(self, evaluator, member):
        assert evaluator.evaluate_membership(member, "nope", "read").allowed is False


class TestCheck:

    def _context(self, membership):
        return TenantContext(
            principal=StoredUserPrincipal(user=membership.user),
            business=membership.business,
            membership=membership,
            source=BusinessSource.REMEMBERED,
        )

    def test_check_raises_with_module_and_action(self, evaluator, member):
        with pytest.raises(PermissionDeniedError) as exc_info:
            evaluator.check(self._context(member), "customer", "create")

        assert exc_info.value.http_status == 403
        assert exc_info.value.message == "Permission denied: customer.create"
        assert exc_info.value.module == "customer"
        assert exc_info.value.action == "create"

    def test_check_returns_decision_when_allowed(self, db_session, evaluator, business):
        admin = owner_membership(db_session, business)

        decision = evaluator.check(self._context(admin), "customer", "create")

        assert decision.allowed is True


class TestEffectivePermissions:

    def test_owner_holds_everything(self, evaluator, owner, business):
        assert evaluator.effective_permissions(owner.id, business, None) == frozenset({ALL_PERMISSIONS})

    def test_union_of_role_and_direct(self, db_session, evaluator, business, member):
        role = role_named(db_session, business, "User")
        role.permissions.append(RolePermission(permission=_permission(db_session, "customer", "read")))
        member.direct_permissions.append(UserPermission(permission=_permission(db_session, "invoice", "read")))
        db_session.flush()

        keys = evaluator.effective_permissions(member.user_id, business, member)

        assert keys == frozenset({permission_key("customer", "read"), permission_key("invoice", "read")})

    def test_non_member_has_nothing(self, db_session, evaluator, business, catalog):
        stranger = create_user(db_session, "stranger@example.com")

        assert evaluator.effective_permissions(stranger.id, business, None) == frozenset()
