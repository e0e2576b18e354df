"""
Tests for PermissionAssignmentService.

Grant and revoke are idempotent, scoped to the acting business, and feed
directly into the permission evaluator.
"""

import pytest

from que_accounting.models.membership import UserPermission
from que_accounting.platform.errors import NotFoundError, ValidationFailedError
from que_accounting.platform.rbac import PermissionEvaluator
from que_accounting.platform.tenant_context import TenantResolver
from que_accounting.services.permission_assignment_service import PermissionAssignmentService
from que_accounting.tests.factories import add_member, create_user, provision_business


@pytest.fixture
def service(db_session, business):
    return PermissionAssignmentService(db_session, business.id)


@pytest.fixture
def member(db_session, business):
    return add_member(db_session, business, create_user(db_session, "member@example.com"))


def _direct_count(db_session, membership):
    return db_session.query(UserPermission).filter_by(business_user_id=membership.id).count()


class TestGrant:

    def test_grant_actions(self, db_session, service, member):
        granted = service.grant_actions(member.id, "customer", ["read", "create"])

        assert sorted(p.action for p in granted) == ["create", "read"]
        assert _direct_count(db_session, member) == 2

    def test_grant_is_idempotent(self, db_session, service, member):
        service.grant_actions(member.id, "customer", ["read"])
        service.grant_actions(member.id, "customer", ["read"])
        service.grant_actions(member.id, "customer", ["read", "read"])

        assert _direct_count(db_session, member) == 1

    def test_module_and_actions_match_case_insensitively(self, db_session, service, member):
        granted = service.grant_actions(member.id, " Customer ", ["READ"])

        assert [(p.module, p.action) for p in granted] == [("customer", "read")]
        assert service.revoke_actions(member.id, "CUSTOMER", ["Read"]) == 1

    def test_grant_enables_evaluator(self, db_session, service, member):
        evaluator = PermissionEvaluator()
        assert evaluator.evaluate_membership(member, "customer", "read").allowed is False

        service.grant_actions(member.id, "customer", ["read"])
        reloaded = TenantResolver(db_session).load_membership(member.user_id, member.business_id)

        assert evaluator.evaluate_membership(reloaded, "customer", "read").allowed is True

    def test_unknown_actions(self, service, member):
        with pytest.raises(NotFoundError):
            service.grant_actions(member.id, "customer", ["teleport"])

    @pytest.mark.parametrize("module,actions", [("", ["read"]), ("customer", []), ("customer", ["  "])])
    def test_requires_module_and_actions(self, service, member, module, actions):
        with pytest.raises(ValidationFailedError):
            service.grant_actions(member.id, module, actions)

    def test_grant_by_ids_rejects_unknown_ids(self, service, member):
        with pytest.raises(NotFoundError):
            service.grant(member.id, ["no-such-permission"])


class TestRevoke:

    def test_revoke(self, db_session, service, member):
        service.grant_actions(member.id, "invoice", ["read", "update"])

        removed = service.revoke_actions(member.id, "invoice", ["update"])

        assert removed == 1
        assert [p.action for p in service.list_direct(member.id)] == ["read"]

    def test_revoke_is_idempotent(self, service, member):
        assert service.revoke_actions(member.id, "invoice", ["update"]) == 0
        assert service.revoke_actions(member.id, "invoice", ["update"]) == 0


@pytest.mark.security
class TestTenantScoping:

    def test_membership_of_other_business_is_not_found(self, db_session, service, catalog):
        other = provision_business(db_session, create_user(db_session, "o2@example.com"), name="Other")
        foreign = add_member(db_session, other, create_user(db_session, "foreign@example.com"))

        with pytest.raises(NotFoundError):
            service.grant_actions(foreign.id, "customer", ["read"])
        with pytest.raises(NotFoundError):
            service.revoke_actions(foreign.id, "customer", ["read"])
        with pytest.raises(NotFoundError):
            service.list_direct(foreign.id)

        assert _direct_count(db_session, foreign) == 0
