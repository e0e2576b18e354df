"""
Tests for BusinessProvisioningService.

Tests cover:
- Everything a new business needs is created together
- A failure in any step leaves nothing behind
- Switching the active business (members, owners, outsiders)
- Listing the businesses a user can act in
"""

from unittest.mock import patch

import pytest

from que_accounting.constants.permissions import catalog_keys
from que_accounting.models.business import Business
from que_accounting.models.membership import BusinessUser
from que_accounting.models.role import Role, RolePermission
from que_accounting.models.subscription import Subscription, SubscriptionStatus
from que_accounting.platform.errors import (
    MembershipDisabledError,
    NotAMemberError,
    NotFoundError,
    ProvisioningFailedError,
    ValidationFailedError,
)
from que_accounting.services.business_provisioning import BusinessProvisioningService
from que_accounting.tests.factories import add_member, create_user, provision_business, role_named


@pytest.fixture
def service(db_session):
    return BusinessProvisioningService(db_session)


class TestCreateBusiness:

    def test_creates_complete_tenant(self, db_session, service, owner):
        business = service.create_business(owner.id, "  Acme Ltd  ", email="billing@acme.test")

        assert business.name == "Acme Ltd"
        assert business.owner_id == owner.id
        assert business.is_active is False
        assert business.email == "billing@acme.test"

        subscription = db_session.query(Subscription).filter_by(business_id=business.id).one()
        assert subscription.status == SubscriptionStatus.INACTIVE
        assert subscription.expires_at is None

        roles = {r.name: r for r in db_session.query(Role).filter_by(business_id=business.id)}
        assert set(roles) == {"Admin", "User"}
        admin_keys = {rp.permission.key for rp in roles["Admin"].permissions}
        assert admin_keys == set(catalog_keys())
        assert roles["User"].permissions == []

        membership = db_session.query(BusinessUser).filter_by(business_id=business.id).one()
        assert membership.user_id == owner.id
        assert membership.role_id == roles["Admin"].id
        assert membership.is_active is True

        assert owner.active_business_id == business.id

    def test_owner_can_create_several_businesses(self, db_session, service, owner):
        first = service.create_business(owner.id, "First")
        second = service.create_business(owner.id, "Second")

        assert first.id != second.id
        assert owner.active_business_id == second.id
        assert db_session.query(Role).filter(Role.name == "Admin").count() == 2

    @pytest.mark.parametrize("name", ["", "   ", None, "x" * 256])
    def test_invalid_name(self, service, owner, name):
        with pytest.raises(ValidationFailedError):
            service.create_business(owner.id, name)

    def test_unknown_owner(self, service, catalog):
        with pytest.raises(NotFoundError):
            service.create_business("missing", "Acme")

    def test_failure_mid_provisioning_persists_nothing(self, db_session, service, owner):
        with patch.object(
            BusinessProvisioningService,
            "_grant_catalog_to_role",
            side_effect=RuntimeError("connection lost"),
        ):
            with pytest.raises(ProvisioningFailedError) as exc_info:
                service.create_business(owner.id, "Doomed")

        assert exc_info.value.http_status == 500
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert db_session.query(Business).count() == 0
        assert db_session.query(Subscription).count() == 0
        assert db_session.query(Role).count() == 0
        assert db_session.query(RolePermission).count() == 0
        assert db_session.query(BusinessUser).count() == 0
        db_session.refresh(owner)
        assert owner.active_business_id is None

    def test_session_usable_after_failed_provisioning(self, db_session, service, owner):
        with patch.object(BusinessProvisioningService, "_grant_catalog_to_role", side_effect=RuntimeError):
            with pytest.raises(ProvisioningFailedError):
                service.create_business(owner.id, "Doomed")

        business = service.create_business(owner.id, "Survivor")

        assert db_session.query(Business).one().id == business.id


class TestSwitchBusiness:

    def test_member_can_switch(self, db_session, service, business):
        user = create_user(db_session, "member@example.com")
        add_member(db_session, business, user)

        switched = service.switch_business(user, business.id)

        assert switched.id == business.id
        assert user.active_business_id == business.id

    def test_owner_without_membership_can_switch(self, db_session, service, owner, business):
        db_session.query(BusinessUser).filter_by(business_id=business.id).delete()
        owner.active_business_id = None
        db_session.flush()

        service.switch_business(owner, business.id)

        assert owner.active_business_id == business.id

    @pytest.mark.security
    def test_outsider_cannot_switch(self, db_session, service, business):
        outsider = create_user(db_session, "outsider@example.com")

        with pytest.raises(NotAMemberError):
            service.switch_business(outsider, business.id)
        assert outsider.active_business_id is None

    def test_unknown_business(self, db_session, service, owner):
        with pytest.raises(NotAMemberError):
            service.switch_business(owner, "missing")

    def test_disabled_membership_cannot_switch(self, db_session, service, business):
        user = create_user(db_session, "disabled@example.com")
        add_member(db_session, business, user, is_active=False)

        with pytest.raises(MembershipDisabledError):
            service.switch_business(user, business.id)


class TestListUserBusinesses:

    def test_lists_memberships_and_owned(self, db_session, service, owner, business):
        other = provision_business(db_session, create_user(db_session, "o2@example.com"), name="Other")
        add_member(db_session, other, owner)

        summaries = {s["name"]: s for s in service.list_user_businesses(owner)}

        assert set(summaries) == {"Acme Ltd", "Other"}
        assert summaries["Acme Ltd"]["is_owner"] is True
        assert summaries["Acme Ltd"]["role"] == "Admin"
        assert summaries["Other"]["is_owner"] is False
        assert summaries["Other"]["role"] == "User"
        assert summaries["Acme Ltd"]["subscription"]["is_active"] is True

    def test_user_role_starts_without_grants(self, db_session, business):
        assert role_named(db_session, business, "User").permissions == []
