"""
Tests for /api/settings and /api/users/check-email.

Saving settings the first time needs settings:create on top of
settings:update; later saves need settings:update only.
"""

import pytest

from que_accounting.services.permission_assignment_service import PermissionAssignmentService
from que_accounting.tests.factories import add_member, bearer, create_user


@pytest.fixture
def member(db_session, business):
    user = create_user(db_session, "m@example.com")
    add_member(db_session, business, user)
    user.active_business_id = business.id
    db_session.flush()
    return user


def _grant(db_session, business, user, module, actions):
    service = PermissionAssignmentService(db_session, business.id)
    membership = service.memberships.get_for_user(user.id)
    service.grant_actions(membership.id, module, actions)
    db_session.flush()


class TestSettingsRoutes:

    def test_owner_creates_then_updates(self, client, owner, business, codec):
        headers = bearer(codec, owner)
        assert client.get("/api/settings", headers=headers).json()["data"] is None

        created = client.post("/api/settings", json={"companyName": "Acme Ltd", "trn": "100200300"}, headers=headers)
        assert created.status_code == 200
        assert created.json()["message"] == "Settings created successfully"

        updated = client.post("/api/settings", json={"swiftCode": "ACMEAEAD"}, headers=headers)
        assert updated.json()["message"] == "Settings updated successfully"

        data = client.get("/api/settings", headers=headers).json()["data"]
        assert data["companyName"] == "Acme Ltd"
        assert data["swiftCode"] == "ACMEAEAD"

    def test_first_save_requires_create(self, client, db_session, owner, business, codec, member):
        _grant(db_session, business, member, "settings", ["update"])

        response = client.post("/api/settings", json={"companyName": "Mine"}, headers=bearer(codec, member))

        assert response.status_code == 403
        assert response.json()["message"] == "Permission denied: settings.create"

    def test_update_only_member_can_edit_existing(self, client, db_session, owner, business, codec, member):
        client.post("/api/settings", json={"companyName": "Acme Ltd"}, headers=bearer(codec, owner))
        _grant(db_session, business, member, "settings", ["update"])

        response = client.post("/api/settings", json={"phone": "555-0100"}, headers=bearer(codec, member))

        assert response.status_code == 200
        assert response.json()["data"]["phone"] == "555-0100"

    def test_reading_requires_settings_read(self, client, codec, member):
        response = client.get("/api/settings", headers=bearer(codec, member))

        assert response.status_code == 403
        assert response.headers["X-Error-Code"] == "permission_denied"


class TestCheckEmailRoute:

    def test_found(self, client, db_session, owner, business, codec):
        create_user(db_session, "dana@example.com")

        response = client.post("/api/users/check-email", json={"email": "dana@example.com"}, headers=bearer(codec, owner))

        data = response.json()["data"]
        assert response.status_code == 200
        assert data["email"] == "dana@example.com"
        assert data["isMember"] is False
        assert "passwordHash" not in data

    def test_not_found(self, client, owner, business, codec):
        response = client.post("/api/users/check-email", json={"email": "ghost@example.com"}, headers=bearer(codec, owner))

        assert response.status_code == 404

    @pytest.mark.security
    def test_requires_user_create(self, client, db_session, codec, member):
        response = client.post("/api/users/check-email", json={"email": "owner@example.com"}, headers=bearer(codec, member))

        assert response.status_code == 403
        assert response.json()["message"] == "Permission denied: user.create"

    def test_requires_authentication(self, client):
        assert client.post("/api/users/check-email", json={"email": "a@b.co"}).status_code == 401
