"""Tests for /api/customers behind the full authorization pipeline."""

import pytest

from que_accounting.tests.factories import bearer, create_user, provision_business


class TestCustomerRoutes:

    def test_crud_flow(self, client, owner, business, codec):
        headers = bearer(codec, owner)

        created = client.post("/api/customers", json={"name": "Globex", "email": "ap@globex.test"}, headers=headers)
        assert created.status_code == 201
        customer = created.json()["data"]
        assert customer["businessId"] == business.id

        updated = client.put(f"/api/customers/{customer['id']}", json={"phone": "555-0100"}, headers=headers)
        assert updated.json()["data"]["phone"] == "555-0100"
        assert updated.json()["data"]["name"] == "Globex"

        assert client.delete(f"/api/customers/{customer['id']}", headers=headers).status_code == 200
        assert client.get("/api/customers", headers=headers).json()["data"] == []

    def test_search(self, client, owner, business, codec):
        headers = bearer(codec, owner)
        client.post("/api/customers", json={"name": "Globex"}, headers=headers)
        client.post("/api/customers", json={"name": "Initech"}, headers=headers)

        names = [c["name"] for c in client.get("/api/customers?search=init", headers=headers).json()["data"]]

        assert names == ["Initech"]

    def test_subscription_headers_exposed(self, client, owner, business, codec):
        response = client.get("/api/customers", headers=bearer(codec, owner))

        assert response.headers["X-Subscription-Status"] == "ACTIVE"
        assert response.headers["X-Subscription-Active"] == "true"

    @pytest.mark.security
    def test_other_tenant_customer_is_not_found(self, client, db_session, owner, business, codec):
        created = client.post("/api/customers", json={"name": "Globex"}, headers=bearer(codec, owner))
        customer_id = created.json()["data"]["id"]

        rival = create_user(db_session, "rival@example.com")
        provision_business(db_session, rival, name="Rival Ltd")
        rival_headers = bearer(codec, rival)

        assert client.put(f"/api/customers/{customer_id}", json={"name": "Mine"}, headers=rival_headers).status_code == 404
        assert client.delete(f"/api/customers/{customer_id}", headers=rival_headers).status_code == 404
        assert client.get("/api/customers", headers=rival_headers).json()["data"] == []
