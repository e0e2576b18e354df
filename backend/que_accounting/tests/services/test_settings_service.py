"""Tests for SettingsService: one settings row per business, created on first save."""

import pytest

from que_accounting.models.business_settings import BusinessSettings
from que_accounting.services.settings_service import SettingsService
from que_accounting.tests.factories import create_user, provision_business


@pytest.fixture
def service(db_session, business):
    return SettingsService(db_session, business.id)


class TestSave:

    def test_first_save_creates(self, db_session, service, business):
        assert service.exists() is False

        settings = service.save({"company_name": "Acme Ltd", "trn": "100200300"})

        assert settings.business_id == business.id
        assert service.exists() is True

    def test_second_save_updates_same_row(self, db_session, service, business):
        first = service.save({"company_name": "Acme Ltd", "iban": "AE070331234567890123456"})

        second = service.save({"company_name": "Acme Trading"})

        assert second.id == first.id
        assert second.company_name == "Acme Trading"
        assert second.iban == "AE070331234567890123456"
        assert db_session.query(BusinessSettings).filter_by(business_id=business.id).count() == 1

    def test_unknown_and_scoping_fields_are_ignored(self, db_session, service, business):
        settings = service.save({"company_name": "Acme", "business_id": "other", "is_admin": True})

        assert settings.business_id == business.id
        assert not hasattr(settings, "is_admin")

    @pytest.mark.security
    def test_settings_are_per_business(self, db_session, service):
        other = provision_business(db_session, create_user(db_session, "o2@example.com"), name="Other")
        SettingsService(db_session, other.id).save({"company_name": "Other Co"})

        assert service.get() is None
