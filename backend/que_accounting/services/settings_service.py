"""
Business settings for the resolved business.

save() creates the row on first use and updates it afterwards; callers
decide which permission the create path needs via exists().
"""

import logging
from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from que_accounting.models.business_settings import BusinessSettings
from que_accounting.repositories.settings_repository import SettingsRepository

logger = logging.getLogger(__name__)

SETTINGS_FIELDS = (
    "company_name",
    "company_logo",
    "email",
    "phone",
    "address",
    "trn",
    "bank_name",
    "account_name",
    "iban",
    "swift_code",
)


class SettingsService:

    def __init__(self, session: Session, business_id: str):
        self.business_id = business_id
        self.repository = SettingsRepository(session, business_id)

    def get(self) -> Optional[BusinessSettings]:
        return self.repository.get_current()

    def exists(self) -> bool:
        return self.repository.get_current() is not None

    def save(self, data: Dict[str, Any]) -> BusinessSettings:
        """
        Create or update the business settings.

        Only known fields are written; unknown keys are ignored.
        """
        changes = {k: v for k, v in data.items() if k in SETTINGS_FIELDS}
        current = self.repository.get_current()
        if current is None:
            settings = self.repository.create(changes)
            logger.info("Business settings created", extra={"business_id": self.business_id})
            return settings

        settings = self.repository.update(current.id, changes)
        logger.info(
            "Business settings updated",
            extra={"business_id": self.business_id, "fields": sorted(changes)},
        )
        return settings
