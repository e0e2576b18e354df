"""Business settings repository (business-scoped, at most one row)."""

from typing import Optional

from que_accounting.models.business_settings import BusinessSettings
from que_accounting.repositories.base_repo import BaseRepository


class SettingsRepository(BaseRepository[BusinessSettings]):

    def _get_model_class(self) -> type:
        return BusinessSettings

    def get_current(self) -> Optional[BusinessSettings]:
        return self._scoped_query().first()
