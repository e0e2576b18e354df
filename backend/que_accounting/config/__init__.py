from que_accounting.config.settings import (
    AuthSettings,
    BootstrapAdminSettings,
    DatabaseSettings,
    Settings,
    get_settings,
    reset_settings,
)

__all__ = [
    "AuthSettings",
    "BootstrapAdminSettings",
    "DatabaseSettings",
    "Settings",
    "get_settings",
    "reset_settings",
]
