from .settings import (
    AuthSettings,
    DatabaseSettings,
    GoogleSettings,
    LLMSettings,
    Settings,
    get_settings,
)

__all__ = [
    "AuthSettings",
    "DatabaseSettings",
    "GoogleSettings",
    "LLMSettings",
    "Settings",
    "get_settings",
]
