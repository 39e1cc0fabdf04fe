from .app import AppSettings, ReleasesSettings, SettingsDep, get_app_settings

__all__ = (
    "AppSettings",
    "ReleasesSettings",
    "SettingsDep",
    "get_app_settings",
)
