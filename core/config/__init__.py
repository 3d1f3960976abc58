"""Configuration helpers for the schema administration tooling."""

from .admin_settings import DEFAULT_WEB_SERVICE_URL, AdminSettings, ClientConfError

__all__ = [
    "AdminSettings",
    "ClientConfError",
    "DEFAULT_WEB_SERVICE_URL",
]
