"""
Settings Helper - Read configuration from the environment

Every module reads its settings through these getters so tests can
monkeypatch the environment without reloading modules.
"""

import os
import logging
from typing import Optional

logger = logging.getLogger(__name__)

DEFAULT_DATABASE_URL = "sqlite:///./fleet.db"
DEFAULT_RELAY_BASE_URL = "http://127.0.0.1:8000/relay"
DEFAULT_NOMINATIM_USER_AGENT = "fleet-incidents/1.0"

# Development fallback only - set FLEET_ADMIN_PASSWORD_HASH in production
DEFAULT_ADMIN_PASSWORD = "admin1234"


def get_database_url() -> str:
    return os.environ.get("FLEET_DATABASE_URL", DEFAULT_DATABASE_URL)


def get_google_api_key() -> Optional[str]:
    """Google Maps key, or None when the primary provider is not configured"""
    key = os.environ.get("GOOGLE_MAPS_API_KEY", "").strip()
    return key or None


def get_relay_base_url() -> str:
    return os.environ.get("FLEET_RELAY_BASE_URL", DEFAULT_RELAY_BASE_URL).rstrip("/")


def get_nominatim_user_agent() -> str:
    return os.environ.get("NOMINATIM_USER_AGENT", DEFAULT_NOMINATIM_USER_AGENT)


def get_admin_password_hash() -> Optional[str]:
    value = os.environ.get("FLEET_ADMIN_PASSWORD_HASH", "").strip()
    return value or None


def get_admin_password() -> str:
    """
    Plaintext admin password, only used when no hash is configured.
    Falls back to the development default with a warning.
    """
    value = os.environ.get("FLEET_ADMIN_PASSWORD")
    if value:
        return value
    logger.warning(
        "Neither FLEET_ADMIN_PASSWORD_HASH nor FLEET_ADMIN_PASSWORD set - "
        "using the development default admin password."
    )
    return DEFAULT_ADMIN_PASSWORD
