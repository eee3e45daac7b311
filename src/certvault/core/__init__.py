"""
Core module - Configuration, database, security, and utilities.
"""

from certvault.core.config import get_settings, settings
from certvault.core.database import Base, close_db, get_db, init_db
from certvault.core.exceptions import ServiceError, raise_http_error
from certvault.core.security import (
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    verify_password,
)

__all__ = [
    # Config
    "settings",
    "get_settings",
    # Database
    "Base",
    "get_db",
    "init_db",
    "close_db",
    # Errors
    "ServiceError",
    "raise_http_error",
    # Security
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
]
