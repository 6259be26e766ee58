"""Core app configuration, database, errors and locking."""

from callbook.core.config import get_settings, settings
from callbook.core.database import get_db

__all__ = ["get_settings", "settings", "get_db"]
