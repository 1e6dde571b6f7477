"""Core app configuration, database and cache."""

from app.core.cache import get_redis
from app.core.config import get_settings, settings
from app.core.database import get_db

__all__ = ["get_settings", "settings", "get_db", "get_redis"]
