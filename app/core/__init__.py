"""Core app configuration, database access, and errors."""

from app.core.config import get_settings, settings
from app.core.database import db_monitor, get_db, get_db_monitor
from app.core.errors import AppError

__all__ = ["AppError", "db_monitor", "get_settings", "settings", "get_db", "get_db_monitor"]
