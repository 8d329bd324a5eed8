"""
Settings re-export so modules can use `from app.core.config import settings`.
"""
from app.core.settings import Settings, get_settings, settings

__all__ = ["Settings", "get_settings", "settings"]
