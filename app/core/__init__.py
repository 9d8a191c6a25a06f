"""
Core module initialization.
Exports configuration and logging utilities.
"""

from app.core.config import get_settings, Settings, EnvironmentMode, CdnProvider

__all__ = ["get_settings", "Settings", "EnvironmentMode", "CdnProvider"]
