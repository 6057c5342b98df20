# BAO Tools Settings Module
"""
Centralized settings for the vocabulary and import tools.
Provides validation, environment overrides and the URI prefix table.
"""

from .service import get_settings, load_settings, reset_settings
from .schemas import ToolSettings

__all__ = [
    "ToolSettings",
    "get_settings",
    "load_settings",
    "reset_settings",
]
