"""
Settings Service
================
Loading of tool settings from an optional JSON file plus environment overrides.
"""

import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic import ValidationError

from baotools.errors import StructuralError

from .defaults import ENV_LOG_LEVEL, ENV_MAX_CANDIDATES, ENV_SETTINGS_FILE
from .schemas import ToolSettings

logger = logging.getLogger(__name__)


# Singleton instance
_settings: Optional[ToolSettings] = None


def load_settings(path: Optional[Union[str, Path]] = None) -> ToolSettings:
    """
    Build settings from a JSON file and the environment.

    Args:
        path: Settings file; defaults to $BAOTOOLS_SETTINGS when set

    Raises:
        StructuralError: if the file or an override fails validation
    """
    values: Dict[str, Any] = {}
    path = path or os.getenv(ENV_SETTINGS_FILE)
    if path:
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                values.update(json.load(f))
        except json.JSONDecodeError as e:
            raise StructuralError(str(path), f"invalid JSON: {e}") from e
        logger.debug(f"Read settings file {path}")

    if os.getenv(ENV_LOG_LEVEL):
        values["log_level"] = os.getenv(ENV_LOG_LEVEL)
    if os.getenv(ENV_MAX_CANDIDATES):
        values["max_candidates"] = os.getenv(ENV_MAX_CANDIDATES)

    try:
        return ToolSettings.model_validate(values)
    except ValidationError as e:
        raise StructuralError(str(path) if path else "settings", str(e)) from e


def get_settings() -> ToolSettings:
    """Get or create the process-wide settings instance."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def reset_settings() -> None:
    """Forget the cached settings (next get_settings() reloads)."""
    global _settings
    _settings = None
