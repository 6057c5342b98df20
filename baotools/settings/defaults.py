"""
Settings Defaults
=================
Default values for tool settings.
"""

from typing import Dict

from baotools.schema.prefixes import DEFAULT_PREFIX_MAP


DEFAULT_PREFIXES: Dict[str, str] = {pfx: stem for pfx, stem in DEFAULT_PREFIX_MAP}

DEFAULT_MAX_CANDIDATES = 10

DEFAULT_LOG_LEVEL = "INFO"

# Environment variables consulted by load_settings()
ENV_SETTINGS_FILE = "BAOTOOLS_SETTINGS"
ENV_LOG_LEVEL = "BAOTOOLS_LOG_LEVEL"
ENV_MAX_CANDIDATES = "BAOTOOLS_MAX_CANDIDATES"
