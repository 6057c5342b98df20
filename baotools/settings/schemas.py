"""
Settings Schemas
================
Pydantic models for tool settings validation and serialization.
"""

from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from baotools.schema.model import Suggestions
from baotools.schema.prefixes import PrefixRegistry

from .defaults import DEFAULT_LOG_LEVEL, DEFAULT_MAX_CANDIDATES, DEFAULT_PREFIXES


class ToolSettings(BaseModel):
    """Configuration shared by the vocabulary and import tools."""
    model_config = ConfigDict(extra="forbid")

    prefixes: Dict[str, str] = Field(
        default_factory=lambda: dict(DEFAULT_PREFIXES),
        description="URI abbreviation -> stem, first match wins",
    )
    max_candidates: int = Field(default=DEFAULT_MAX_CANDIDATES, ge=1, description="Ranked choices per request")
    log_level: str = Field(default=DEFAULT_LOG_LEVEL, description="Root log level for scripts")
    dump_indent: Optional[int] = Field(default=None, ge=0, description="Indent for JSON output files")
    suggestion_modes: List[Suggestions] = Field(
        default_factory=lambda: [Suggestions.FULL],
        description="Assignment modes that get ranked term suggestions",
    )

    @field_validator("log_level")
    @classmethod
    def check_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"unknown log level: {value}")
        return level

    def prefix_registry(self) -> PrefixRegistry:
        """Immutable prefix table built from these settings."""
        return PrefixRegistry.from_mapping(self.prefixes)
