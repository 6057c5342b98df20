# BAO Tools Importer - File Models
# ================================
"""
Strictly validated models for the files the import pipeline reads and writes:
the mapping rule file, the hints file and the source data file.

Any rule may be written with a literal ``name`` (or ``valueName``) instead of a
``regex`` (``valueRegex``); it is turned into an exact-match pattern.
"""

import re
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, RootModel, field_validator, model_validator


def exact_pattern(text: str) -> str:
    """Regex that matches exactly the given text."""
    return re.escape(text)


# Any value at all, line breaks included
ANY_VALUE = "(?s).*"


class _Rule(BaseModel):
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def names_to_patterns(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        name = data.pop("name", None)
        if name:
            data["regex"] = exact_pattern(name)
        value_name = data.pop("valueName", None)
        if value_name:
            data["valueRegex"] = exact_pattern(value_name)
        return data


def _check_regex(value: str) -> str:
    try:
        re.compile(value)
    except re.error as e:
        raise ValueError(f"invalid regular expression /{value}/: {e}")
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    return value or None


class IdentityRule(_Rule):
    """Column whose value becomes the unique ID, behind a prefix."""
    regex: str
    prefix: str = ""

    check_regex = field_validator("regex")(_check_regex)


class TextBlockRule(_Rule):
    """Column copied into the free-text section, optionally under a title."""
    regex: str
    title: str = ""

    check_regex = field_validator("regex")(_check_regex)


class PropertyRule(_Rule):
    """Column -> assignment; a null propURI permanently excludes the column."""
    regex: str
    prop_uri: Optional[str] = Field(default=None, alias="propURI")
    group_nest: Optional[List[str]] = Field(default=None, alias="groupNest")

    check_regex = field_validator("regex")(_check_regex)
    check_prop_uri = field_validator("prop_uri")(_blank_to_none)


class ValueRule(PropertyRule):
    """Column + value -> term URI; a null valueURI permanently excludes the value."""
    value_regex: str = Field(alias="valueRegex")
    value_uri: Optional[str] = Field(default=None, alias="valueURI")

    check_value_regex = field_validator("value_regex")(_check_regex)
    check_value_uri = field_validator("value_uri")(_blank_to_none)


class LiteralRule(PropertyRule):
    """Column + value passed through as a literal annotation."""
    value_regex: str = Field(default=ANY_VALUE, alias="valueRegex")

    check_value_regex = field_validator("value_regex")(_check_regex)


class ReferenceRule(PropertyRule):
    """Column + value reduced to an identifier: prefix + first regex group."""
    value_regex: str = Field(alias="valueRegex")
    prefix: str = ""

    check_value_regex = field_validator("value_regex")(_check_regex)

    @field_validator("value_regex")
    @classmethod
    def check_group(cls, value: str) -> str:
        if re.compile(value).groups < 1:
            raise ValueError(f"reference pattern /{value}/ must capture a group")
        return value


class AssertionRule(_Rule):
    """A value annotation added to every converted row."""
    prop_uri: str = Field(alias="propURI")
    group_nest: Optional[List[str]] = Field(default=None, alias="groupNest")
    value_uri: str = Field(alias="valueURI")


class MappingFile(BaseModel):
    """The persisted rule set."""
    model_config = ConfigDict(extra="forbid", populate_by_name=True)

    identities: List[IdentityRule] = Field(default_factory=list)
    text_blocks: List[TextBlockRule] = Field(default_factory=list, alias="textBlocks")
    properties: List[PropertyRule] = Field(default_factory=list)
    values: List[ValueRule] = Field(default_factory=list)
    literals: List[LiteralRule] = Field(default_factory=list)
    references: List[ReferenceRule] = Field(default_factory=list)
    assertions: List[AssertionRule] = Field(default_factory=list)

    @model_validator(mode="before")
    @classmethod
    def legacy_identifiers(cls, data: Any) -> Any:
        if isinstance(data, dict) and "identifiers" in data and "identities" not in data:
            data = dict(data)
            data["identities"] = data.pop("identifiers")
        return data


class HintFile(RootModel[Dict[str, str]]):
    """Flat map of external keyword -> term URI (possibly abbreviated)."""
    pass


class SourceData(BaseModel):
    """Raw tabular input: column names and one keyword -> value object per row."""
    model_config = ConfigDict(extra="ignore")

    columns: List[str]
    rows: List[Dict[str, Any]]

    @field_validator("rows")
    @classmethod
    def stringify(cls, rows: List[Dict[str, Any]]) -> List[Dict[str, str]]:
        """Values become strings; nulls are dropped."""
        return [
            {str(key): str(value) for key, value in row.items() if value is not None}
            for row in rows
        ]
