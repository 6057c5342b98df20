# BAO Tools Schema Module
# =======================
"""
Template model for assay annotation.

Components:
- Schema: arena-backed tree of groups and assignments, plus assays
- Group / Assignment / Value: the template building blocks
- Annotation / Assay: concrete facts recorded against a template
- PrefixRegistry: immutable URI abbreviation table
"""

from .prefixes import (
    PrefixRegistry,
    DEFAULT_PREFIX_MAP,
    DEFAULT_REGISTRY,
)

from .model import (
    Schema,
    Group,
    Assignment,
    Value,
    Annotation,
    Assay,
    Suggestions,
    Specify,
    compare_group_uri,
    remove_suffix_group_uri,
    same_group_nest,
    compatible_group_nest,
    key_prop_group,
    key_prop_group_value,
)


__all__ = [
    # Prefixes
    "PrefixRegistry",
    "DEFAULT_PREFIX_MAP",
    "DEFAULT_REGISTRY",

    # Model
    "Schema",
    "Group",
    "Assignment",
    "Value",
    "Annotation",
    "Assay",
    "Suggestions",
    "Specify",
    "compare_group_uri",
    "remove_suffix_group_uri",
    "same_group_nest",
    "compatible_group_nest",
    "key_prop_group",
    "key_prop_group_value",
]
