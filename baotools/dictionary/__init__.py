# BAO Tools Dictionary Module
# ===========================
"""
Fuzzy matching of external keywords against templates and term trees.

Components:
- string_similarity: case-insensitive Levenshtein distance
- FuzzyMatcher: ranks assignments by name and terms by label/hint synonyms
"""

from .fuzzy_matcher import (
    FuzzyMatcher,
    FuzzyMatch,
    string_similarity,
)


__all__ = [
    "FuzzyMatcher",
    "FuzzyMatch",
    "string_similarity",
]
