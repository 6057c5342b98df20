# Dictionary Test Suite
"""
Tests for fuzzy matching of external keywords:
- string_similarity: Levenshtein fixtures and properties
- FuzzyMatcher: assignment and term ranking, hint synonyms
"""
