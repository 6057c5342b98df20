# BAO Tools
# =========
"""
Assay annotation templates, their term vocabularies, and keyword import.

Subpackages:
- schema: template model and URI prefixes
- vocab: term trees, schema vocabulary dumps, remappings and diffs
- dictionary: fuzzy matching of external names against the template
- importer: mapping rules and the keyword import pipeline
- settings: tool configuration
"""

__version__ = "1.0.0"
