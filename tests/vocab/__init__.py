# Vocabulary Test Suite
"""
Tests for the vocabulary layer:
- TermTree: building from value directives, orphan insertion, ordering
- validate_remappings: acyclic chains, cycles and null terminals
- SchemaVocab: construction, dump round trip, added terms
- compare_vocabs: tree-by-tree differences
"""
