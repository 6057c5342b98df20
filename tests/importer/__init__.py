# Importer Test Suite
"""
Tests for keyword import:
- models: strict validation of mapping, hint and source files
- mapping: rule lookup, atomic persistence, stale rule pruning
- converter: rows to assay documents, zip export
- pipeline: the column/value decision state machine, end to end
- template_checker: template diagnostics
"""
