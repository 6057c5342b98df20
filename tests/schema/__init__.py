# Schema Model Test Suite
"""
Tests for the template model:
- PrefixRegistry: URI abbreviation, immutability
- Schema: construction, group nests and labels, locators, JSON round trip
- Annotation / Assay: value-or-literal rule, order-insensitive equality
"""
