# BAO Tools Importer Module
# =========================
"""
Bridges external tabular data into annotations that fit a template.

Components:
- MappingRules: persisted keyword -> URI rules (atomic full rewrite)
- ImportSession: column/value classification as a request/response state machine
- RowConverter / export_archive: rows -> assay documents -> zip
- TemplateChecker: diagnostics for template content
"""

from .models import (
    MappingFile,
    IdentityRule,
    TextBlockRule,
    PropertyRule,
    ValueRule,
    LiteralRule,
    ReferenceRule,
    AssertionRule,
    HintFile,
    SourceData,
    exact_pattern,
)

from .mapping import MappingRules

from .converter import (
    RowConverter,
    export_archive,
    load_hints,
    load_source,
    load_source_table,
    sanitise_filename,
)

from .pipeline import (
    ImportSession,
    ImportState,
    ColumnRequest,
    ValueRequest,
    ColumnAction,
    ValueAction,
    ColumnDecision,
    ValueDecision,
    reference_pattern,
    skip_all,
)

from .template_checker import TemplateChecker, Diagnostic


__all__ = [
    # File models
    "MappingFile",
    "IdentityRule",
    "TextBlockRule",
    "PropertyRule",
    "ValueRule",
    "LiteralRule",
    "ReferenceRule",
    "AssertionRule",
    "HintFile",
    "SourceData",
    "exact_pattern",

    # Rules
    "MappingRules",

    # Conversion
    "RowConverter",
    "export_archive",
    "load_hints",
    "load_source",
    "load_source_table",
    "sanitise_filename",

    # Session
    "ImportSession",
    "ImportState",
    "ColumnRequest",
    "ValueRequest",
    "ColumnAction",
    "ValueAction",
    "ColumnDecision",
    "ValueDecision",
    "reference_pattern",
    "skip_all",

    # Checking
    "TemplateChecker",
    "Diagnostic",
]
