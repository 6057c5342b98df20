# BAO Tools Vocab Module
# ======================
"""
Vocabulary layer: what terms each assignment may take.

Components:
- OntologySource / InMemoryOntology: the questions asked of the ontology
- TermTree: per-assignment hierarchy of value terms
- SchemaVocab: term dictionary + trees + remap table, with a persisted dump
- validate_remappings: acyclicity check for the remap table
- compare_vocabs: tree-by-tree diff of two dumps
"""

from .ontology import (
    OntologySource,
    InMemoryOntology,
    OntologyFile,
    OntologyTerm,
)

from .term_tree import (
    TermTree,
    TermNode,
)

from .remapping import (
    StoredRemapTo,
    RemapFile,
    load_remap_file,
    validate_remappings,
    resolve_remapping,
)

from .schema_vocab import (
    SchemaVocab,
    StoredTerm,
    StoredTree,
)

from .compare import (
    compare_vocabs,
    VocabDiff,
    TreeDiff,
    TermChange,
    ChangeType,
)


__all__ = [
    # Ontology
    "OntologySource",
    "InMemoryOntology",
    "OntologyFile",
    "OntologyTerm",

    # Term Tree
    "TermTree",
    "TermNode",

    # Remapping
    "StoredRemapTo",
    "RemapFile",
    "load_remap_file",
    "validate_remappings",
    "resolve_remapping",

    # Schema Vocabulary
    "SchemaVocab",
    "StoredTerm",
    "StoredTree",

    # Comparison
    "compare_vocabs",
    "VocabDiff",
    "TreeDiff",
    "TermChange",
    "ChangeType",
]
