# BAO Tools Vocab - Schema Vocabulary
# ===================================
"""
Aggregate store of everything needed to annotate against a set of templates
without loading the ontology: the flat term dictionary, one term tree per
distinct assignment signature, and the remap table.

Persisted as a JSON dump (gzip-compressed when the filename ends in ``.gz``).
Serialising the same content always produces the same bytes.
"""

import gzip
import json
import logging
from collections import Counter
from dataclasses import dataclass
from pathlib import Path
from typing import Any, BinaryIO, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from baotools.errors import StructuralError
from baotools.schema.model import Assignment, Schema
from baotools.vocab.ontology import OntologySource
from baotools.vocab.remapping import (
    StoredRemapTo,
    edges_to_dict,
    resolve_remapping,
    validate_remappings,
)
from baotools.vocab.term_tree import TermNode, TermTree

logger = logging.getLogger(__name__)

TreeKey = Tuple[str, str, Tuple[str, ...]]


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass
class StoredTerm:
    """Flattened, persisted projection of a term."""
    uri: str
    label: str = ""
    descr: str = ""


@dataclass(eq=False)
class StoredTree:
    """A term tree tagged with the assignment signature it belongs to."""
    schema_prefix: str
    prop_uri: str
    group_nest: Tuple[str, ...]
    locator: str
    tree: TermTree
    assignment: Optional[Assignment] = None

    @property
    def key(self) -> TreeKey:
        return (self.schema_prefix, self.prop_uri, tuple(self.group_nest))

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, StoredTree):
            return NotImplemented
        return self.key == other.key and self.locator == other.locator and self.tree == other.tree

    __hash__ = None


# =============================================================================
# DUMP FORMAT
# =============================================================================

class _DumpTree(BaseModel):
    model_config = ConfigDict(extra="forbid")

    schemaPrefix: str
    propURI: str
    groupNest: List[str] = Field(default_factory=list)
    locator: str = ""
    nodes: List[Tuple[int, int, bool, bool]] = Field(default_factory=list)


class _DumpRemap(BaseModel):
    model_config = ConfigDict(extra="forbid")

    fromURI: str
    toURI: Optional[str]


class _Dump(BaseModel):
    model_config = ConfigDict(extra="forbid")

    version: int = 1
    prefixes: List[str] = Field(default_factory=list)
    terms: List[Tuple[int, str, str, str]] = Field(default_factory=list)
    trees: List[_DumpTree] = Field(default_factory=list)
    remappings: List[_DumpRemap] = Field(default_factory=list)


def _stem_split(uri: str) -> int:
    return max(uri.rfind("/"), uri.rfind("#"))


# =============================================================================
# SCHEMA VOCABULARY
# =============================================================================

class SchemaVocab:
    """
    Term dictionary, per-assignment trees and remap table.

    Usage:
        vocab = SchemaVocab.build(ontology, [schema])
        vocab.save("vocab.dump.gz")
        again = SchemaVocab.load("vocab.dump.gz", [schema])
    """

    DUMP_VERSION = 1

    def __init__(
        self,
        terms: Optional[Iterable[StoredTerm]] = None,
        trees: Optional[Iterable[StoredTree]] = None,
        remappings: Optional[Mapping[str, Optional[str]]] = None,
    ):
        remap = dict(remappings or {})
        validate_remappings(remap)

        self._remappings: Dict[str, Optional[str]] = remap
        self._terms: Dict[str, StoredTerm] = {}
        self._trees: List[StoredTree] = []
        self._tree_keys: Dict[TreeKey, StoredTree] = {}

        for term in terms or []:
            self._terms.setdefault(term.uri, term)
        for stored in trees or []:
            self.add_tree(stored)

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def build(
        cls,
        ontology: OntologySource,
        schemas: Sequence[Schema],
        remappings: Optional[Mapping[str, Optional[str]]] = None,
    ) -> "SchemaVocab":
        """
        Distil trees and terms from the ontology for the given templates.

        Assignments that share a (schema prefix, property, group nest)
        signature share one tree.

        Raises:
            CycleError: if the remap table is not acyclic
        """
        validate_remappings(remappings or {})

        trees: List[StoredTree] = []
        seen: Dict[TreeKey, StoredTree] = {}
        all_uris = set()

        for schema in schemas:
            for assn in schema.flattened_assignments():
                key = (schema.schema_prefix, assn.prop_uri, tuple(schema.group_nest(assn)))
                if key in seen:
                    logger.debug(f"Assignment [{assn.name}] shares tree with {key}")
                    continue
                stored = StoredTree(
                    schema_prefix=schema.schema_prefix,
                    prop_uri=assn.prop_uri,
                    group_nest=key[2],
                    locator=schema.locator_id(assn),
                    tree=TermTree.build(assn, ontology),
                    assignment=assn,
                )
                seen[key] = stored
                trees.append(stored)
                if assn.prop_uri:
                    all_uris.add(assn.prop_uri)
                all_uris.update(node.uri for node in stored.tree)

        all_uris.update(ontology.all_uris())

        node_labels: Dict[str, TermNode] = {}
        for stored in trees:
            for node in stored.tree:
                node_labels.setdefault(node.uri, node)

        terms = []
        for uri in sorted(all_uris):
            label = ontology.get_label(uri)
            descr = ontology.get_descr(uri)
            if label is None and uri in node_labels:
                label, descr = node_labels[uri].label, node_labels[uri].descr
            terms.append(StoredTerm(uri=uri, label=label or "", descr=descr or ""))

        vocab = cls(terms=terms, trees=trees, remappings=remappings)
        logger.info(
            f"Built schema vocabulary: {vocab.num_terms()} terms, "
            f"{len(vocab.get_trees())} trees, {len(vocab.get_remappings())} remappings"
        )
        return vocab

    def add_tree(self, stored: StoredTree) -> None:
        """Register a tree; its key must be unique."""
        if stored.key in self._tree_keys:
            raise StructuralError("schema vocabulary", f"duplicate tree key {stored.key}")
        self._tree_keys[stored.key] = stored
        self._trees.append(stored)

    # -------------------------------------------------------------------------
    # Terms
    # -------------------------------------------------------------------------

    @property
    def prefixes(self) -> List[str]:
        """Common URI stems, derived from the term dictionary."""
        stems = set()
        for uri in self._terms:
            idx = _stem_split(uri)
            if idx >= 0:
                stems.add(uri[:idx + 1])
        return sorted(stems)

    def num_terms(self) -> int:
        return len(self._terms)

    def num_prefixes(self) -> int:
        return len(self.prefixes)

    def get_terms(self) -> List[StoredTerm]:
        return [self._terms[uri] for uri in sorted(self._terms)]

    def get_term(self, uri: str) -> Optional[StoredTerm]:
        return self._terms.get(uri)

    def get_label(self, uri: Optional[str]) -> Optional[str]:
        term = self._terms.get(uri) if uri else None
        return term.label if term else None

    def get_descr(self, uri: Optional[str]) -> Optional[str]:
        term = self._terms.get(uri) if uri else None
        return term.descr if term else None

    def add_terms(
        self, terms: Iterable[StoredTerm], remappings: Iterable[StoredRemapTo] = ()
    ) -> int:
        """
        Append new terms and merge new remappings.

        URIs already present are left alone. The merged remap table is
        validated before anything is committed.

        Returns:
            Number of genuinely new URIs added

        Raises:
            CycleError: if the merged remap table is invalid
        """
        merged = dict(self._remappings)
        merged.update(edges_to_dict(remappings))
        validate_remappings(merged)
        self._remappings = merged

        added = 0
        for term in terms:
            if term.uri in self._terms:
                continue
            self._terms[term.uri] = term
            added += 1

        logger.debug(f"Added {added} terms; {len(merged)} remappings in table")
        return added

    # -------------------------------------------------------------------------
    # Trees
    # -------------------------------------------------------------------------

    def get_trees(self) -> List[StoredTree]:
        return list(self._trees)

    def find_tree(
        self, schema_prefix: str, prop_uri: str, group_nest: Optional[Sequence[str]] = None
    ) -> Optional[StoredTree]:
        return self._tree_keys.get((schema_prefix, prop_uri, tuple(group_nest or ())))

    def tree_for_assignment(self, schema: Schema, assn: Assignment) -> Optional[TermTree]:
        stored = self.find_tree(schema.schema_prefix, assn.prop_uri, schema.group_nest(assn))
        return stored.tree if stored else None

    def single_template(self, schema_prefix: str) -> "SchemaVocab":
        """Subset holding only one template's trees and the terms they use."""
        trees = [stored for stored in self._trees if stored.schema_prefix == schema_prefix]
        used = set()
        for stored in trees:
            used.add(stored.prop_uri)
            used.update(node.uri for node in stored.tree)
        terms = [self._terms[uri] for uri in sorted(used) if uri in self._terms]
        return SchemaVocab(terms=terms, trees=trees, remappings=self._remappings)

    # -------------------------------------------------------------------------
    # Remappings
    # -------------------------------------------------------------------------

    def get_remappings(self) -> Dict[str, Optional[str]]:
        return dict(self._remappings)

    def get_remap_edges(self) -> List[StoredRemapTo]:
        return [StoredRemapTo(src, dst) for src, dst in self._remappings.items()]

    def resolve(self, uri: str) -> str:
        """Follow the remap table from uri to its current URI."""
        return resolve_remapping(uri, self._remappings)

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def to_dict(self) -> Dict[str, Any]:
        """Compact dump document; term and node references are list indices."""
        uris = sorted(self._terms)
        term_index = {uri: n for n, uri in enumerate(uris)}
        prefixes = self.prefixes
        prefix_index = {pfx: n for n, pfx in enumerate(prefixes)}

        terms = []
        for uri in uris:
            term = self._terms[uri]
            idx = _stem_split(uri)
            pfx = prefix_index.get(uri[:idx + 1], -1) if idx >= 0 else -1
            suffix = uri[idx + 1:] if pfx >= 0 else uri
            terms.append([pfx, suffix, term.label or "", term.descr or ""])

        trees = []
        for stored in self._trees:
            ordered = stored.tree.get_list()
            position = {node.uri: n for n, node in enumerate(ordered)}
            nodes = []
            for node in ordered:
                if node.uri not in term_index:
                    raise StructuralError(
                        "schema vocabulary", f"tree node <{node.uri}> missing from term dictionary"
                    )
                nodes.append([
                    term_index[node.uri],
                    position.get(node.parent, -1),
                    node.in_schema,
                    node.is_explicit,
                ])
            trees.append({
                "schemaPrefix": stored.schema_prefix,
                "propURI": stored.prop_uri,
                "groupNest": list(stored.group_nest),
                "locator": stored.locator,
                "nodes": nodes,
            })

        remappings = [
            {"fromURI": src, "toURI": self._remappings[src]} for src in sorted(self._remappings)
        ]

        return {
            "version": self.DUMP_VERSION,
            "prefixes": prefixes,
            "terms": terms,
            "trees": trees,
            "remappings": remappings,
        }

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], schemas: Sequence[Schema] = (), source: str = "dump"
    ) -> "SchemaVocab":
        """
        Rebuild from a dump document.

        With no schemas the trees are restored without assignment links; with
        schemas each tree is re-attached to its assignment by locator.

        Raises:
            StructuralError: if the document is malformed
            CycleError: if the remap table is invalid
        """
        try:
            dump = _Dump.model_validate(data)
        except ValidationError as e:
            raise StructuralError(source, str(e)) from e

        try:
            terms = []
            for pfx, suffix, label, descr in dump.terms:
                uri = dump.prefixes[pfx] + suffix if pfx >= 0 else suffix
                terms.append(StoredTerm(uri=uri, label=label, descr=descr))

            by_prefix = {schema.schema_prefix: schema for schema in schemas}
            trees = []
            for entry in dump.trees:
                ordered: List[TermNode] = []
                for term_idx, parent_idx, in_schema, is_explicit in entry.nodes:
                    if not 0 <= term_idx < len(terms):
                        raise StructuralError(source, f"term index {term_idx} out of range")
                    if not -1 <= parent_idx < len(ordered):
                        raise StructuralError(source, f"parent index {parent_idx} out of range")
                    term = terms[term_idx]
                    ordered.append(TermNode(
                        uri=term.uri,
                        label=term.label,
                        descr=term.descr,
                        parent=ordered[parent_idx].uri if parent_idx >= 0 else None,
                        in_schema=in_schema,
                        is_explicit=is_explicit,
                    ))
                assignment = None
                schema = by_prefix.get(entry.schemaPrefix)
                if schema is not None:
                    assignment = schema.obtain_assignment(entry.locator)
                    if assignment is None or assignment.prop_uri != entry.propURI:
                        matches = schema.find_assignment_by_property(entry.propURI, entry.groupNest)
                        assignment = matches[0] if matches else None
                    if assignment is None:
                        logger.warning(
                            f"No assignment for tree <{entry.propURI}> in schema <{entry.schemaPrefix}>"
                        )
                trees.append(StoredTree(
                    schema_prefix=entry.schemaPrefix,
                    prop_uri=entry.propURI,
                    group_nest=tuple(entry.groupNest),
                    locator=entry.locator,
                    tree=TermTree.from_nodes(ordered),
                    assignment=assignment,
                ))
        except IndexError as e:
            raise StructuralError(source, f"dangling index: {e}") from e

        remappings = {remap.fromURI: remap.toURI for remap in dump.remappings}
        return cls(terms=terms, trees=trees, remappings=remappings)

    def serialise(self, stream: BinaryIO) -> None:
        """Write the dump as UTF-8 JSON bytes."""
        text = json.dumps(self.to_dict(), sort_keys=True, separators=(",", ":"), ensure_ascii=False)
        stream.write(text.encode("utf-8"))

    @classmethod
    def deserialise(cls, stream: BinaryIO, schemas: Sequence[Schema] = (), source: str = "dump") -> "SchemaVocab":
        try:
            data = json.loads(stream.read().decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise StructuralError(source, f"invalid dump: {e}") from e
        return cls.from_dict(data, schemas, source=source)

    def save(self, path: Union[str, Path]) -> None:
        """Write to a file; ``.gz`` names are gzip-compressed (fixed mtime)."""
        path = Path(path)
        with open(path, "wb") as f:
            if path.suffix == ".gz":
                with gzip.GzipFile(filename="", fileobj=f, mode="wb", mtime=0) as gz:
                    self.serialise(gz)
            else:
                self.serialise(f)
        logger.info(f"Saved schema vocabulary to {path}")

    @classmethod
    def load(cls, path: Union[str, Path], schemas: Sequence[Schema] = ()) -> "SchemaVocab":
        path = Path(path)
        try:
            if path.suffix == ".gz":
                with gzip.open(path, "rb") as f:
                    vocab = cls.deserialise(f, schemas, source=str(path))
            else:
                with open(path, "rb") as f:
                    vocab = cls.deserialise(f, schemas, source=str(path))
        except (gzip.BadGzipFile, EOFError) as e:
            raise StructuralError(str(path), f"unreadable dump: {e}") from e
        logger.info(f"Loaded schema vocabulary from {path}: {vocab.num_terms()} terms")
        return vocab

    # -------------------------------------------------------------------------
    # Reporting
    # -------------------------------------------------------------------------

    def get_summary(self) -> Dict[str, Any]:
        """Concise stats about the content."""
        trees = []
        for stored in self._trees:
            depths = Counter(node.depth for node in stored.tree)
            trees.append({
                "schema_prefix": stored.schema_prefix,
                "prop_uri": stored.prop_uri,
                "group_nest": list(stored.group_nest),
                "name": stored.assignment.name if stored.assignment else None,
                "nodes": len(stored.tree),
                "depths": [depths[d] for d in range(max(depths) + 1)] if depths else [],
            })
        return {
            "terms": self.num_terms(),
            "prefixes": self.prefixes,
            "remappings": len(self._remappings),
            "trees": trees,
        }

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SchemaVocab):
            return NotImplemented
        return (
            self._terms == other._terms
            and self._trees == other._trees
            and self._remappings == other._remappings
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"SchemaVocab(terms={len(self._terms)}, trees={len(self._trees)}, "
            f"remappings={len(self._remappings)})"
        )
