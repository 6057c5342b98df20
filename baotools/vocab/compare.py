# BAO Tools Vocab - Vocabulary Comparison
# =======================================
# Change detection between two schema vocabulary dumps
"""
Compare two schema vocabularies tree by tree:
- Trees are paired by their (schema prefix, property, group nest) key
- For each pair, report terms added and removed
- Trees only in the new dump are wholly added, only in the old wholly removed
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from baotools.vocab.schema_vocab import SchemaVocab, StoredTree

logger = logging.getLogger(__name__)


class ChangeType(Enum):
    """Types of vocabulary changes."""
    ADDED = "added"
    REMOVED = "removed"
    MODIFIED = "modified"
    UNCHANGED = "unchanged"


@dataclass
class TermChange:
    """A term that appeared in or disappeared from a tree."""
    uri: str
    label: Optional[str]
    change_type: ChangeType

    def to_dict(self) -> Dict[str, Any]:
        return {
            'uri': self.uri,
            'label': self.label,
            'change_type': self.change_type.value,
        }


@dataclass
class TreeDiff:
    """Differences for one tree key."""
    schema_prefix: str
    prop_uri: str
    group_nest: List[str]
    change_type: ChangeType
    name: Optional[str] = None
    added: List[TermChange] = field(default_factory=list)
    removed: List[TermChange] = field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.added or self.removed)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'schema_prefix': self.schema_prefix,
            'prop_uri': self.prop_uri,
            'group_nest': self.group_nest,
            'change_type': self.change_type.value,
            'name': self.name,
            'added': [t.to_dict() for t in self.added],
            'removed': [t.to_dict() for t in self.removed],
        }


@dataclass
class VocabDiff:
    """Result of comparing two schema vocabularies."""
    trees: List[TreeDiff]
    old_term_count: int
    new_term_count: int

    @property
    def has_changes(self) -> bool:
        return any(t.change_type != ChangeType.UNCHANGED for t in self.trees)

    @property
    def total_added(self) -> int:
        return sum(len(t.added) for t in self.trees)

    @property
    def total_removed(self) -> int:
        return sum(len(t.removed) for t in self.trees)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'has_changes': self.has_changes,
            'trees': [t.to_dict() for t in self.trees],
            'old_term_count': self.old_term_count,
            'new_term_count': self.new_term_count,
        }

    def to_json(self, indent: Optional[int] = None) -> str:
        """Serialise ``to_dict``; None gives compact output."""
        return json.dumps(self.to_dict(), indent=indent)

    def get_summary(self) -> str:
        """Get a human-readable summary of changes."""
        if not self.has_changes:
            return "No vocabulary changes detected."

        counts = {ct: 0 for ct in ChangeType}
        for tree in self.trees:
            counts[tree.change_type] += 1

        parts = []
        if counts[ChangeType.ADDED]:
            parts.append(f"{counts[ChangeType.ADDED]} tree(s) added")
        if counts[ChangeType.REMOVED]:
            parts.append(f"{counts[ChangeType.REMOVED]} tree(s) removed")
        if counts[ChangeType.MODIFIED]:
            parts.append(f"{counts[ChangeType.MODIFIED]} tree(s) modified")
        parts.append(f"terms: +{self.total_added} -{self.total_removed}")
        return ", ".join(parts)

    def format_report(self, include_unchanged: bool = False) -> str:
        """Render the textual diff report."""
        lines = [self.get_summary()]
        for tree in self.trees:
            if tree.change_type == ChangeType.UNCHANGED and not include_unchanged:
                continue
            nest = " / ".join(tree.group_nest) if tree.group_nest else "(root)"
            title = f" [{tree.name}]" if tree.name else ""
            lines.append("")
            lines.append(
                f"{tree.change_type.value.upper()}: <{tree.prop_uri}>{title} in {nest} "
                f"({tree.schema_prefix})"
            )
            lines.append(f"    removed: {len(tree.removed)}, added: {len(tree.added)}")
            for term in tree.removed:
                lines.append(f"    - <{term.uri}> {term.label or ''}".rstrip())
            for term in tree.added:
                lines.append(f"    + <{term.uri}> {term.label or ''}".rstrip())
        return "\n".join(lines)


def _tree_uris(stored: StoredTree) -> Set[str]:
    return {node.uri for node in stored.tree}


def _changes(uris: Set[str], change_type: ChangeType, vocab: SchemaVocab) -> List[TermChange]:
    return [TermChange(uri, vocab.get_label(uri), change_type) for uri in sorted(uris)]


def compare_vocabs(old: SchemaVocab, new: SchemaVocab) -> VocabDiff:
    """
    Compare two schema vocabularies.

    Args:
        old: Baseline vocabulary
        new: Current vocabulary

    Returns:
        VocabDiff with one TreeDiff per tree key, new-dump order first
    """
    old_by_key = {stored.key: stored for stored in old.get_trees()}
    new_keys = set()
    diffs = []

    for cur in new.get_trees():
        new_keys.add(cur.key)
        name = cur.assignment.name if cur.assignment else None
        prev = old_by_key.get(cur.key)
        if prev is None:
            diffs.append(TreeDiff(
                cur.schema_prefix, cur.prop_uri, list(cur.group_nest), ChangeType.ADDED, name,
                added=_changes(_tree_uris(cur), ChangeType.ADDED, new),
            ))
            continue

        old_uris, new_uris = _tree_uris(prev), _tree_uris(cur)
        added = _changes(new_uris - old_uris, ChangeType.ADDED, new)
        removed = _changes(old_uris - new_uris, ChangeType.REMOVED, old)
        change_type = ChangeType.MODIFIED if (added or removed) else ChangeType.UNCHANGED
        diffs.append(TreeDiff(
            cur.schema_prefix, cur.prop_uri, list(cur.group_nest), change_type, name,
            added=added, removed=removed,
        ))

    for prev in old.get_trees():
        if prev.key in new_keys:
            continue
        name = prev.assignment.name if prev.assignment else None
        diffs.append(TreeDiff(
            prev.schema_prefix, prev.prop_uri, list(prev.group_nest), ChangeType.REMOVED, name,
            removed=_changes(_tree_uris(prev), ChangeType.REMOVED, old),
        ))

    diff = VocabDiff(trees=diffs, old_term_count=old.num_terms(), new_term_count=new.num_terms())
    logger.info(f"Vocabulary comparison: {diff.get_summary()}")
    return diff
