# BAO Tools Dictionary - Fuzzy Matcher
# ====================================
"""
Approximate string matching of external keywords against the template.
Uses case-insensitive Levenshtein edit distance from the RapidFuzz library.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional

from rapidfuzz.distance import Levenshtein

from baotools.schema.model import Assignment, Schema
from baotools.schema.prefixes import DEFAULT_REGISTRY, PrefixRegistry
from baotools.vocab.term_tree import TermTree

logger = logging.getLogger(__name__)


def string_similarity(a: str, b: str) -> int:
    """
    Case-insensitive edit distance with unit insert/delete/substitute costs.

    0 means identical (ignoring case); larger is less similar.
    """
    return Levenshtein.distance(a.lower(), b.lower())


@dataclass
class FuzzyMatch:
    """A single ranked candidate."""
    uri: str                # Property URI (assignments) or term URI (values)
    label: str              # Assignment name or term label
    distance: int           # Edit distance; lower is closer
    match_type: str         # "name", "label" or "hint"
    matched_text: str = ""  # The text that produced the distance
    assignment: Optional[Assignment] = field(default=None, repr=False)
    group_nest: List[str] = field(default_factory=list)
    group_label: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "uri": self.uri,
            "label": self.label,
            "distance": self.distance,
            "match_type": self.match_type,
            "matched_text": self.matched_text,
            "group_nest": self.group_nest,
            "group_label": self.group_label,
        }


class FuzzyMatcher:
    """
    Ranks assignments and terms by edit distance to external keywords.

    Hint synonyms (external keyword -> term URI) can only improve a term's
    rank: a term scores the minimum distance over its label and its hints.
    Ties keep the order in which candidates were enumerated.
    """

    def __init__(
        self,
        hints: Optional[Mapping[str, str]] = None,
        registry: PrefixRegistry = DEFAULT_REGISTRY,
    ):
        """
        Initialize matcher.

        Args:
            hints: Optional {external keyword: term URI}; URIs may be abbreviated
            registry: Prefix table used to expand abbreviated hint URIs
        """
        self.registry = registry
        self._hints: Dict[str, List[str]] = defaultdict(list)
        for keyword, uri in (hints or {}).items():
            self.add_hint(keyword, uri)

    def add_hint(self, keyword: str, uri: str) -> None:
        uri = self.registry.expand(uri)
        if keyword not in self._hints[uri]:
            self._hints[uri].append(keyword)

    def hints_for(self, uri: str) -> List[str]:
        return list(self._hints.get(uri, []))

    def __len__(self) -> int:
        return sum(len(keywords) for keywords in self._hints.values())

    def rank_assignments(
        self, schema: Schema, name: str, limit: Optional[int] = None
    ) -> List[FuzzyMatch]:
        """
        Rank every assignment in the schema by similarity of its name.

        Args:
            schema: Template to search
            name: External column name
            limit: Maximum number of results (None = all)

        Returns:
            Matches sorted most-similar first
        """
        matches = [
            FuzzyMatch(
                uri=assn.prop_uri,
                label=assn.name,
                distance=string_similarity(name, assn.name),
                match_type="name",
                matched_text=assn.name,
                assignment=assn,
                group_nest=schema.group_nest(assn),
                group_label=schema.group_label(assn),
            )
            for assn in schema.flattened_assignments()
        ]
        matches.sort(key=lambda m: m.distance)
        logger.debug(f"Ranked {len(matches)} assignments for column '{name}'")
        return matches[:limit] if limit else matches

    def rank_terms(
        self, tree: TermTree, value: str, limit: Optional[int] = None
    ) -> List[FuzzyMatch]:
        """
        Rank every node of a term tree by similarity of its label (or hints).

        Args:
            tree: Term tree of the assignment the value belongs to
            value: External value string
            limit: Maximum number of results (None = all)

        Returns:
            Matches sorted most-similar first
        """
        matches = []
        for node in tree.get_flat():
            best = FuzzyMatch(
                uri=node.uri,
                label=node.label,
                distance=string_similarity(value, node.label),
                match_type="label",
                matched_text=node.label,
            )
            for keyword in self._hints.get(node.uri, []):
                dist = string_similarity(value, keyword)
                if dist < best.distance:
                    best.distance = dist
                    best.match_type = "hint"
                    best.matched_text = keyword
            matches.append(best)

        matches.sort(key=lambda m: m.distance)
        logger.debug(f"Ranked {len(matches)} terms for value '{value}'")
        return matches[:limit] if limit else matches
