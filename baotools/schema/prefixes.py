# BAO Tools Schema - URI Prefixes
# ===============================
"""
Abbreviation of ontology URIs (e.g. ``bao:BAO_0000015``).

The registry is immutable: ``with_prefix`` / ``without_prefix`` hand back a new
registry, so callers thread the one they want through their own code rather
than mutating a shared table.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple


PFX_BAO = "http://www.bioassayontology.org/bao#"
PFX_BAT = "http://www.bioassayontology.org/bat#"
PFX_BAS = "http://www.bioassayontology.org/bas#"
PFX_BAE = "http://www.bioassayexpress.org/bae#"
PFX_OBO = "http://purl.obolibrary.org/obo/"
PFX_RDF = "http://www.w3.org/1999/02/22-rdf-syntax-ns#"
PFX_RDFS = "http://www.w3.org/2000/01/rdf-schema#"
PFX_XSD = "http://www.w3.org/2001/XMLSchema#"
PFX_OWL = "http://www.w3.org/2002/07/owl#"
PFX_UO = "http://purl.org/obo/owl/UO#"
PFX_DTO = "http://www.drugtargetontology.org/dto/"
PFX_GENEID = "http://www.bioassayontology.org/geneid#"
PFX_TAXON = "http://www.bioassayontology.org/taxon#"
PFX_PROTEIN = "http://www.bioassayontology.org/protein#"
PFX_PROV = "http://www.w3.org/ns/prov#"
PFX_ASTRAZENECA = "http://rdf.astrazeneca.com/bae#"

# Order matters: the first matching entry wins
DEFAULT_PREFIX_MAP: Tuple[Tuple[str, str], ...] = (
    ("bao:", PFX_BAO),
    ("bat:", PFX_BAT),
    ("bas:", PFX_BAS),
    ("bae:", PFX_BAE),
    ("obo:", PFX_OBO),
    ("rdf:", PFX_RDF),
    ("rdfs:", PFX_RDFS),
    ("xsd:", PFX_XSD),
    ("owl:", PFX_OWL),
    ("uo:", PFX_UO),
    ("dto:", PFX_DTO),
    ("geneid:", PFX_GENEID),
    ("taxon:", PFX_TAXON),
    ("protein:", PFX_PROTEIN),
    ("prov:", PFX_PROV),
    ("az:", PFX_ASTRAZENECA),
)


@dataclass(frozen=True)
class PrefixRegistry:
    """Ordered, immutable table of abbreviation -> URI stem pairs."""
    entries: Tuple[Tuple[str, str], ...] = DEFAULT_PREFIX_MAP

    @classmethod
    def from_mapping(cls, mapping: Dict[str, str]) -> "PrefixRegistry":
        """Create a registry from an ``{abbrev: stem}`` mapping (insertion order kept)."""
        return cls(entries=tuple((pfx, stem) for pfx, stem in mapping.items()))

    def collapse(self, uri: Optional[str]) -> Optional[str]:
        """Replace a known URI stem with its abbreviation; unknown URIs pass through."""
        if uri is None:
            return None
        for pfx, stem in self.entries:
            if uri.startswith(stem):
                return pfx + uri[len(stem):]
        return uri

    def expand(self, uri: Optional[str]) -> Optional[str]:
        """Replace a known abbreviation with its full URI stem."""
        if uri is None:
            return None
        for pfx, stem in self.entries:
            if uri.startswith(pfx):
                return stem + uri[len(pfx):]
        return uri

    def collapse_all(self, uris: Optional[Iterable[str]]) -> Optional[List[str]]:
        """Collapse every URI in the list; empty or missing lists become None."""
        if not uris:
            return None
        return [self.collapse(uri) for uri in uris]

    def expand_all(self, uris: Optional[Iterable[str]]) -> Optional[List[str]]:
        """Expand every URI in the list; empty or missing lists become None."""
        if not uris:
            return None
        return [self.expand(uri) for uri in uris]

    def with_prefix(self, prefix: str, stem: str) -> "PrefixRegistry":
        """Return a registry with the prefix added (or its stem replaced)."""
        kept = tuple((pfx, st) for pfx, st in self.entries if pfx != prefix)
        return PrefixRegistry(entries=kept + ((prefix, stem),))

    def without_prefix(self, prefix: str) -> "PrefixRegistry":
        """Return a registry lacking the given prefix."""
        return PrefixRegistry(entries=tuple((pfx, st) for pfx, st in self.entries if pfx != prefix))

    def to_dict(self) -> Dict[str, str]:
        return {pfx: stem for pfx, stem in self.entries}

    def __contains__(self, prefix: str) -> bool:
        return any(pfx == prefix for pfx, _ in self.entries)

    def __len__(self) -> int:
        return len(self.entries)


DEFAULT_REGISTRY = PrefixRegistry()
