# BAO Tools Vocab - Remapping
# ===========================
"""
Redirects between term URIs (renames/merges across ontology versions).

The remap table must be acyclic and every chain must end at a URI that has no
outgoing edge. A chain that reaches None is rejected just like a cycle.
"""

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterable, List, Mapping, Optional, Union

from pydantic import RootModel, ValidationError

from baotools.errors import CycleError, StructuralError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StoredRemapTo:
    """A directed redirect edge ``from_uri -> to_uri``."""
    from_uri: str
    to_uri: Optional[str]

    def to_dict(self) -> Dict[str, Optional[str]]:
        return {"fromURI": self.from_uri, "toURI": self.to_uri}


class RemapFile(RootModel[Dict[str, Optional[str]]]):
    """Flat map of fromURI -> toURI as read from a remap table file."""
    pass


def load_remap_file(path: Optional[Union[str, Path]]) -> Dict[str, Optional[str]]:
    """Read a {fromURI: toURI} remap table; no path means no remappings."""
    if not path:
        return {}
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            remappings = RemapFile.model_validate(json.load(f)).root
    except (json.JSONDecodeError, ValidationError) as e:
        raise StructuralError(str(path), str(e)) from e
    logger.info(f"Loaded {len(remappings)} remappings from {path}")
    return remappings


def edges_to_dict(edges: Iterable[StoredRemapTo]) -> Dict[str, Optional[str]]:
    """Collapse a list of edges into a lookup; later edges win."""
    return {edge.from_uri: edge.to_uri for edge in edges}


def validate_remappings(edges: Mapping[str, Optional[str]]) -> None:
    """
    Check that every redirect chain ends at a URI without an outgoing edge.

    Each chain is walked from its source while recording visited URIs. Sources
    already proven to reach a terminal are not walked again.

    Raises:
        CycleError: if a chain revisits a URI or reaches None; ``path`` starts
            at the first repeated URI (or ends with None), ``chain`` is the walk
    """
    resolved = set()
    for source in edges:
        if source in resolved:
            continue
        chain: List[Optional[str]] = [source]
        visited = {source}
        look = source
        while look in edges:
            hop = edges[look]
            if hop is None:
                chain.append(None)
                raise CycleError(path=[look, None], chain=chain)
            if hop in visited:
                chain.append(hop)
                raise CycleError(path=chain[chain.index(hop):], chain=chain)
            if hop in resolved:
                break
            chain.append(hop)
            visited.add(hop)
            look = hop
        resolved.update(uri for uri in chain if uri is not None)

    logger.debug(f"Validated {len(edges)} remappings")


def resolve_remapping(uri: str, edges: Mapping[str, Optional[str]]) -> str:
    """
    Follow redirects from ``uri`` to its terminal URI.

    The table is assumed to have passed ``validate_remappings``; a cycle or a
    null hop still raises rather than looping.
    """
    chain: List[Optional[str]] = [uri]
    look = uri
    while look in edges:
        hop = edges[look]
        if hop is None or hop in chain:
            chain.append(hop)
            raise CycleError(path=chain, chain=chain)
        chain.append(hop)
        look = hop
    return look
