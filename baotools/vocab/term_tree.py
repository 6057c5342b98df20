# BAO Tools Vocab - Term Tree
# ===========================
"""
Per-assignment hierarchy of permitted value terms.

Nodes are kept in a URI-keyed map and point at their parent by URI, so a tree
can be copied, compared and serialised without chasing object references.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Optional, Set

from baotools.errors import StructuralError
from baotools.schema.model import Assignment, Specify
from baotools.vocab.ontology import OntologySource

logger = logging.getLogger(__name__)

_INCLUDE_SPECS = (Specify.ITEM, Specify.WHOLEBRANCH, Specify.CONTAINER)
_EXCLUDE_SPECS = (Specify.EXCLUDE, Specify.EXCLUDEBRANCH)


@dataclass
class TermNode:
    """A term within a tree; ``parent`` is the parent's URI, or None for a root."""
    uri: str
    label: str = ""
    descr: str = ""
    parent: Optional[str] = None
    depth: int = 0
    in_schema: bool = False
    is_explicit: bool = False
    child_count: int = 0
    schema_count: int = 0


def _collect_branch(
    ontology: OntologySource, root_uri: str, into: Set[str], exclude: Optional[Set[str]] = None
) -> None:
    """Add root_uri and everything below it, skipping excluded sub-branches."""
    queue = [root_uri]
    seen = set()
    while queue:
        uri = queue.pop(0)
        if uri in seen or (exclude and uri in exclude):
            continue
        seen.add(uri)
        into.add(uri)
        queue.extend(ontology.get_children(uri))


def _claim_descendants(ontology: OntologySource, uri: str, one_parent: Dict[str, str]) -> None:
    """Pin each unclaimed descendant to the parent through which it was reached."""
    queue = [uri]
    seen = set()
    while queue:
        look = queue.pop(0)
        if look in seen:
            continue
        seen.add(look)
        for child in ontology.get_children(look):
            if child not in one_parent:
                one_parent[child] = look
                queue.append(child)


class TermTree:
    """
    Hierarchy of value terms for one assignment.

    Built once from the ontology; afterwards the only mutation is insertion of
    provisional nodes via ``add_node``.
    """

    def __init__(self, nodes: Optional[Iterable[TermNode]] = None):
        self._nodes: Dict[str, TermNode] = {}
        for node in nodes or []:
            self._nodes[node.uri] = node
        self._refresh()

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    @classmethod
    def from_nodes(cls, nodes: Iterable[TermNode]) -> "TermTree":
        """Rehydrate from stored nodes; depth and counts are recomputed."""
        return cls(nodes)

    @classmethod
    def build(cls, assignment: Assignment, ontology: OntologySource) -> "TermTree":
        """
        Build the tree for an assignment from its value directives.

        Explicit exclusion beats inclusion by branch. Ancestors of included
        terms are added as context nodes that cannot be selected, and root
        chains that lead to at most one active branch are collapsed.
        """
        one_parent: Dict[str, str] = {}
        include_uri: Set[str] = set()
        exclude_uri: Set[str] = set()
        containers: Set[str] = set()

        values = []
        for value in assignment.values:
            if not ontology.has_value(value.uri):
                if value.uri:
                    logger.warning(
                        f"Assignment [{assignment.name}]: value <{value.uri}> not in ontology"
                    )
                continue
            values.append(value)
            if value.spec in _INCLUDE_SPECS:
                include_uri.add(value.uri)
                _claim_descendants(ontology, value.uri, one_parent)
                if value.spec == Specify.CONTAINER:
                    containers.add(value.uri)
            else:
                exclude_uri.add(value.uri)

        include_branch: Set[str] = set()
        exclude_branch: Set[str] = set()
        for value in values:
            if value.spec in _INCLUDE_SPECS:
                include_branch.add(value.uri)
                if value.spec != Specify.ITEM:
                    _collect_branch(ontology, value.uri, include_branch, exclude_uri)
            else:
                exclude_branch.add(value.uri)
                if value.spec == Specify.EXCLUDEBRANCH:
                    _collect_branch(ontology, value.uri, exclude_branch)

        include_uri -= exclude_uri
        include_branch -= exclude_uri
        include_branch -= (exclude_branch - include_uri)

        everything = include_uri | include_branch
        for uri in include_uri:
            _collect_branch(ontology, uri, everything, exclude_uri | exclude_branch)

        # lineage up to the ontology roots, one parent per node
        ordered = [uri for uri in ontology.all_uris() if uri in include_branch]
        for uri in ordered:
            look, seen = uri, set()
            while look not in seen and ontology.get_parents(look):
                seen.add(look)
                parent = one_parent.get(look)
                if parent is None:
                    parent = ontology.get_parents(look)[0]
                    one_parent[look] = parent
                everything.add(parent)
                look = parent

        nodes: Dict[str, TermNode] = {}
        for uri in ontology.all_uris():
            if uri not in everything or uri in nodes:
                continue
            nodes[uri] = TermNode(
                uri=uri,
                label=ontology.get_label(uri) or "",
                descr=ontology.get_descr(uri) or "",
                in_schema=uri in include_branch and uri not in containers,
                is_explicit=uri in include_uri and uri not in containers,
            )

        for node in nodes.values():
            parent = one_parent.get(node.uri)
            if parent is None or parent not in nodes:
                candidates = ontology.get_parents(node.uri)
                parent = next((p for p in candidates if p in nodes), None)
                if parent is None:
                    parent = next(
                        (p for p in candidates if p not in exclude_branch and p in nodes), None
                    )
            node.parent = parent

        tree = cls(nodes.values())
        tree._collapse_roots()
        logger.debug(
            f"Built term tree for [{assignment.name}] <{assignment.prop_uri}>: {len(tree)} nodes"
        )
        return tree

    def _collapse_roots(self) -> None:
        """Drop unselectable roots that lead to at most one active branch."""
        while True:
            changed = False
            children = self._child_index()
            for node in list(self._nodes.values()):
                if node.in_schema or node.parent is not None:
                    continue
                kids = children.get(node.uri, [])
                active = sum(1 for kid in kids if kid.schema_count > 0 or kid.in_schema)
                if active <= 1:
                    for kid in kids:
                        kid.parent = None
                    del self._nodes[node.uri]
                    changed = True
                    break
            if not changed:
                break
            self._refresh()

    # -------------------------------------------------------------------------
    # Derived state
    # -------------------------------------------------------------------------

    def _child_index(self) -> Dict[Optional[str], List[TermNode]]:
        children: Dict[Optional[str], List[TermNode]] = defaultdict(list)
        for node in self._nodes.values():
            parent = node.parent if node.parent in self._nodes else None
            children[parent].append(node)
        return children

    def _refresh(self) -> None:
        """Recompute depth and descendant counts from the parent links."""
        for node in self._nodes.values():
            node.child_count = 0
            node.schema_count = 0
        for node in self._nodes.values():
            depth = 0
            seen = {node.uri}
            look = self._nodes.get(node.parent) if node.parent else None
            while look is not None:
                if look.uri in seen:
                    raise StructuralError("term tree", f"parent cycle through <{look.uri}>")
                seen.add(look.uri)
                depth += 1
                look.child_count += 1
                if node.in_schema:
                    look.schema_count += 1
                look = self._nodes.get(look.parent) if look.parent else None
            node.depth = depth

    # -------------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------------

    def get_tree(self) -> Dict[str, TermNode]:
        """URI -> node mapping."""
        return dict(self._nodes)

    def get_node(self, uri: str) -> Optional[TermNode]:
        return self._nodes.get(uri)

    def get_flat(self) -> List[TermNode]:
        """Every node, in registration order."""
        return list(self._nodes.values())

    def get_list(self) -> List[TermNode]:
        """Every node in hierarchy order: depth first, siblings by label."""
        children = self._child_index()
        result: List[TermNode] = []

        def visit(parent: Optional[str]) -> None:
            for node in sorted(children.get(parent, []), key=lambda n: n.label.lower()):
                result.append(node)
                visit(node.uri)

        visit(None)
        return result

    def children_of(self, uri: str) -> List[TermNode]:
        return [node for node in self._nodes.values() if node.parent == uri]

    def roots(self) -> List[TermNode]:
        return [node for node in self._nodes.values() if node.parent not in self._nodes]

    def expand_ancestors(self, uri: str) -> List[str]:
        """The term and its selectable ancestors, nearest first; empty if unknown."""
        result = []
        node = self._nodes.get(uri)
        seen = set()
        while node is not None and node.uri not in seen:
            seen.add(node.uri)
            if node.in_schema:
                result.append(node.uri)
            node = self._nodes.get(node.parent) if node.parent else None
        return result

    # -------------------------------------------------------------------------
    # Mutation
    # -------------------------------------------------------------------------

    def add_node(self, parent_uri: Optional[str], label: str, descr: str, uri: str) -> TermNode:
        """
        Insert a provisional term.

        If ``parent_uri`` is not in the tree the node is still registered, as a
        root. Adding a URI that is already present returns the existing node.
        """
        existing = self._nodes.get(uri)
        if existing is not None:
            return existing

        parent = parent_uri if parent_uri in self._nodes else None
        if parent_uri and parent is None:
            logger.warning(f"Parent <{parent_uri}> not in tree: <{uri}> inserted without parent")

        node = TermNode(uri=uri, label=label or "", descr=descr or "", parent=parent, in_schema=True)
        self._nodes[uri] = node
        self._refresh()
        return node

    # -------------------------------------------------------------------------
    # Dunder
    # -------------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._nodes)

    def __contains__(self, uri: object) -> bool:
        return uri in self._nodes

    def __iter__(self) -> Iterator[TermNode]:
        return iter(self._nodes.values())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TermTree):
            return NotImplemented
        return self._nodes == other._nodes

    __hash__ = None

    def __repr__(self) -> str:
        return f"TermTree(nodes={len(self._nodes)}, roots={len(self.roots())})"
