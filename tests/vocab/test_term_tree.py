# Tests for TermTree
# ==================

import pytest
from pathlib import Path

import sys
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.errors import StructuralError
from baotools.schema import Schema, Specify, Value
from baotools.schema.prefixes import PFX_BAO
from baotools.vocab import TermNode, TermTree

from .conftest import CELL, FORMAT, FREE, GENE, KINASE, PROP_TARGET, PROTEIN, RECEPTOR, ROOT, TARGET


def _build(ontology, *values):
    schema = Schema()
    assn = schema.append_assignment(schema.root, "test", PROP_TARGET, values=list(values))
    return TermTree.build(assn, ontology)


class TestTermTreeBuild:
    """Building trees from value directives."""

    def test_whole_branch_with_exclusion(self, ontology):
        """Test that an excluded term drops out of an included branch."""
        tree = _build(
            ontology,
            Value(uri=TARGET, spec=Specify.WHOLEBRANCH),
            Value(uri=RECEPTOR, spec=Specify.EXCLUDE),
        )
        assert set(tree.get_tree()) == {TARGET, PROTEIN, KINASE, GENE}
        assert RECEPTOR not in tree

    def test_single_root_chain_collapsed(self, ontology):
        """Test that unselectable ancestors with one active branch are removed."""
        tree = _build(ontology, Value(uri=TARGET, spec=Specify.WHOLEBRANCH))
        assert ROOT not in tree
        assert tree.get_node(TARGET).parent is None
        assert tree.get_node(KINASE).depth == 2

    def test_exclude_branch(self, ontology):
        """Test that an excluded branch removes all its descendants."""
        tree = _build(
            ontology,
            Value(uri=TARGET, spec=Specify.WHOLEBRANCH),
            Value(uri=PROTEIN, spec=Specify.EXCLUDEBRANCH),
        )
        assert set(tree.get_tree()) == {TARGET, GENE}

    def test_items_keep_context_parent(self, ontology):
        """Test that sibling items keep their shared parent as a non-selectable node."""
        tree = _build(ontology, Value(uri=CELL), Value(uri=FREE))
        assert set(tree.get_tree()) == {FORMAT, CELL, FREE}
        assert tree.get_node(FORMAT).in_schema is False
        assert tree.get_node(CELL).in_schema is True
        assert tree.get_node(CELL).is_explicit is True
        assert tree.get_node(FORMAT).schema_count == 2

    def test_container_root_not_selectable(self, ontology):
        """Test that a container contributes its descendants only."""
        tree = _build(ontology, Value(uri=FORMAT, spec=Specify.CONTAINER))
        assert tree.get_node(FORMAT).in_schema is False
        assert tree.get_node(CELL).in_schema is True
        assert tree.get_node(CELL).is_explicit is False

    def test_unknown_value_ignored(self, ontology):
        """Test that values missing from the ontology are skipped."""
        tree = _build(ontology, Value(uri=PFX_BAO + "Missing"), Value(uri=GENE))
        assert PFX_BAO + "Missing" not in tree
        assert GENE in tree

    def test_empty_assignment(self, ontology):
        """Test that no values gives an empty tree."""
        assert len(_build(ontology)) == 0


class TestTermTreeAccess:
    """Lookup and enumeration."""

    @pytest.fixture
    def tree(self, ontology):
        return _build(
            ontology,
            Value(uri=TARGET, spec=Specify.WHOLEBRANCH),
            Value(uri=RECEPTOR, spec=Specify.EXCLUDE),
        )

    def test_get_list_hierarchy_order(self, tree):
        """Test depth-first order with siblings sorted by label."""
        assert [n.uri for n in tree.get_list()] == [TARGET, GENE, PROTEIN, KINASE]

    def test_get_flat_covers_all(self, tree):
        """Test that the flat list has every node once."""
        flat = tree.get_flat()
        assert len(flat) == len(tree) == 4
        assert {n.uri for n in flat} == set(tree.get_tree())

    def test_children_and_roots(self, tree):
        """Test child and root queries."""
        assert {n.uri for n in tree.children_of(TARGET)} == {PROTEIN, GENE}
        assert [n.uri for n in tree.roots()] == [TARGET]

    def test_expand_ancestors(self, tree):
        """Test the selectable lineage of a term."""
        assert tree.expand_ancestors(KINASE) == [KINASE, PROTEIN, TARGET]
        assert tree.expand_ancestors(PFX_BAO + "Nothing") == []

    def test_child_counts(self, tree):
        """Test descendant counts."""
        assert tree.get_node(TARGET).child_count == 3
        assert tree.get_node(PROTEIN).child_count == 1


class TestAddNode:
    """Provisional node insertion."""

    def test_add_under_existing_parent(self, ontology):
        """Test that a node attaches to a parent present in the tree."""
        tree = _build(ontology, Value(uri=TARGET, spec=Specify.WHOLEBRANCH))
        node = tree.add_node(PROTEIN, "phosphatase", "provisional", PFX_BAO + "Phosphatase")
        assert node.parent == PROTEIN
        assert node.depth == 2
        assert node in tree.children_of(PROTEIN)

    def test_add_with_missing_parent_is_orphan(self, ontology):
        """Test that a missing parent still inserts the node, without a parent."""
        tree = _build(ontology, Value(uri=TARGET, spec=Specify.WHOLEBRANCH))
        uri = PFX_BAO + "Provisional"
        node = tree.add_node(PFX_BAO + "NotThere", "provisional", "", uri)
        assert node.parent is None
        assert tree.get_node(uri) is node
        assert uri in [n.uri for n in tree.get_flat()]
        assert uri in [n.uri for n in tree.get_list()]
        assert node in tree.roots()

    def test_add_twice_does_not_duplicate(self, ontology):
        """Test that re-adding a URI returns the existing node."""
        tree = _build(ontology, Value(uri=TARGET, spec=Specify.WHOLEBRANCH))
        uri = PFX_BAO + "Provisional"
        first = tree.add_node(TARGET, "provisional", "", uri)
        size = len(tree)
        second = tree.add_node(PROTEIN, "other label", "", uri)
        assert second is first
        assert len(tree) == size


class TestRehydration:
    """Rebuilding trees from stored nodes."""

    def test_from_nodes_equality(self, ontology):
        """Test that a tree rebuilt from its nodes is equal to the original."""
        tree = _build(ontology, Value(uri=CELL), Value(uri=FREE))
        copy = TermTree.from_nodes(
            TermNode(n.uri, n.label, n.descr, n.parent, in_schema=n.in_schema, is_explicit=n.is_explicit)
            for n in tree.get_list()
        )
        assert copy == tree

    def test_parent_cycle_rejected(self):
        """Test that cyclic parent links are refused."""
        with pytest.raises(StructuralError):
            TermTree([TermNode("a", parent="b"), TermNode("b", parent="a")])
