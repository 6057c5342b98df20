"""
Pytest fixtures for schema model tests.
"""

import sys
import pytest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.schema import Schema, Value, Specify, Suggestions
from baotools.schema.prefixes import PFX_BAO


@pytest.fixture
def nested_schema():
    """
    Four nested groups g1 -> g2 -> g3 -> g4 under the root, with URIs u1..u4,
    and one assignment in g1 and one in g4.
    """
    schema = Schema()
    g1 = schema.append_group(schema.root, "g1", "u1")
    g2 = schema.append_group(g1, "g2", "u2")
    g3 = schema.append_group(g2, "g3", "u3")
    g4 = schema.append_group(g3, "g4", "u4")
    schema.append_assignment(g1, "top", PFX_BAO + "P1")
    schema.append_assignment(g4, "deep", PFX_BAO + "P4")
    return schema


@pytest.fixture
def blank_schema():
    """Same shape as nested_schema, but g1 has no URI."""
    schema = Schema()
    g1 = schema.append_group(schema.root, "g1", "")
    g2 = schema.append_group(g1, "g2", "u2")
    g3 = schema.append_group(g2, "g3", "u3")
    g4 = schema.append_group(g3, "g4", "u4")
    schema.append_assignment(g1, "top", PFX_BAO + "P1")
    schema.append_assignment(g4, "deep", PFX_BAO + "P4")
    return schema


@pytest.fixture
def assay_schema():
    """A small template with values and one assay."""
    schema = Schema(root_name="assay template")
    schema.root.descr = "test template"
    schema.append_assignment(
        schema.root, "assay type", PFX_BAO + "BAO_0002854", descr="kind of assay",
        values=[
            Value(uri=PFX_BAO + "BAO_0000015", name="binding", spec=Specify.WHOLEBRANCH),
            Value(uri=PFX_BAO + "BAO_0000019", name="functional", alt_labels=("func",)),
        ],
    )
    bio = schema.append_group(schema.root, "biology", PFX_BAO + "BAO_0000102", "biological context")
    schema.append_assignment(bio, "organism", PFX_BAO + "BAO_0002921", suggestions=Suggestions.STRING)
    schema.append_assignment(bio, "target", PFX_BAO + "BAO_0000211", mandatory=True)
    return schema
