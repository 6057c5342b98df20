"""
Pytest fixtures for vocabulary tests.
"""

import sys
import pytest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.schema import Schema, Specify, Value
from baotools.schema.prefixes import PFX_BAO, PFX_BAS
from baotools.vocab import InMemoryOntology, SchemaVocab

PROP_TARGET = PFX_BAO + "Prop_Target"
PROP_FORMAT = PFX_BAO + "Prop_Format"
GROUP_BIO = PFX_BAO + "Group_Bio"

ROOT = PFX_BAO + "Root"
TARGET = PFX_BAO + "Target"
PROTEIN = PFX_BAO + "Protein"
KINASE = PFX_BAO + "Kinase"
RECEPTOR = PFX_BAO + "Receptor"
GENE = PFX_BAO + "Gene"
FORMAT = PFX_BAO + "Format"
CELL = PFX_BAO + "CellBased"
FREE = PFX_BAO + "CellFree"


@pytest.fixture
def ontology():
    """
    Small value hierarchy:

        Root
        +-- Target
        |   +-- Protein
        |   |   +-- Kinase
        |   |   +-- Receptor
        |   +-- Gene
        +-- Format
            +-- CellBased
            +-- CellFree
    """
    onto = InMemoryOntology()
    onto.add_property(PROP_TARGET, "has target")
    onto.add_property(PROP_FORMAT, "has format")
    onto.add_property(GROUP_BIO, "biology")
    onto.add_value(ROOT, "root")
    onto.add_value(TARGET, "target", "what is measured", [ROOT])
    onto.add_value(PROTEIN, "protein", "", [TARGET])
    onto.add_value(KINASE, "kinase", "", [PROTEIN])
    onto.add_value(RECEPTOR, "receptor", "", [PROTEIN])
    onto.add_value(GENE, "gene", "", [TARGET])
    onto.add_value(FORMAT, "assay format", "", [ROOT])
    onto.add_value(CELL, "cell based", "", [FORMAT])
    onto.add_value(FREE, "cell free", "", [FORMAT])
    return onto


@pytest.fixture
def schema():
    """Template with a target assignment (branch minus receptor) and a format assignment."""
    schema = Schema(schema_prefix=PFX_BAS)
    bio = schema.append_group(schema.root, "biology", GROUP_BIO)
    schema.append_assignment(
        bio, "target", PROP_TARGET,
        values=[
            Value(uri=TARGET, name="target", spec=Specify.WHOLEBRANCH),
            Value(uri=RECEPTOR, name="receptor", spec=Specify.EXCLUDE),
        ],
    )
    schema.append_assignment(
        schema.root, "assay format", PROP_FORMAT,
        values=[
            Value(uri=CELL, name="cell based"),
            Value(uri=FREE, name="cell free"),
        ],
    )
    return schema


@pytest.fixture
def vocab(ontology, schema):
    """Schema vocabulary built from the fixtures."""
    return SchemaVocab.build(ontology, [schema])
