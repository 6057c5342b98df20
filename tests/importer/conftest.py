"""
Pytest fixtures for importer tests.
"""

import sys
import pytest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.importer import MappingRules, SourceData
from baotools.schema import Schema, Specify, Suggestions, Value
from baotools.schema.prefixes import PFX_BAO, PFX_BAS
from baotools.settings import ToolSettings
from baotools.vocab import InMemoryOntology, SchemaVocab

PROP_NAME = PFX_BAO + "Prop_Name"
PROP_TARGET = PFX_BAO + "Prop_Target"
PROP_FORMAT = PFX_BAO + "Prop_Format"
GROUP_BIO = PFX_BAO + "Group_Bio"
GROUP_CTRL = PFX_BAO + "Group_Control"

TARGET = PFX_BAO + "Target"
PROTEIN = PFX_BAO + "Protein"
KINASE = PFX_BAO + "Kinase"
GENE = PFX_BAO + "Gene"
CELL = PFX_BAO + "CellBased"
FREE = PFX_BAO + "CellFree"


@pytest.fixture
def ontology():
    """Target branch (protein > kinase, gene) and two assay formats."""
    onto = InMemoryOntology()
    for uri, label in ((PROP_NAME, "has name"), (PROP_TARGET, "has target"),
                       (PROP_FORMAT, "has format"), (GROUP_BIO, "biology"), (GROUP_CTRL, "control")):
        onto.add_property(uri, label)
    onto.add_value(TARGET, "target")
    onto.add_value(PROTEIN, "protein", "", [TARGET])
    onto.add_value(KINASE, "kinase", "", [PROTEIN])
    onto.add_value(GENE, "gene", "", [TARGET])
    onto.add_value(CELL, "cell based")
    onto.add_value(FREE, "cell free")
    return onto


@pytest.fixture
def schema():
    """
    Template:

        (root)   assay name [string], assay format
        biology  target (whole target branch)
        control  target (gene only)
    """
    schema = Schema(schema_prefix=PFX_BAS)
    schema.append_assignment(schema.root, "assay name", PROP_NAME, suggestions=Suggestions.STRING)
    schema.append_assignment(
        schema.root, "assay format", PROP_FORMAT,
        values=[Value(uri=CELL, name="cell based"), Value(uri=FREE, name="cell free")],
    )
    bio = schema.append_group(schema.root, "biology", GROUP_BIO)
    schema.append_assignment(bio, "target", PROP_TARGET, values=[Value(uri=TARGET, spec=Specify.WHOLEBRANCH)])
    ctrl = schema.append_group(schema.root, "control", GROUP_CTRL)
    schema.append_assignment(ctrl, "target", PROP_TARGET, values=[Value(uri=GENE)])
    return schema


@pytest.fixture
def vocab(ontology, schema):
    return SchemaVocab.build(ontology, [schema])


@pytest.fixture
def settings():
    """Settings independent of the environment."""
    return ToolSettings(max_candidates=5)


@pytest.fixture
def mapping_path(tmp_path):
    return tmp_path / "mapping.json"


@pytest.fixture
def rules(mapping_path):
    """Empty rule set bound to a (not yet existing) file."""
    return MappingRules.load(mapping_path)


@pytest.fixture
def source():
    """Two assays with a name, a target and a format each."""
    return SourceData(
        columns=["uniqueID", "Assay Name", "Target", "Format"],
        rows=[
            {"uniqueID": "A1", "Assay Name": "kinase screen", "Target": "kinase", "Format": "cell based"},
            {"uniqueID": "A2", "Assay Name": "gene panel", "Target": "gene", "Format": "cell free"},
        ],
    )
