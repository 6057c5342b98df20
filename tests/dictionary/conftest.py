"""
Pytest fixtures for dictionary tests.
"""

import sys
import pytest
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.schema import Schema
from baotools.schema.prefixes import PFX_BAO
from baotools.vocab import TermNode, TermTree


@pytest.fixture
def schema():
    """Template with similarly named assignments at two levels."""
    schema = Schema()
    schema.append_assignment(schema.root, "assay format", PFX_BAO + "format")
    schema.append_assignment(schema.root, "assay type", PFX_BAO + "type")
    bio = schema.append_group(schema.root, "biology", PFX_BAO + "bio")
    schema.append_assignment(bio, "organism", PFX_BAO + "organism")
    schema.append_assignment(bio, "target", PFX_BAO + "target")
    return schema


@pytest.fixture
def tree():
    """Flat tree of organisms."""
    return TermTree([
        TermNode(PFX_BAO + "mammal", "mammal", in_schema=True),
        TermNode(PFX_BAO + "human", "Homo sapiens", parent=PFX_BAO + "mammal", in_schema=True),
        TermNode(PFX_BAO + "mouse", "Mus musculus", parent=PFX_BAO + "mammal", in_schema=True),
        TermNode(PFX_BAO + "rat", "Rattus norvegicus", parent=PFX_BAO + "mammal", in_schema=True),
    ])
