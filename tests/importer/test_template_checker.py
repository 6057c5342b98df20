# Tests for TemplateChecker
# =========================

import pytest
from pathlib import Path

import sys
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.importer import TemplateChecker
from baotools.schema import Schema, Value
from baotools.schema.prefixes import PFX_BAO

from .conftest import CELL, FREE, GROUP_BIO, PROP_FORMAT, PROP_NAME, PROP_TARGET, TARGET


def _issues(schema, ontology):
    return [d.issue for d in TemplateChecker(schema, ontology).check()]


@pytest.fixture
def clean_schema():
    """A template every check passes."""
    schema = Schema()
    schema.root.descr = "all assays"
    schema.append_assignment(
        schema.root, "assay format", PROP_FORMAT, "how it is run",
        values=[Value(uri=CELL, name="cell based"), Value(uri=FREE, name="cell free")],
    )
    bio = schema.append_group(schema.root, "biology", GROUP_BIO, "biological context")
    schema.append_assignment(bio, "target", PROP_TARGET, "what is measured", values=[Value(uri=TARGET, name="target")])
    return schema


class TestTemplateChecker:
    """Diagnostics for template content."""

    def test_clean_template(self, clean_schema, ontology):
        """Test that a well formed template has no findings."""
        assert TemplateChecker(clean_schema, ontology).check() == []

    def test_missing_descriptions(self, ontology):
        """Test that groups and assignments without descriptions are reported."""
        schema = Schema()
        schema.append_assignment(schema.root, "assay name", PROP_NAME)
        issues = _issues(schema, ontology)
        assert issues == ["group has no description", "assignment has no description"]

    def test_group_problems(self, clean_schema, ontology):
        """Test blank names, missing and unknown group URIs."""
        clean_schema.append_group(clean_schema.root, "", "", "no name, no URI")
        clean_schema.append_group(clean_schema.root, "odd", PFX_BAO + "NotAProperty", "unknown URI")
        diags = TemplateChecker(clean_schema, ontology).check()
        issues = [d.issue for d in diags]
        assert "group name should not be blank" in issues
        assert "group has no URI" in issues
        unknown = next(d for d in diags if "not a known property" in d.issue)
        assert unknown.error.uri == PFX_BAO + "NotAProperty"
        assert unknown.error.kind == "property"
        assert unknown.group_label == ["odd"]

    def test_duplicate_subgroup_uri(self, clean_schema, ontology):
        """Test that two subgroups with one URI are reported on the parent."""
        clean_schema.append_group(clean_schema.root, "biology again", GROUP_BIO, "copy")
        diags = TemplateChecker(clean_schema, ontology).check()
        dup = [d for d in diags if "duplicate URI" in d.issue]
        assert len(dup) == 1
        assert dup[0].group_label == []
        assert "[biology again]" in dup[0].issue

    def test_assignment_problems(self, clean_schema, ontology):
        """Test blank, repeated and unknown assignment details."""
        root = clean_schema.root
        clean_schema.append_assignment(root, "", PROP_NAME, "blank name")
        clean_schema.append_assignment(root, "assay format", PFX_BAO + "Prop_Unknown", "same name")
        clean_schema.append_assignment(root, "no uri", "", "missing URI")
        issues = _issues(clean_schema, ontology)
        assert "assignment name should not be blank" in issues
        assert "name [assay format] has been used previously in this group" in issues
        assert "assignment has no URI" in issues
        assert f"assignment property URI <{PFX_BAO}Prop_Unknown> not a known property" in issues

    def test_duplicate_assignment_uri(self, clean_schema, ontology):
        """Test a property URI used twice in one group."""
        extra = clean_schema.append_assignment(clean_schema.root, "other", PROP_NAME, "soon a duplicate")
        extra.prop_uri = PROP_FORMAT
        issues = _issues(clean_schema, ontology)
        assert f"URI <{PROP_FORMAT}> has been used previously in this group" in issues

    def test_value_problems(self, clean_schema, ontology):
        """Test value names and URIs."""
        assn = clean_schema.assignments[0]
        assn.values.append(Value(uri=CELL, name="again"))
        assn.values.append(Value(uri="", name="nameless uri"))
        assn.values.append(Value(uri=PFX_BAO + "Mystery", name=""))
        diags = TemplateChecker(clean_schema, ontology).check()
        issues = [d.issue for d in diags]
        assert f"value #3 URI <{CELL}> is duplicated" in issues
        assert "value #4 has no URI (name [nameless uri])" in issues
        assert f"value #5 has no name (URI <{PFX_BAO}Mystery>)" in issues
        unknown = next(d for d in diags if "not a known value" in d.issue)
        assert unknown.error.uri == PFX_BAO + "Mystery"
        assert unknown.prop_uri == PROP_FORMAT

    def test_diagnostic_rendering(self, ontology):
        """Test the location prefix and dictionary form."""
        schema = Schema()
        schema.root.descr = "x"
        grp = schema.append_group(schema.root, "biology", GROUP_BIO, "x")
        schema.append_assignment(grp, "target", PROP_TARGET)
        diag = TemplateChecker(schema, ontology).check()[0]
        assert str(diag) == f"biology <{PROP_TARGET}>: assignment has no description"
        assert diag.to_dict()["unknown_uri"] is None
