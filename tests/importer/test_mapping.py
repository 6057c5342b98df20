# Tests for MappingRules
# ======================

import json
import os
import pytest
from pathlib import Path

import sys
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from baotools.errors import StructuralError
from baotools.importer import MappingRules

from .conftest import GROUP_BIO, KINASE, PROP_NAME, PROP_TARGET


class TestLoadSave:
    """Reading and atomically rewriting the rule file."""

    def test_missing_file_gives_empty_rules(self, mapping_path):
        """Test that a new mapping starts empty and remembers its path."""
        rules = MappingRules.load(mapping_path)
        assert len(rules) == 0
        assert rules.path == mapping_path
        assert not mapping_path.exists()

    def test_round_trip(self, rules, mapping_path):
        """Test that saved rules load back identically."""
        rules.add_property("Target", PROP_TARGET, [GROUP_BIO])
        rules.add_value("Target", "kinase", KINASE, PROP_TARGET, [GROUP_BIO])
        rules.add_text_block("Description", "Summary")
        rules.save()

        again = MappingRules.load(mapping_path)
        assert again.to_dict() == rules.to_dict()
        assert len(again) == 3

    def test_uris_stored_abbreviated(self, rules, mapping_path):
        """Test that known URI stems are written in short form."""
        rules.add_property("Target", PROP_TARGET, [GROUP_BIO])
        rules.save()
        data = json.loads(mapping_path.read_text())
        assert data["properties"][0]["propURI"] == "bao:Prop_Target"
        assert data["properties"][0]["groupNest"] == ["bao:Group_Bio"]

    def test_no_temporary_files_left(self, rules, mapping_path):
        """Test that only the mapping file remains after saving."""
        rules.add_identity("AID", "pubchemAID:")
        rules.save()
        rules.save()
        assert os.listdir(mapping_path.parent) == [mapping_path.name]

    def test_failed_rename_keeps_previous_file(self, rules, mapping_path, monkeypatch):
        """Test that an interrupted save leaves the old file intact and no debris."""
        rules.add_identity("AID", "pubchemAID:")
        rules.save()
        before = mapping_path.read_text()

        def broken_replace(src, dst):
            raise OSError("disk gone")

        monkeypatch.setattr(os, "replace", broken_replace)
        rules.add_text_block("Description")
        with pytest.raises(OSError):
            rules.save()

        assert mapping_path.read_text() == before
        assert os.listdir(mapping_path.parent) == [mapping_path.name]

    def test_save_without_path(self):
        """Test that an unbound rule set needs an explicit path."""
        with pytest.raises(ValueError):
            MappingRules().save()

    def test_invalid_json(self, mapping_path):
        """Test that an unreadable file is a StructuralError."""
        mapping_path.write_text("{broken")
        with pytest.raises(StructuralError):
            MappingRules.load(mapping_path)

    def test_invalid_rule(self, mapping_path):
        """Test that a rule failing validation is a StructuralError."""
        mapping_path.write_text(json.dumps({"properties": [{"regex": "a", "colour": "red"}]}))
        with pytest.raises(StructuralError):
            MappingRules.load(mapping_path)


class TestMatching:
    """Rule lookup."""

    def test_exact_name_only(self, rules):
        """Test that rules created from names match that name exactly."""
        rules.add_property("Target (gene)", PROP_TARGET)
        assert rules.find_property("Target (gene)") is not None
        assert rules.find_property("Target (gene) 2") is None
        assert rules.find_property("Target") is None

    def test_regex_rules_fully_match(self, mapping_path):
        """Test that hand-written patterns must cover the whole name."""
        mapping_path.write_text(json.dumps({"properties": [{"regex": "Target.*", "propURI": "bao:P"}]}))
        rules = MappingRules.load(mapping_path)
        assert rules.find_property("Target gene") is not None
        assert rules.find_property("My Target") is None

    def test_first_rule_wins(self, rules):
        """Test that earlier rules take precedence."""
        first = rules.add_literal("Name", None, PROP_NAME)
        rules.add_literal("Name", "special", PROP_TARGET)
        assert rules.find_literal("Name", "special") is first

    def test_value_needs_column_and_value(self, rules):
        """Test that value rules check both the column and the value."""
        rules.add_value("Target", "kinase", KINASE, PROP_TARGET)
        assert rules.find_value("Target", "kinase") is not None
        assert rules.find_value("Target", "gene") is None
        assert rules.find_value("Other", "kinase") is None

    def test_literal_all_matches_any_value(self, rules):
        """Test that a column-wide literal accepts every value."""
        rules.add_literal("Name", None, PROP_NAME)
        assert rules.find_literal("Name", "anything at all") is not None

    def test_literal_all_matches_multiline_value(self, rules):
        """Test that a column-wide literal also accepts values spanning lines."""
        rules.add_literal("Name", None, PROP_NAME)
        assert rules.find_literal("Name", "first line\nsecond line") is not None

    def test_hand_written_wildcard_spans_lines(self, mapping_path):
        """Test that a plain .* pattern in the rule file covers line breaks."""
        mapping_path.write_text(json.dumps({"literals": [{"regex": "Name", "valueRegex": ".*", "propURI": "bao:P"}]}))
        rules = MappingRules.load(mapping_path)
        assert rules.find_literal("Name", "first line\nsecond line") is not None

    def test_reference(self, rules):
        """Test reference lookup by value pattern."""
        rules.add_reference("AID", r"AID(\d+)", "pubchemAID:", PROP_NAME)
        assert rules.find_reference("AID", "AID123") is not None
        assert rules.find_reference("AID", "123") is None

    def test_summary(self, rules):
        """Test the one-line rule count."""
        rules.add_identity("AID", "x:")
        rules.add_property("Target", None)
        assert "1 identities" in rules.summary()
        assert "1 properties" in rules.summary()


class TestPruning:
    """Removal of rules that no longer apply."""

    def test_property_for_missing_column_removed(self, rules, schema):
        """Test that a rule matching no column is dropped."""
        rules.add_property("Gone", PROP_TARGET, [GROUP_BIO])
        assert rules.prune_stale(["Target"], schema) == 1
        assert rules.properties == []

    def test_property_for_missing_assignment_removed(self, rules, schema):
        """Test that a rule pointing at an assignment the template lacks is dropped."""
        rules.add_property("Target", PROP_TARGET, ["http://example.org/elsewhere"])
        assert rules.prune_stale(["Target"], schema) == 1

    def test_exclusion_kept(self, rules, schema):
        """Test that an exclusion survives as long as its column exists."""
        rules.add_property("Notes", None)
        assert rules.prune_stale(["Notes"], schema) == 0
        assert len(rules.properties) == 1

    def test_valid_mapping_kept(self, rules, schema):
        """Test that a resolvable rule survives."""
        rules.add_property("Target", PROP_TARGET, [GROUP_BIO])
        rules.add_value("Target", "kinase", KINASE, PROP_TARGET, [GROUP_BIO])
        assert rules.prune_stale(["Target"], schema) == 0

    def test_values_of_unmapped_column_removed(self, rules, schema):
        """Test that value and literal rules go when their column loses its mapping."""
        rules.add_property("Target", None)
        rules.add_value("Target", "kinase", KINASE, PROP_TARGET, [GROUP_BIO])
        rules.add_literal("Target", None, PROP_TARGET, [GROUP_BIO])
        assert rules.prune_stale(["Target"], schema) == 2
        assert rules.values == [] and rules.literals == []

    def test_pruning_rewrites_file(self, rules, schema, mapping_path):
        """Test that the file is saved only when something was removed."""
        rules.prune_stale(["Target"], schema)
        assert not mapping_path.exists()

        rules.add_property("Gone", PROP_NAME)
        rules.prune_stale(["Target"], schema)
        assert json.loads(mapping_path.read_text())["properties"] == []
