# Tests for importer file models
# ==============================

import re
import pytest
from pathlib import Path

import sys
project_root = Path(__file__).parent.parent.parent
sys.path.insert(0, str(project_root))

from pydantic import ValidationError

from baotools.importer import HintFile, MappingFile, SourceData
from baotools.importer.models import ANY_VALUE


class TestMappingFile:
    """Strict validation of the rule file."""

    def test_empty_document(self):
        """Test that every section defaults to an empty list."""
        model = MappingFile.model_validate({})
        assert model.properties == []
        assert model.text_blocks == []

    def test_unknown_top_level_key_rejected(self):
        """Test that misspelt sections are not silently ignored."""
        with pytest.raises(ValidationError):
            MappingFile.model_validate({"propertys": []})

    def test_unknown_rule_key_rejected(self):
        """Test that unexpected keys inside a rule are rejected."""
        with pytest.raises(ValidationError):
            MappingFile.model_validate({"properties": [{"regex": "a", "propURi": "bao:X"}]})

    def test_name_becomes_exact_pattern(self):
        """Test that a literal name is escaped into a regex."""
        model = MappingFile.model_validate({"properties": [{"name": "a.b (x)", "propURI": "bao:X"}]})
        assert model.properties[0].regex == r"a\.b\ \(x\)"

    def test_value_name_becomes_exact_pattern(self):
        """Test that valueName is escaped into valueRegex."""
        model = MappingFile.model_validate(
            {"values": [{"regex": "col", "valueName": "1+1", "propURI": "bao:P", "valueURI": "bao:V"}]}
        )
        assert model.values[0].value_regex == r"1\+1"

    def test_blank_uri_means_exclusion(self):
        """Test that an empty propURI is stored as None."""
        model = MappingFile.model_validate({"properties": [{"regex": "a", "propURI": ""}]})
        assert model.properties[0].prop_uri is None

    def test_invalid_regex_rejected(self):
        """Test that a broken pattern fails validation."""
        with pytest.raises(ValidationError):
            MappingFile.model_validate({"properties": [{"regex": "(unclosed"}]})

    def test_reference_needs_group(self):
        """Test that a reference pattern must capture the identifier."""
        with pytest.raises(ValidationError):
            MappingFile.model_validate(
                {"references": [{"regex": "col", "valueRegex": r"AID\d+", "prefix": "x:", "propURI": "bao:P"}]}
            )

    def test_literal_defaults_to_any_value(self):
        """Test that a literal rule without a value pattern matches everything."""
        model = MappingFile.model_validate({"literals": [{"regex": "col", "propURI": "bao:P"}]})
        assert model.literals[0].value_regex == ANY_VALUE
        assert re.fullmatch(ANY_VALUE, "first line\nsecond line")

    def test_assertion_requires_uris(self):
        """Test that an assertion needs both URIs."""
        with pytest.raises(ValidationError):
            MappingFile.model_validate({"assertions": [{"propURI": "bao:P"}]})

    def test_legacy_identifiers_key(self):
        """Test that the older section name is accepted."""
        model = MappingFile.model_validate({"identifiers": [{"regex": "AID", "prefix": "pubchemAID:"}]})
        assert model.identities[0].prefix == "pubchemAID:"

    def test_dump_uses_file_keys(self):
        """Test that serialisation writes the aliased key names."""
        model = MappingFile.model_validate(
            {"textBlocks": [{"regex": "Title"}], "properties": [{"regex": "a", "propURI": "bao:P"}]}
        )
        data = model.model_dump(by_alias=True)
        assert "textBlocks" in data
        assert data["properties"][0]["propURI"] == "bao:P"
        assert data["properties"][0]["groupNest"] is None


class TestSourceData:
    """Source rows."""

    def test_values_stringified_and_nulls_dropped(self):
        """Test normalisation of row values."""
        source = SourceData.model_validate({"columns": ["a", "b", "c"], "rows": [{"a": 1, "b": None, "c": "x"}]})
        assert source.rows == [{"a": "1", "c": "x"}]

    @pytest.mark.parametrize("data", [{"columns": ["a"]}, {"rows": []}])
    def test_missing_field(self, data):
        """Test that both columns and rows are required."""
        with pytest.raises(ValidationError):
            SourceData.model_validate(data)


class TestHintFile:
    """Keyword hints."""

    def test_flat_string_map(self):
        """Test a valid hints document."""
        assert HintFile.model_validate({"human": "taxon:9606"}).root == {"human": "taxon:9606"}

    def test_nested_value_rejected(self):
        """Test that hint targets must be strings."""
        with pytest.raises(ValidationError):
            HintFile.model_validate({"human": ["taxon:9606"]})
