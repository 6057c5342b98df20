# BAO Tools Importer - Mapping Rules
# ==================================
"""
Persisted translation rules between external keywords and template URIs.

The rule file is always rewritten in full, through a temporary file in the
same directory that is renamed over the original.
"""

import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Dict, List, Optional, Pattern, Sequence, Union

from pydantic import ValidationError

from baotools.errors import StructuralError
from baotools.schema.model import Schema
from baotools.schema.prefixes import DEFAULT_REGISTRY, PrefixRegistry

from .models import (
    AssertionRule,
    IdentityRule,
    LiteralRule,
    MappingFile,
    PropertyRule,
    ReferenceRule,
    TextBlockRule,
    ValueRule,
    ANY_VALUE,
    exact_pattern,
)

logger = logging.getLogger(__name__)


class MappingRules:
    """
    Rule set backed by a JSON mapping file.

    Rules are tried in file order and the first whose pattern fully matches
    wins. URIs are stored abbreviated where the prefix table allows.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        model: Optional[MappingFile] = None,
        registry: PrefixRegistry = DEFAULT_REGISTRY,
    ):
        self.path = Path(path) if path else None
        self.model = model or MappingFile()
        self.registry = registry
        self._patterns: Dict[str, Pattern] = {}

    @classmethod
    def load(cls, path: Union[str, Path], registry: PrefixRegistry = DEFAULT_REGISTRY) -> "MappingRules":
        """
        Read a mapping file; a missing file gives an empty rule set.

        Raises:
            StructuralError: if the file is not valid JSON or fails validation
        """
        path = Path(path)
        if not path.exists():
            logger.info(f"Mapping file {path} not found: starting with no rules")
            return cls(path, registry=registry)

        try:
            with open(path, "r", encoding="utf-8") as f:
                model = MappingFile.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StructuralError(str(path), str(e)) from e

        rules = cls(path, model, registry)
        logger.info(f"Loaded mapping file {path}: {rules.summary()}")
        return rules

    def save(self, path: Optional[Union[str, Path]] = None) -> Path:
        """Rewrite the whole rule file via write-temp-then-rename."""
        target = Path(path) if path else self.path
        if target is None:
            raise ValueError("No path given for mapping rules")
        target.parent.mkdir(parents=True, exist_ok=True)

        content = json.dumps(self.to_dict(), indent=2)
        fd, tmp_name = tempfile.mkstemp(dir=str(target.parent), prefix=f".{target.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_name, target)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        self.path = target
        logger.debug(f"Saved mapping file {target}: {self.summary()}")
        return target

    def to_dict(self) -> Dict[str, List[Dict]]:
        return self.model.model_dump(by_alias=True)

    def summary(self) -> str:
        m = self.model
        return (
            f"{len(m.identities)} identities, {len(m.text_blocks)} text blocks, "
            f"{len(m.properties)} properties, {len(m.values)} values, "
            f"{len(m.literals)} literals, {len(m.references)} references, "
            f"{len(m.assertions)} assertions"
        )

    def __len__(self) -> int:
        m = self.model
        return sum(len(rules) for rules in (
            m.identities, m.text_blocks, m.properties, m.values,
            m.literals, m.references, m.assertions,
        ))

    # -------------------------------------------------------------------------
    # Rule lists
    # -------------------------------------------------------------------------

    @property
    def identities(self) -> List[IdentityRule]:
        return self.model.identities

    @property
    def text_blocks(self) -> List[TextBlockRule]:
        return self.model.text_blocks

    @property
    def properties(self) -> List[PropertyRule]:
        return self.model.properties

    @property
    def values(self) -> List[ValueRule]:
        return self.model.values

    @property
    def literals(self) -> List[LiteralRule]:
        return self.model.literals

    @property
    def references(self) -> List[ReferenceRule]:
        return self.model.references

    @property
    def assertions(self) -> List[AssertionRule]:
        return self.model.assertions

    # -------------------------------------------------------------------------
    # Matching
    # -------------------------------------------------------------------------

    def _pattern(self, regex: str) -> Pattern:
        pattern = self._patterns.get(regex)
        if pattern is None:
            pattern = self._patterns[regex] = re.compile(regex, re.DOTALL)
        return pattern

    def _matches(self, regex: str, text: str) -> bool:
        return self._pattern(regex).fullmatch(text) is not None

    def matches_name(self, rule: PropertyRule, name: str) -> bool:
        """True if the rule's column pattern accepts the name."""
        return self._matches(rule.regex, name)

    def find_identity(self, name: str) -> Optional[IdentityRule]:
        return next((r for r in self.identities if self._matches(r.regex, name)), None)

    def find_text_block(self, name: str) -> Optional[TextBlockRule]:
        return next((r for r in self.text_blocks if self._matches(r.regex, name)), None)

    def find_property(self, name: str) -> Optional[PropertyRule]:
        return next((r for r in self.properties if self._matches(r.regex, name)), None)

    def find_value(self, key: str, data: str) -> Optional[ValueRule]:
        return next(
            (r for r in self.values if self._matches(r.regex, key) and self._matches(r.value_regex, data)),
            None,
        )

    def find_literal(self, key: str, data: str) -> Optional[LiteralRule]:
        return next(
            (r for r in self.literals if self._matches(r.regex, key) and self._matches(r.value_regex, data)),
            None,
        )

    def find_reference(self, key: str, data: str) -> Optional[ReferenceRule]:
        return next(
            (r for r in self.references if self._matches(r.regex, key) and self._matches(r.value_regex, data)),
            None,
        )

    # -------------------------------------------------------------------------
    # Rule creation
    # -------------------------------------------------------------------------

    def _nest(self, group_nest: Optional[Sequence[str]]) -> Optional[List[str]]:
        return self.registry.collapse_all(group_nest)

    def add_identity(self, name: str, prefix: str) -> IdentityRule:
        rule = IdentityRule(regex=exact_pattern(name), prefix=prefix)
        self.identities.append(rule)
        return rule

    def add_text_block(self, name: str, title: str = "") -> TextBlockRule:
        rule = TextBlockRule(regex=exact_pattern(name), title=title)
        self.text_blocks.append(rule)
        return rule

    def add_property(
        self, name: str, prop_uri: Optional[str], group_nest: Optional[Sequence[str]] = None
    ) -> PropertyRule:
        """Map a column to an assignment; ``prop_uri=None`` excludes the column for good."""
        rule = PropertyRule(
            regex=exact_pattern(name),
            prop_uri=self.registry.collapse(prop_uri),
            group_nest=self._nest(group_nest),
        )
        self.properties.append(rule)
        return rule

    def add_value(
        self,
        name: str,
        value: str,
        value_uri: Optional[str],
        prop_uri: Optional[str],
        group_nest: Optional[Sequence[str]] = None,
    ) -> ValueRule:
        """Map a column value to a term; ``value_uri=None`` excludes the value for good."""
        rule = ValueRule(
            regex=exact_pattern(name),
            value_regex=exact_pattern(value),
            value_uri=self.registry.collapse(value_uri),
            prop_uri=self.registry.collapse(prop_uri),
            group_nest=self._nest(group_nest),
        )
        self.values.append(rule)
        return rule

    def add_literal(
        self,
        name: str,
        value: Optional[str],
        prop_uri: Optional[str],
        group_nest: Optional[Sequence[str]] = None,
    ) -> LiteralRule:
        """Pass a value (or, with ``value=None``, every value of the column) through as a literal."""
        rule = LiteralRule(
            regex=exact_pattern(name),
            value_regex=exact_pattern(value) if value else ANY_VALUE,
            prop_uri=self.registry.collapse(prop_uri),
            group_nest=self._nest(group_nest),
        )
        self.literals.append(rule)
        return rule

    def add_reference(
        self,
        name: str,
        value_regex: str,
        prefix: str,
        prop_uri: Optional[str],
        group_nest: Optional[Sequence[str]] = None,
    ) -> ReferenceRule:
        rule = ReferenceRule(
            regex=exact_pattern(name),
            value_regex=value_regex,
            prefix=prefix,
            prop_uri=self.registry.collapse(prop_uri),
            group_nest=self._nest(group_nest),
        )
        self.references.append(rule)
        return rule

    def add_assertion(
        self, value_uri: str, prop_uri: str, group_nest: Optional[Sequence[str]] = None
    ) -> AssertionRule:
        rule = AssertionRule(
            value_uri=self.registry.collapse(value_uri),
            prop_uri=self.registry.collapse(prop_uri),
            group_nest=self._nest(group_nest),
        )
        self.assertions.append(rule)
        return rule

    # -------------------------------------------------------------------------
    # Integrity
    # -------------------------------------------------------------------------

    def _resolves(self, rule: PropertyRule, schema: Schema) -> bool:
        """True if the rule points at an assignment the schema actually has."""
        if not rule.prop_uri:
            return False
        prop_uri = self.registry.expand(rule.prop_uri)
        group_nest = self.registry.expand_all(rule.group_nest)
        return len(schema.find_assignment_by_property(prop_uri, group_nest)) > 0

    def prune_stale(self, columns: Sequence[str], schema: Schema) -> int:
        """
        Delete property, value and literal rules that no longer apply.

        A property rule survives if some column matches it (an exclusion rule
        needs nothing more; a mapping must also resolve to an assignment). A
        value or literal rule survives if some column matches it and that
        column is mapped to a property. The file is rewritten if anything went.

        Returns:
            Number of rules deleted
        """
        mapped = {}
        for column in columns:
            prop = self.find_property(column)
            mapped[column] = prop is not None and self._resolves(prop, schema)

        def keep_property(rule: PropertyRule) -> bool:
            hits = [col for col in columns if self._matches(rule.regex, col)]
            if not hits:
                return False
            return rule.prop_uri is None or self._resolves(rule, schema)

        def keep_value(rule: PropertyRule) -> bool:
            return any(mapped[col] for col in columns if self._matches(rule.regex, col))

        deleted = 0
        for rules, keep in (
            (self.properties, keep_property),
            (self.values, keep_value),
            (self.literals, keep_value),
        ):
            survivors = [rule for rule in rules if keep(rule)]
            for rule in rules:
                if rule not in survivors:
                    logger.debug(f"Pruning stale {type(rule).__name__} /{rule.regex}/ -> {rule.prop_uri}")
            deleted += len(rules) - len(survivors)
            rules[:] = survivors

        if deleted:
            logger.info(f"Pruned {deleted} stale mapping rule(s)")
            if self.path is not None:
                self.save()
        return deleted
