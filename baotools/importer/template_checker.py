# BAO Tools Importer - Template Checker
# =====================================
# Flags template content likely to cause trouble further down the line
"""
Walks a schema group by group and reports:
- blank group/assignment/value names and missing descriptions
- non-root groups without a URI, and group URIs the ontology lacks
- assignments without a URI, or whose property is unknown
- names or URIs used twice within one group (subgroup URIs included)
- value URIs that are missing, duplicated, or unknown to the ontology

Nothing here raises: every finding becomes a Diagnostic.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from baotools.errors import UnknownTermError
from baotools.schema.model import Assignment, Group, Schema
from baotools.vocab.ontology import OntologySource

logger = logging.getLogger(__name__)


@dataclass
class Diagnostic:
    """One finding about the template."""
    group_label: List[str]
    prop_uri: Optional[str]
    issue: str
    error: Optional[UnknownTermError] = None

    @property
    def location(self) -> str:
        path = " / ".join(reversed(self.group_label)) or "(root)"
        return f"{path} <{self.prop_uri}>" if self.prop_uri else path

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_label": self.group_label,
            "prop_uri": self.prop_uri,
            "issue": self.issue,
            "unknown_uri": self.error.uri if self.error else None,
        }

    def __str__(self) -> str:
        return f"{self.location}: {self.issue}"


class TemplateChecker:
    """Checks a schema against an ontology source."""

    def __init__(self, schema: Schema, ontology: OntologySource):
        self.schema = schema
        self.ontology = ontology
        self.diagnostics: List[Diagnostic] = []

    def check(self) -> List[Diagnostic]:
        """Run every check; returns (and keeps) the diagnostics in tree order."""
        self.diagnostics = []
        self._check_group(self.schema.root)
        logger.info(f"Checked template <{self.schema.schema_prefix}>: {len(self.diagnostics)} issue(s)")
        return self.diagnostics

    def _report(
        self,
        item: Any,
        issue: str,
        prop_uri: Optional[str] = None,
        error: Optional[UnknownTermError] = None,
    ) -> None:
        label = self.schema.group_label(item)
        if isinstance(item, Group) and item.parent is not None:
            label = [item.name] + label
        diag = Diagnostic(group_label=label, prop_uri=prop_uri, issue=issue, error=error)
        logger.debug(f"Template issue: {diag}")
        self.diagnostics.append(diag)

    def _check_group(self, group: Group) -> None:
        if not group.name:
            self._report(group, "group name should not be blank")
        if group.parent is not None:
            if not group.group_uri:
                self._report(group, "group has no URI")
            elif not self.ontology.has_property(group.group_uri):
                self._report(
                    group, f"group URI <{group.group_uri}> not a known property",
                    error=UnknownTermError(group.group_uri, "property"),
                )
        if not group.descr:
            self._report(group, "group has no description")

        used_names: Set[str] = set()
        used_uris: Set[str] = set()
        assignments = self.schema.assignments_of(group)
        for assn in assignments:
            self._check_assignment(assn, used_names, used_uris)

        for n, sub in enumerate(self.schema.subgroups_of(group), start=1):
            if not sub.group_uri:
                continue
            if sub.group_uri in used_uris:
                self._report(group, f"subgroup #{n} [{sub.name}] has duplicate URI <{sub.group_uri}>")
            else:
                used_uris.add(sub.group_uri)

        for sub in self.schema.subgroups_of(group):
            self._check_group(sub)

    def _check_assignment(self, assn: Assignment, used_names: Set[str], used_uris: Set[str]) -> None:
        prop_uri = assn.prop_uri or None
        if not assn.name:
            self._report(assn, "assignment name should not be blank", prop_uri)
        elif assn.name in used_names:
            self._report(assn, f"name [{assn.name}] has been used previously in this group", prop_uri)
        else:
            used_names.add(assn.name)

        if not assn.prop_uri:
            self._report(assn, "assignment has no URI")
        elif assn.prop_uri in used_uris:
            self._report(assn, f"URI <{assn.prop_uri}> has been used previously in this group", prop_uri)
        else:
            if not self.ontology.has_property(assn.prop_uri):
                self._report(
                    assn, f"assignment property URI <{assn.prop_uri}> not a known property", prop_uri,
                    UnknownTermError(assn.prop_uri, "property"),
                )
            used_uris.add(assn.prop_uri)

        if not assn.descr:
            self._report(assn, "assignment has no description", prop_uri)

        seen: Set[str] = set()
        for n, val in enumerate(assn.values, start=1):
            if not val.name:
                self._report(assn, f"value #{n} has no name (URI <{val.uri}>)", prop_uri)
            if not val.uri:
                self._report(assn, f"value #{n} has no URI (name [{val.name}])", prop_uri)
            elif val.uri in seen:
                self._report(assn, f"value #{n} URI <{val.uri}> is duplicated", prop_uri)
            else:
                if not self.ontology.has_value(val.uri):
                    self._report(
                        assn, f"value #{n} URI <{val.uri}> not a known value", prop_uri,
                        UnknownTermError(val.uri, "value"),
                    )
                seen.add(val.uri)
