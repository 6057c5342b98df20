# BAO Tools Schema - Template Model
# =================================
"""
Template model: groups, assignments, values, and the assays annotated against them.

Parent links are arena indices rather than object references: a Schema owns
flat lists of groups and assignments, and each item records the index of its
parent group. Cloning is a plain deep copy and equality is structural.
"""

import copy
import json
import logging
import re
from collections import Counter
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple, Union

from baotools.errors import StructuralError
from baotools.schema.prefixes import PFX_BAS

logger = logging.getLogger(__name__)

SEP = "::"

_PTN_GROUP_INDEXED = re.compile(r"(.*)@\d+$")


class Suggestions(str, Enum):
    """How an assignment participates in term suggestion."""
    FULL = "full"            # default: use the whole term tree
    DISABLED = "disabled"    # terms are never offered as suggestions
    FIELD = "field"          # mapped to an auxiliary compound field
    URL = "url"
    ID = "id"                # identifier of another assay
    STRING = "string"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"


class Specify(str, Enum):
    """Scope of a value entry within its assignment."""
    ITEM = "item"                    # the term itself
    EXCLUDE = "exclude"              # blacklist the term
    WHOLEBRANCH = "wholebranch"      # the term and all its descendants
    EXCLUDEBRANCH = "excludebranch"  # blacklist a whole branch
    CONTAINER = "container"          # descendants only, not the term itself


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class Value:
    """A permitted value of an assignment."""
    uri: str = ""
    name: str = ""
    descr: str = ""
    spec: Specify = Specify.ITEM
    alt_labels: Tuple[str, ...] = ()
    parent_uri: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = {
            "uri": self.uri,
            "name": self.name,
            "descr": self.descr,
            "spec": self.spec.value,
        }
        if self.alt_labels:
            data["altLabels"] = list(self.alt_labels)
        if self.parent_uri:
            data["parentURI"] = self.parent_uri
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Value":
        return cls(
            uri=data.get("uri") or "",
            name=data.get("name") or "",
            descr=data.get("descr") or "",
            spec=Specify(data.get("spec", Specify.ITEM.value)),
            alt_labels=tuple(data.get("altLabels") or ()),
            parent_uri=data.get("parentURI"),
        )


@dataclass
class Group:
    """A nesting level of the template; children are referenced by arena index."""
    name: str
    group_uri: str = ""
    descr: str = ""
    parent: Optional[int] = None
    index: int = 0
    assignments: List[int] = field(default_factory=list)
    subgroups: List[int] = field(default_factory=list)


@dataclass
class Assignment:
    """An annotatable property slot inside a group."""
    name: str
    prop_uri: str
    descr: str = ""
    suggestions: Suggestions = Suggestions.FULL
    mandatory: bool = False
    values: List[Value] = field(default_factory=list)
    parent: int = 0
    index: int = 0


@dataclass(frozen=True)
class Annotation:
    """
    A concrete fact about an assay.

    Refers to its assignment by property URI and group nest (not by identity),
    and holds either a value or a literal.
    """
    prop_uri: str
    group_nest: Tuple[str, ...] = ()
    value: Optional[Value] = None
    literal: Optional[str] = None
    assignment_name: str = ""

    def __post_init__(self):
        if (self.value is None) == (self.literal is None):
            raise StructuralError(
                "annotation", f"<{self.prop_uri}> must hold exactly one of value or literal"
            )

    @property
    def is_literal(self) -> bool:
        return self.literal is not None

    def key(self) -> str:
        """Identifier combining property, group nest and value/literal."""
        tail = self.value.uri if self.value is not None else self.literal
        return key_prop_group_value(self.prop_uri, self.group_nest, tail)

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "propURI": self.prop_uri,
            "groupNest": list(self.group_nest),
            "assnName": self.assignment_name,
        }
        if self.value is not None:
            data["value"] = self.value.to_dict()
        else:
            data["literal"] = self.literal
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Annotation":
        value = data.get("value")
        return cls(
            prop_uri=data["propURI"],
            group_nest=tuple(data.get("groupNest") or ()),
            value=Value.from_dict(value) if value is not None else None,
            literal=data.get("literal"),
            assignment_name=data.get("assnName") or "",
        )


@dataclass(eq=False)
class Assay:
    """A collection of annotations; equality ignores annotation order."""
    name: str
    descr: str = ""
    para: str = ""
    origin_uri: str = ""
    annotations: List[Annotation] = field(default_factory=list)

    def add_annotation(self, annotation: Annotation) -> None:
        self.annotations.append(annotation)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Assay):
            return NotImplemented
        return (
            self.name == other.name
            and self.descr == other.descr
            and self.para == other.para
            and self.origin_uri == other.origin_uri
            and Counter(self.annotations) == Counter(other.annotations)
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "descr": self.descr,
            "para": self.para,
            "originURI": self.origin_uri,
            "annotations": [annot.to_dict() for annot in self.annotations],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Assay":
        return cls(
            name=data["name"],
            descr=data.get("descr") or "",
            para=data.get("para") or "",
            origin_uri=data.get("originURI") or "",
            annotations=[Annotation.from_dict(obj) for obj in data.get("annotations") or []],
        )


# =============================================================================
# GROUP NEST HELPERS
# =============================================================================

def compare_group_uri(uri1: str, uri2: str) -> bool:
    """
    Compare group URIs, treating an unsuffixed URI as equivalent to ``uri@1``.

    Two URIs that both carry different ``@N`` suffixes never match.
    """
    if uri1 == uri2:
        return True
    m1 = _PTN_GROUP_INDEXED.match(uri1) is not None
    m2 = _PTN_GROUP_INDEXED.match(uri2) is not None
    if m1 and m2:
        return False
    if not m1:
        uri1 += "@1"
    if not m2:
        uri2 += "@1"
    return uri1 == uri2


def remove_suffix_group_uri(uri: Optional[str]) -> Optional[str]:
    if uri is None:
        return None
    match = _PTN_GROUP_INDEXED.match(uri)
    return match.group(1) if match else uri


def same_group_nest(nest1: Optional[Sequence[str]], nest2: Optional[Sequence[str]]) -> bool:
    """Group nests of equal length whose entries all match (None == empty)."""
    nest1, nest2 = nest1 or (), nest2 or ()
    if len(nest1) != len(nest2):
        return False
    return all(compare_group_uri(a, b) for a, b in zip(nest1, nest2))


def compatible_group_nest(nest1: Optional[Sequence[str]], nest2: Optional[Sequence[str]]) -> bool:
    """Only the overlapping part of the two nests is compared."""
    nest1, nest2 = nest1 or (), nest2 or ()
    return all(compare_group_uri(a, b) for a, b in zip(nest1, nest2))


def key_prop_group(prop_uri: str, group_nest: Optional[Sequence[str]]) -> str:
    return prop_uri + SEP + SEP.join(group_nest or ())


def key_prop_group_value(prop_uri: str, group_nest: Optional[Sequence[str]], value: str) -> str:
    return key_prop_group(prop_uri, group_nest) + SEP + value


# =============================================================================
# SCHEMA
# =============================================================================

class Schema:
    """
    Template tree of groups and assignments, plus accompanying assays.

    Groups and assignments live in flat lists; ``groups[0]`` is the root.
    """

    def __init__(self, schema_prefix: str = PFX_BAS, root_name: str = "common assay template"):
        self.schema_prefix = schema_prefix
        self.groups: List[Group] = [Group(name=root_name, index=0)]
        self.assignments: List[Assignment] = []
        self.assays: List[Assay] = []

    @property
    def root(self) -> Group:
        return self.groups[0]

    def __repr__(self) -> str:
        return (
            f"Schema(prefix={self.schema_prefix!r}, groups={len(self.groups)}, "
            f"assignments={len(self.assignments)}, assays={len(self.assays)})"
        )

    # -------------------------------------------------------------------------
    # Construction
    # -------------------------------------------------------------------------

    def append_group(self, parent: Group, name: str, group_uri: str = "", descr: str = "") -> Group:
        """Create a subgroup at the end of the parent's subgroup list."""
        group = Group(
            name=name or "",
            group_uri=group_uri or "",
            descr=descr or "",
            parent=parent.index,
            index=len(self.groups),
        )
        self.groups.append(group)
        parent.subgroups.append(group.index)
        return group

    def append_assignment(
        self,
        parent: Group,
        name: str,
        prop_uri: str,
        descr: str = "",
        suggestions: Suggestions = Suggestions.FULL,
        mandatory: bool = False,
        values: Optional[List[Value]] = None,
    ) -> Assignment:
        """
        Create an assignment at the end of the parent's assignment list.

        Raises:
            StructuralError: if the property URI is already used within the group
        """
        prop_uri = prop_uri or ""
        if prop_uri and any(a.prop_uri == prop_uri for a in self.assignments_of(parent)):
            raise StructuralError(
                "template", f"property <{prop_uri}> used more than once in group [{parent.name}]"
            )
        assn = Assignment(
            name=name or "",
            prop_uri=prop_uri,
            descr=descr or "",
            suggestions=Suggestions(suggestions),
            mandatory=mandatory,
            parent=parent.index,
            index=len(self.assignments),
        )
        self.assignments.append(assn)
        parent.assignments.append(assn.index)
        for value in values or []:
            self.add_value(assn, value)
        return assn

    def add_value(self, assn: Assignment, value: Value) -> Value:
        """Append a value, refusing duplicate URIs within the assignment."""
        if value.uri and any(v.uri == value.uri for v in assn.values):
            raise StructuralError(
                "template", f"value <{value.uri}> duplicated in assignment [{assn.name}]"
            )
        assn.values.append(value)
        return value

    # -------------------------------------------------------------------------
    # Navigation
    # -------------------------------------------------------------------------

    def parent_of(self, item: Union[Group, Assignment]) -> Optional[Group]:
        return None if item.parent is None else self.groups[item.parent]

    def subgroups_of(self, group: Group) -> List[Group]:
        return [self.groups[idx] for idx in group.subgroups]

    def assignments_of(self, group: Group) -> List[Assignment]:
        return [self.assignments[idx] for idx in group.assignments]

    def _ancestors(self, item: Union[Group, Assignment]) -> List[Group]:
        """Enclosing groups, innermost first, stopping short of the root."""
        chain = []
        look = self.parent_of(item)
        while look is not None and look.parent is not None:
            chain.append(look)
            look = self.parent_of(look)
        return chain

    def group_nest(self, item: Union[Group, Assignment]) -> List[str]:
        """
        Group URIs enclosing the item, innermost first, root excluded.

        Trailing (root-side) blank URIs are dropped; for an assignment a single
        blank entry is kept so that it stays distinct from a root-level one.
        """
        nest = [grp.group_uri or "" for grp in self._ancestors(item)]
        keep = 1 if isinstance(item, Assignment) else 0
        while len(nest) > keep and nest[-1] == "":
            nest.pop()
        return nest

    def group_label(self, item: Union[Group, Assignment]) -> List[str]:
        """Names of the enclosing groups, innermost first, root excluded."""
        return [grp.name or "" for grp in self._ancestors(item)]

    def flattened_groups(self, group: Optional[Group] = None) -> List[Group]:
        """All groups below the given one (default root), in tree order."""
        start = group or self.root
        result = []
        queue = list(self.subgroups_of(start))
        while queue:
            grp = queue.pop(0)
            result.append(grp)
            queue.extend(self.subgroups_of(grp))
        return result

    def flattened_assignments(self, group: Optional[Group] = None) -> List[Assignment]:
        """All assignments within the group and its subgroups, in tree order."""
        result = []
        queue = [group or self.root]
        while queue:
            grp = queue.pop(0)
            result.extend(self.assignments_of(grp))
            queue.extend(self.subgroups_of(grp))
        return result

    def find_assignment_by_property(
        self, prop_uri: str, group_nest: Optional[Sequence[str]] = None
    ) -> List[Assignment]:
        """
        Find assignments by property URI.

        Args:
            prop_uri: Property URI to match
            group_nest: If given, the assignment's own group nest must match it exactly

        Returns:
            Matching assignments in tree order (possibly empty)
        """
        matches = []
        for assn in self.flattened_assignments():
            if assn.prop_uri != prop_uri:
                continue
            if group_nest is not None and not same_group_nest(self.group_nest(assn), group_nest):
                continue
            matches.append(assn)
        return matches

    def find_group_by_nest(self, group_nest: Optional[Sequence[str]]) -> Optional[Group]:
        """Descend from the root following the nest (outermost last); None if lost."""
        group = self.root
        for uri in reversed(list(group_nest or ())):
            group = next((g for g in self.subgroups_of(group) if g.group_uri == uri), None)
            if group is None:
                return None
        return group

    # -------------------------------------------------------------------------
    # Locators
    # -------------------------------------------------------------------------

    def locator_id(self, item: Union[Group, Assignment]) -> str:
        """Index path such as ``"0:2:"`` (group) or ``"0:2:1"`` (assignment)."""
        if isinstance(item, Assignment):
            group = self.groups[item.parent]
            return self.locator_id(group) + str(group.assignments.index(item.index))
        seq = []
        look = item
        while look.parent is not None:
            parent = self.groups[look.parent]
            seq.insert(0, parent.subgroups.index(look.index))
            look = parent
        return "".join(f"{n}:" for n in seq)

    def obtain_group(self, locator: str) -> Optional[Group]:
        """Resolve a locator to its group; an assignment locator yields its parent."""
        group = self.root
        for bit in locator.split(":")[:-1]:
            idx = int(bit)
            if idx < 0 or idx >= len(group.subgroups):
                return None
            group = self.groups[group.subgroups[idx]]
        return group

    def obtain_assignment(self, locator: str) -> Optional[Assignment]:
        group = self.obtain_group(locator)
        tail = locator.rsplit(":", 1)[-1]
        if group is None or not tail:
            return None
        idx = int(tail)
        if idx < 0 or idx >= len(group.assignments):
            return None
        return self.assignments[group.assignments[idx]]

    def gather_all_uris(self) -> Set[str]:
        """Every group, property and value URI mentioned in the template."""
        uris = {grp.group_uri for grp in self.groups if grp.group_uri}
        for assn in self.assignments:
            if assn.prop_uri:
                uris.add(assn.prop_uri)
            uris.update(val.uri for val in assn.values if val.uri)
        return uris

    def clone(self) -> "Schema":
        return copy.deepcopy(self)

    # -------------------------------------------------------------------------
    # Serialisation
    # -------------------------------------------------------------------------

    def _group_to_dict(self, group: Group) -> Dict[str, Any]:
        return {
            "name": group.name,
            "descr": group.descr,
            "groupURI": group.group_uri,
            "assignments": [
                {
                    "name": assn.name,
                    "descr": assn.descr,
                    "propURI": assn.prop_uri,
                    "suggestions": assn.suggestions.value,
                    "mandatory": assn.mandatory,
                    "values": [val.to_dict() for val in assn.values],
                }
                for assn in self.assignments_of(group)
            ],
            "subGroups": [self._group_to_dict(sub) for sub in self.subgroups_of(group)],
        }

    def to_dict(self) -> Dict[str, Any]:
        """Nested document projection of the template and its assays."""
        return {
            "schemaPrefix": self.schema_prefix,
            "root": self._group_to_dict(self.root),
            "assays": [assay.to_dict() for assay in self.assays],
        }

    def _group_from_dict(self, parent: Group, data: Dict[str, Any]) -> None:
        for obj in data.get("assignments") or []:
            self.append_assignment(
                parent,
                obj["name"],
                obj["propURI"],
                descr=obj.get("descr") or "",
                suggestions=Suggestions(obj.get("suggestions", Suggestions.FULL.value)),
                mandatory=bool(obj.get("mandatory", False)),
                values=[Value.from_dict(val) for val in obj.get("values") or []],
            )
        for obj in data.get("subGroups") or []:
            sub = self.append_group(parent, obj["name"], obj.get("groupURI") or "", obj.get("descr") or "")
            self._group_from_dict(sub, obj)

    @classmethod
    def from_dict(cls, data: Dict[str, Any], source: str = "template") -> "Schema":
        """
        Build a schema from its document form.

        Raises:
            StructuralError: on missing keys, bad enum values or broken invariants
        """
        try:
            root = data["root"]
            schema = cls(schema_prefix=data.get("schemaPrefix") or PFX_BAS, root_name=root["name"])
            schema.root.descr = root.get("descr") or ""
            schema.root.group_uri = root.get("groupURI") or ""
            schema._group_from_dict(schema.root, root)
            schema.assays = [Assay.from_dict(obj) for obj in data.get("assays") or []]
        except StructuralError:
            raise
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            raise StructuralError(source, f"{type(e).__name__}: {e}") from e
        return schema

    def serialise(self, path: Union[str, Path]) -> None:
        path = Path(path)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_dict(), f, indent=2)
        logger.debug(f"Saved schema <{self.schema_prefix}> to {path}")

    @classmethod
    def deserialise(cls, path: Union[str, Path]) -> "Schema":
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            raise StructuralError(str(path), f"invalid JSON: {e}") from e
        schema = cls.from_dict(data, source=str(path))
        logger.info(
            f"Loaded schema <{schema.schema_prefix}>: {len(schema.groups)} groups, "
            f"{len(schema.assignments)} assignments"
        )
        return schema

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Schema):
            return NotImplemented
        return (
            self.schema_prefix == other.schema_prefix
            and self._group_to_dict(self.root) == other._group_to_dict(other.root)
            and self.assays == other.assays
        )

    __hash__ = None
