# BAO Tools Vocab - Ontology Source
# =================================
"""
The ontology source answers the handful of questions the rest of the system
needs: which property and value URIs exist, what they are called, and how value
terms are related by subclass.

Parsing of OWL/RDF is out of scope; InMemoryOntology is populated directly or
from a pre-extracted JSON file.
"""

import json
import logging
from collections import defaultdict
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Protocol, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from baotools.errors import StructuralError

logger = logging.getLogger(__name__)


class OntologySource(Protocol):
    """Read-only view of an ontology."""

    def has_property(self, uri: str) -> bool: ...

    def has_value(self, uri: str) -> bool: ...

    def get_label(self, uri: str) -> Optional[str]: ...

    def get_descr(self, uri: str) -> Optional[str]: ...

    def get_parents(self, uri: str) -> List[str]: ...

    def get_children(self, uri: str) -> List[str]: ...

    def all_uris(self) -> List[str]: ...


class OntologyTerm(BaseModel):
    """One term entry of an ontology file."""
    model_config = ConfigDict(extra="forbid")

    label: str = ""
    descr: str = ""
    parents: List[str] = Field(default_factory=list)


class OntologyFile(BaseModel):
    """Pre-extracted ontology: property and value terms keyed by URI."""
    model_config = ConfigDict(extra="forbid")

    properties: Dict[str, OntologyTerm] = Field(default_factory=dict)
    values: Dict[str, OntologyTerm] = Field(default_factory=dict)


class InMemoryOntology:
    """
    Dictionary-backed OntologySource.

    Subclass links are stored child -> parents; the reverse index is kept in
    step so that children are returned in insertion order.
    """

    def __init__(self):
        self._labels: Dict[str, str] = {}
        self._descrs: Dict[str, str] = {}
        self._properties: Dict[str, None] = {}
        self._values: Dict[str, None] = {}
        self._parents: Dict[str, List[str]] = defaultdict(list)
        self._children: Dict[str, List[str]] = defaultdict(list)

    def add_property(self, uri: str, label: str = "", descr: str = "") -> None:
        self._properties[uri] = None
        self._labels[uri] = label
        self._descrs[uri] = descr

    def add_value(
        self, uri: str, label: str = "", descr: str = "", parents: Optional[Iterable[str]] = None
    ) -> None:
        self._values[uri] = None
        self._labels[uri] = label
        self._descrs[uri] = descr
        for parent in parents or []:
            if parent not in self._parents[uri]:
                self._parents[uri].append(parent)
                self._children[parent].append(uri)

    def has_property(self, uri: str) -> bool:
        return uri in self._properties

    def has_value(self, uri: str) -> bool:
        return uri in self._values

    def get_label(self, uri: str) -> Optional[str]:
        return self._labels.get(uri)

    def get_descr(self, uri: str) -> Optional[str]:
        return self._descrs.get(uri)

    def get_parents(self, uri: str) -> List[str]:
        return list(self._parents.get(uri, []))

    def get_children(self, uri: str) -> List[str]:
        return list(self._children.get(uri, []))

    def all_uris(self) -> List[str]:
        return list(self._properties) + [uri for uri in self._values if uri not in self._properties]

    def num_properties(self) -> int:
        return len(self._properties)

    def num_values(self) -> int:
        return len(self._values)

    @classmethod
    def from_model(cls, model: OntologyFile) -> "InMemoryOntology":
        onto = cls()
        for uri, term in model.properties.items():
            onto.add_property(uri, term.label, term.descr)
        for uri, term in model.values.items():
            onto.add_value(uri, term.label, term.descr, term.parents)
        return onto

    @classmethod
    def load(cls, path: Union[str, Path]) -> "InMemoryOntology":
        """
        Load a JSON ontology file.

        Raises:
            StructuralError: if the file is not valid JSON or fails validation
        """
        path = Path(path)
        try:
            with open(path, "r", encoding="utf-8") as f:
                model = OntologyFile.model_validate(json.load(f))
        except (json.JSONDecodeError, ValidationError) as e:
            raise StructuralError(str(path), str(e)) from e

        onto = cls.from_model(model)
        logger.info(
            f"Loaded ontology from {path}: {onto.num_properties()} properties, "
            f"{onto.num_values()} values"
        )
        return onto
