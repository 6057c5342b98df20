# BAO Tools - Errors
# ==================
"""
Exception taxonomy shared by the schema, vocabulary and import layers.

- StructuralError: malformed content, or a model invariant broken (fatal)
- CycleError: remapping graph contains a cycle or a dangling terminal (fatal)
- UnmappedInputError: a column/value decision could not be applied (recoverable)
- MissingIdentifierError: a row has no resolvable unique ID (fatal for the batch)
- UnknownTermError: a URI the ontology does not know (diagnostic only)
"""

from typing import Any, Dict, List, Optional


class BaoToolsError(Exception):
    """Base exception for all baotools errors."""
    pass


class StructuralError(BaoToolsError):
    """Raised when a template, mapping, hint, source or dump file is malformed."""

    def __init__(self, source: str, detail: str):
        self.source = source
        self.detail = detail
        super().__init__(f"Malformed content in {source}: {detail}")


class CycleError(BaoToolsError):
    """Raised when the remapping graph cannot be resolved to a terminal URI."""

    def __init__(self, path: List[Optional[str]], chain: Optional[List[Optional[str]]] = None):
        self.path = list(path)
        self.chain = list(chain) if chain is not None else list(path)
        rendered = " => ".join(str(uri) for uri in self.chain)
        if self.path and self.path[-1] is None:
            super().__init__(f"Remapping terminates at null: {rendered}")
        else:
            super().__init__(f"Remapping cycle detected: {rendered}")


class UnmappedInputError(BaoToolsError):
    """Raised when a column or value cannot be classified with the given decision."""

    def __init__(self, column: str, value: Optional[str] = None, reason: str = "no applicable rule"):
        self.column = column
        self.value = value
        self.reason = reason
        where = f"column [{column}]" if value is None else f"column [{column}], value [{value}]"
        super().__init__(f"Unmapped input for {where}: {reason}")


class MissingIdentifierError(BaoToolsError):
    """Raised when a row cannot be given a unique ID during conversion."""

    def __init__(self, row_index: int, row: Optional[Dict[str, Any]] = None):
        self.row_index = row_index
        self.row = row
        super().__init__(
            f"Row #{row_index + 1} has no resolvable unique identifier; "
            "add an identity rule or a uniqueID field"
        )


class UnknownTermError(BaoToolsError):
    """A URI referenced by a schema that the ontology source does not define."""

    def __init__(self, uri: str, kind: str = "value"):
        self.uri = uri
        self.kind = kind
        super().__init__(f"{kind} URI <{uri}> not known to the ontology")
