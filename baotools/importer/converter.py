# BAO Tools Importer - Row Converter
# ==================================
"""
Turns source rows into assay documents by applying the mapping rules, and
writes the documents into a zip archive.

Each document has the shape::

    {"uniqueID": ..., "schemaURI": ..., "text": ...,
     "annotations": [{"propURI", "groupNest", "valueURI" | "valueLabel"}]}
"""

import json
import logging
import os
import re
import tempfile
import zipfile
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple, Union

import pandas as pd
from pydantic import ValidationError

from baotools.errors import MissingIdentifierError, StructuralError
from baotools.schema.model import Schema
from baotools.vocab.schema_vocab import SchemaVocab
from baotools.vocab.term_tree import TermTree

from .mapping import MappingRules
from .models import HintFile, SourceData

logger = logging.getLogger(__name__)

UNIQUE_ID = "uniqueID"
IMPORTED_MARKER = "#### IMPORTED ####"

_FILENAME_UNSAFE = re.compile(r"[^A-Za-z0-9_: ]")


def sanitise_filename(unique_id: str) -> str:
    """Keep letters, digits, underscore, colon and space; anything else becomes a dash."""
    return _FILENAME_UNSAFE.sub("-", unique_id)


# =============================================================================
# INPUT FILES
# =============================================================================

def load_source(path: Union[str, Path]) -> SourceData:
    """
    Read a JSON source file with ``columns`` and ``rows``.

    Raises:
        StructuralError: if the file is unreadable as JSON or lacks either field
    """
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            source = SourceData.model_validate(json.load(f))
    except (json.JSONDecodeError, ValidationError) as e:
        raise StructuralError(str(path), str(e)) from e
    logger.info(f"Loaded source {path}: {len(source.columns)} columns, {len(source.rows)} rows")
    return source


def load_source_table(path: Union[str, Path]) -> SourceData:
    """
    Read a delimited table (``.tsv`` or ``.csv``; first line holds the titles).

    Blank cells are left out of each row.
    """
    path = Path(path)
    sep = "\t" if path.suffix.lower() in (".tsv", ".tab", ".txt") else ","
    try:
        df = pd.read_csv(path, sep=sep, dtype=str, keep_default_na=False)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as e:
        raise StructuralError(str(path), str(e)) from e

    rows = [
        {col: val for col, val in record.items() if val != ""}
        for record in df.to_dict(orient="records")
    ]
    logger.info(f"Loaded table {path}: {len(df.columns)} columns, {len(rows)} rows")
    return SourceData(columns=[str(col) for col in df.columns], rows=rows)


def load_hints(path: Optional[Union[str, Path]]) -> Dict[str, str]:
    """Read the keyword -> URI hints file; no path means no hints."""
    if not path:
        return {}
    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            hints = HintFile.model_validate(json.load(f)).root
    except (json.JSONDecodeError, ValidationError) as e:
        raise StructuralError(str(path), str(e)) from e
    logger.info(f"Loaded {len(hints)} hints from {path}")
    return hints


# =============================================================================
# CONVERSION
# =============================================================================

class RowConverter:
    """Applies a rule set to source rows, producing one document per row."""

    def __init__(self, schema: Schema, vocab: Optional[SchemaVocab], rules: MappingRules):
        self.schema = schema
        self.vocab = vocab
        self.rules = rules
        self.registry = rules.registry

    def _annotation(self, prop_uri: Optional[str], group_nest: Optional[List[str]], **value: str) -> Dict[str, Any]:
        obj = {
            "propURI": self.registry.expand(prop_uri),
            "groupNest": self.registry.expand_all(group_nest) or [],
        }
        obj.update(value)
        return obj

    def _tree_for(self, prop_uri: str, group_nest: List[str]) -> Optional[TermTree]:
        if self.vocab is None:
            return None
        assns = self.schema.find_assignment_by_property(prop_uri, group_nest or None)
        if not assns:
            return None
        return self.vocab.tree_for_assignment(self.schema, assns[0])

    def _collapse_ancestors(self, annotations: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
        """Drop value annotations whose term is an ancestor of another's in the same assignment."""
        dropped: Set[int] = set()
        for n, obj in enumerate(annotations):
            if "valueURI" not in obj:
                continue
            tree = self._tree_for(obj["propURI"], obj["groupNest"])
            if tree is None or obj["valueURI"] not in tree:
                continue

            lineage = set()
            node = tree.get_node(obj["valueURI"])
            while node is not None and node.uri not in lineage:
                lineage.add(node.uri)
                node = tree.get_node(node.parent) if node.parent else None
            lineage.discard(obj["valueURI"])

            for i, other in enumerate(annotations):
                if i == n or "valueURI" not in other:
                    continue
                if other["propURI"] != obj["propURI"] or other["groupNest"] != obj["groupNest"]:
                    continue
                if other["valueURI"] in lineage:
                    dropped.add(i)

        return [obj for n, obj in enumerate(annotations) if n not in dropped]

    def convert(self, row: Dict[str, str], row_index: int = 0) -> Dict[str, Any]:
        """
        Convert one row.

        Raises:
            MissingIdentifierError: if neither an identity rule nor a
                ``uniqueID`` field supplies the row's identifier
        """
        unique_id = None
        lines_title: List[str] = []
        lines_block: List[str] = []
        lines_skipped: List[str] = []
        lines_processed: List[str] = []
        annotations: List[Dict[str, Any]] = []
        seen: Set[Tuple[str, ...]] = set()

        def append(obj: Dict[str, Any]) -> bool:
            target = obj.get("valueURI", obj.get("valueLabel"))
            key = (obj["propURI"], "valueURI" in obj, target, *obj["groupNest"])
            if key in seen:
                return False
            seen.add(key)
            annotations.append(obj)
            return True

        for asrt in self.rules.assertions:
            append(self._annotation(asrt.prop_uri, asrt.group_nest, valueURI=self.registry.expand(asrt.value_uri)))

        for key, data in row.items():
            if key == UNIQUE_ID:
                continue
            line = f"{key}: {data}"

            ident = self.rules.find_identity(key)
            if ident is not None:
                if unique_id is None and data:
                    unique_id = ident.prefix + data
                continue

            block = self.rules.find_text_block(key)
            if block is not None:
                if block.title:
                    lines_block.append(f"{block.title}: {data}")
                else:
                    lines_title.append(data)
                continue

            val = self.rules.find_value(key, data)
            if val is not None:
                if not val.value_uri or not val.prop_uri:
                    lines_skipped.append(line)
                elif append(self._annotation(val.prop_uri, val.group_nest, valueURI=self.registry.expand(val.value_uri))):
                    lines_processed.append(line)
                continue

            lit = self.rules.find_literal(key, data)
            if lit is not None and lit.prop_uri:
                if append(self._annotation(lit.prop_uri, lit.group_nest, valueLabel=data)):
                    lines_processed.append(line)
                continue

            ref = self.rules.find_reference(key, data)
            if ref is not None and ref.prop_uri:
                match = re.fullmatch(ref.value_regex, data, re.DOTALL)
                if append(self._annotation(ref.prop_uri, ref.group_nest, valueLabel=ref.prefix + match.group(1))):
                    lines_processed.append(line)
                continue

            lines_skipped.append(line)

        if unique_id is None:
            unique_id = row.get(UNIQUE_ID) or None
        if unique_id is None:
            raise MissingIdentifierError(row_index, row)

        sections = []
        if lines_title:
            sections.append(" / ".join(lines_title))
        if lines_block:
            sections.append("\n".join(lines_block))
        sections.append(IMPORTED_MARKER)
        if lines_skipped:
            sections.append("SKIPPED:\n" + "\n".join(lines_skipped))
        if lines_processed:
            sections.append("PROCESSED:\n" + "\n".join(lines_processed))

        return {
            "uniqueID": unique_id,
            "schemaURI": self.schema.schema_prefix,
            "text": "\n\n".join(sections),
            "annotations": self._collapse_ancestors(annotations),
        }

    def convert_rows(self, rows: Iterable[Dict[str, str]]) -> List[Dict[str, Any]]:
        """Convert every row; the first row without an identifier aborts the batch."""
        documents = [self.convert(row, n) for n, row in enumerate(rows)]
        logger.info(f"Converted {len(documents)} rows")
        return documents


# =============================================================================
# EXPORT
# =============================================================================

def export_archive(
    documents: Iterable[Dict[str, Any]], zip_path: Union[str, Path], indent: Optional[int] = 2
) -> Path:
    """
    Write one JSON entry per document into a zip, named from its uniqueID.

    The archive is assembled in a temporary file beside the target and renamed
    into place once complete.
    """
    zip_path = Path(zip_path)
    zip_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(dir=str(zip_path.parent), prefix=f".{zip_path.name}.", suffix=".tmp")
    os.close(fd)
    count = 0
    used: Set[str] = set()
    try:
        with zipfile.ZipFile(tmp_name, "w", compression=zipfile.ZIP_DEFLATED) as zf:
            for doc in documents:
                stem = sanitise_filename(doc[UNIQUE_ID])
                name, n = f"{stem}.json", 1
                while name in used:
                    n += 1
                    name = f"{stem}-{n}.json"
                if n > 1:
                    logger.warning(f"Duplicate archive entry for uniqueID '{doc[UNIQUE_ID]}': written as {name}")
                used.add(name)
                zf.writestr(name, json.dumps(doc, indent=indent))
                count += 1
        os.replace(tmp_name, zip_path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise

    logger.info(f"Wrote {count} documents to {zip_path}")
    return zip_path
