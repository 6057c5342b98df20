# BAO Tools Importer - Import Session
# ===================================
"""
Keyword import as an explicit state machine.

The session walks the source columns, then every (column, value) pair of the
mapped columns, and stops at the first item no existing rule resolves. The
caller fetches that request, answers it with a decision, and the session
records the resulting rule, persists the rule file, and moves on:

    session = ImportSession(schema, vocab, source, rules)
    session.start()
    while (request := session.next_request()) is not None:
        session.respond(choose(request))
    session.export("assays.zip")

Any front-end (console prompt, scripted policy, web form) can drive it;
``run(decide)`` wraps the loop for unattended use.
"""

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Set, Tuple, Union

from baotools.dictionary.fuzzy_matcher import FuzzyMatch, FuzzyMatcher
from baotools.errors import UnmappedInputError
from baotools.schema.model import Assignment, Schema
from baotools.settings import ToolSettings, get_settings
from baotools.vocab.schema_vocab import SchemaVocab
from baotools.vocab.term_tree import TermTree

from .converter import UNIQUE_ID, RowConverter, export_archive
from .mapping import MappingRules
from .models import PropertyRule, SourceData

logger = logging.getLogger(__name__)


class ImportState(Enum):
    """Where the session is waiting."""
    AWAITING_COLUMN_DECISION = "awaiting_column_decision"
    AWAITING_VALUE_DECISION = "awaiting_value_decision"
    DONE = "done"


# =============================================================================
# REQUESTS
# =============================================================================

@dataclass
class ColumnRequest:
    """A column that no identity, text block or property rule covers."""
    column: str
    candidates: List[FuzzyMatch] = field(default_factory=list)
    disambiguation: bool = False    # Candidates are the assignments sharing one URI
    samples: List[str] = field(default_factory=list)


@dataclass
class ValueRequest:
    """A value of a mapped column that no value, literal or reference rule covers."""
    column: str
    value: str
    prop_uri: str
    group_nest: List[str] = field(default_factory=list)
    assignment: Optional[Assignment] = None
    candidates: List[FuzzyMatch] = field(default_factory=list)
    suggestions: bool = True        # False when the assignment does not allow ranked terms


# =============================================================================
# DECISIONS
# =============================================================================

class ColumnAction(Enum):
    SKIP = "skip"                   # For this session only; no rule
    EXCLUDE = "exclude"             # Property rule with no propURI
    ASSIGN = "assign"               # Ranked candidate by number
    ASSIGN_URI = "assign_uri"       # Property URI given explicitly
    TEXT_BLOCK = "text_block"
    IDENTITY = "identity"


class ValueAction(Enum):
    SKIP = "skip"
    EXCLUDE = "exclude"
    ASSIGN = "assign"
    ASSIGN_URI = "assign_uri"
    LITERAL = "literal"             # This value only
    LITERAL_ALL = "literal_all"     # Every value of the column
    REFERENCE = "reference"         # Numeric suffix behind an identifier prefix


@dataclass
class ColumnDecision:
    action: ColumnAction
    choice: Optional[int] = None        # Index into request.candidates
    uri: Optional[str] = None
    group_nest: Optional[List[str]] = None
    title: str = ""
    prefix: str = ""

    @classmethod
    def skip(cls) -> "ColumnDecision":
        return cls(ColumnAction.SKIP)

    @classmethod
    def exclude(cls) -> "ColumnDecision":
        return cls(ColumnAction.EXCLUDE)

    @classmethod
    def assign(cls, choice: int) -> "ColumnDecision":
        return cls(ColumnAction.ASSIGN, choice=choice)

    @classmethod
    def assign_uri(cls, uri: str, group_nest: Optional[List[str]] = None) -> "ColumnDecision":
        return cls(ColumnAction.ASSIGN_URI, uri=uri, group_nest=group_nest)

    @classmethod
    def text_block(cls, title: str = "") -> "ColumnDecision":
        return cls(ColumnAction.TEXT_BLOCK, title=title)

    @classmethod
    def identity(cls, prefix: str) -> "ColumnDecision":
        return cls(ColumnAction.IDENTITY, prefix=prefix)


@dataclass
class ValueDecision:
    action: ValueAction
    choice: Optional[int] = None
    uri: Optional[str] = None
    prefix: str = ""

    @classmethod
    def skip(cls) -> "ValueDecision":
        return cls(ValueAction.SKIP)

    @classmethod
    def exclude(cls) -> "ValueDecision":
        return cls(ValueAction.EXCLUDE)

    @classmethod
    def assign(cls, choice: int) -> "ValueDecision":
        return cls(ValueAction.ASSIGN, choice=choice)

    @classmethod
    def assign_uri(cls, uri: str) -> "ValueDecision":
        return cls(ValueAction.ASSIGN_URI, uri=uri)

    @classmethod
    def literal(cls) -> "ValueDecision":
        return cls(ValueAction.LITERAL)

    @classmethod
    def literal_all(cls) -> "ValueDecision":
        return cls(ValueAction.LITERAL_ALL)

    @classmethod
    def reference(cls, prefix: str) -> "ValueDecision":
        return cls(ValueAction.REFERENCE, prefix=prefix)


Request = Union[ColumnRequest, ValueRequest]
Decision = Union[ColumnDecision, ValueDecision]


def skip_all(request: Request) -> Decision:
    """Unattended policy: leave everything unresolved for this run."""
    if isinstance(request, ColumnRequest):
        return ColumnDecision.skip()
    return ValueDecision.skip()


def reference_pattern(value: str) -> Optional[str]:
    """Pattern capturing the numeric suffix of a value, anchored at its leading text."""
    match = re.fullmatch(r"(.*?)(\d+)", value, re.DOTALL)
    if match is None:
        return None
    return re.escape(match.group(1)) + r"(\d+)"


# =============================================================================
# SESSION
# =============================================================================

class ImportSession:
    """
    Drives classification of one source file against one schema.

    Every accepted decision is appended to the rule set and the rule file is
    rewritten at once. Skips last only for the lifetime of the session.
    """

    def __init__(
        self,
        schema: Schema,
        vocab: Optional[SchemaVocab],
        source: SourceData,
        rules: MappingRules,
        matcher: Optional[FuzzyMatcher] = None,
        settings: Optional[ToolSettings] = None,
    ):
        self.schema = schema
        self.vocab = vocab
        self.source = source
        self.rules = rules
        self.settings = settings or get_settings()
        self.registry = rules.registry
        self.matcher = matcher or FuzzyMatcher(registry=self.registry)

        self._skipped_columns: Set[str] = set()
        self._skipped_values: Set[Tuple[str, str]] = set()
        self._pending: Optional[Request] = None
        self._started = False

    # -------------------------------------------------------------------------
    # State
    # -------------------------------------------------------------------------

    def start(self) -> ImportState:
        """Prune stale rules, then find the first request."""
        columns = self._columns()
        pruned = self.rules.prune_stale(columns, self.schema)
        logger.info(
            f"Import session started: {len(columns)} columns, {len(self.source.rows)} rows, "
            f"{len(self.rules)} rules ({pruned} pruned)"
        )
        self._started = True
        self._pending = self._find_next()
        return self.state

    @property
    def state(self) -> ImportState:
        if isinstance(self._pending, ColumnRequest):
            return ImportState.AWAITING_COLUMN_DECISION
        if isinstance(self._pending, ValueRequest):
            return ImportState.AWAITING_VALUE_DECISION
        return ImportState.DONE

    def next_request(self) -> Optional[Request]:
        """The outstanding request, or None once everything is resolved or skipped."""
        if not self._started:
            self.start()
        return self._pending

    def respond(self, decision: Decision) -> Optional[Request]:
        """
        Apply a decision to the outstanding request.

        Raises:
            UnmappedInputError: if the decision cannot be applied; the request
                stays outstanding
        """
        request = self.next_request()
        if request is None:
            raise RuntimeError("No request is outstanding")

        if isinstance(request, ColumnRequest):
            if not isinstance(decision, ColumnDecision):
                raise UnmappedInputError(request.column, reason="expected a column decision")
            changed = self._apply_column(request, decision)
        else:
            if not isinstance(decision, ValueDecision):
                raise UnmappedInputError(request.column, request.value, "expected a value decision")
            changed = self._apply_value(request, decision)

        if changed:
            self.rules.save()
        if self._pending is request:
            self._pending = self._find_next()
        return self._pending

    def run(self, decide: Callable[[Request], Decision]) -> ImportState:
        """Answer every request with ``decide`` until nothing is outstanding."""
        request = self.next_request()
        while request is not None:
            request = self.respond(decide(request))
        return self.state

    # -------------------------------------------------------------------------
    # Output
    # -------------------------------------------------------------------------

    def convert_rows(self) -> List[Dict[str, Any]]:
        converter = RowConverter(self.schema, self.vocab, self.rules)
        return converter.convert_rows(self.source.rows)

    def export(self, zip_path: Union[str, Path]) -> Path:
        """Convert the whole batch, then write the archive."""
        documents = self.convert_rows()
        return export_archive(documents, zip_path)

    # -------------------------------------------------------------------------
    # Scanning
    # -------------------------------------------------------------------------

    def _columns(self) -> List[str]:
        return [col for col in self.source.columns if col != UNIQUE_ID]

    def _column_resolved(self, column: str) -> bool:
        return (
            column in self._skipped_columns
            or self.rules.find_identity(column) is not None
            or self.rules.find_text_block(column) is not None
            or self.rules.find_property(column) is not None
        )

    def _value_resolved(self, column: str, value: str) -> bool:
        return (
            (column, value) in self._skipped_values
            or self.rules.find_value(column, value) is not None
            or self.rules.find_literal(column, value) is not None
            or self.rules.find_reference(column, value) is not None
        )

    def _find_next(self) -> Optional[Request]:
        for column in self._columns():
            if not self._column_resolved(column):
                return self._column_request(column)

        for row in self.source.rows:
            for column in self._columns():
                value = row.get(column)
                if not value:
                    continue
                if self.rules.find_identity(column) or self.rules.find_text_block(column):
                    continue
                prop = self.rules.find_property(column)
                if prop is None or not prop.prop_uri:
                    continue
                if not self._value_resolved(column, value):
                    return self._value_request(column, value, prop)
        return None

    def _column_request(self, column: str) -> ColumnRequest:
        candidates = self.matcher.rank_assignments(self.schema, column, limit=self.settings.max_candidates)
        samples = []
        for row in self.source.rows:
            value = row.get(column)
            if value and value not in samples:
                samples.append(value)
            if len(samples) >= 3:
                break
        return ColumnRequest(column=column, candidates=candidates, samples=samples)

    def _value_request(self, column: str, value: str, prop: PropertyRule) -> ValueRequest:
        prop_uri = self.registry.expand(prop.prop_uri)
        group_nest = self.registry.expand_all(prop.group_nest) or []
        assns = self.schema.find_assignment_by_property(prop_uri, group_nest or None)
        assn = assns[0] if assns else None

        request = ValueRequest(column=column, value=value, prop_uri=prop_uri, group_nest=group_nest, assignment=assn)
        request.suggestions = assn is not None and assn.suggestions in self.settings.suggestion_modes
        tree = self._tree(assn)
        if request.suggestions and tree is not None:
            request.candidates = self.matcher.rank_terms(tree, value, limit=self.settings.max_candidates)
        return request

    def _tree(self, assn: Optional[Assignment]) -> Optional[TermTree]:
        if assn is None or self.vocab is None:
            return None
        return self.vocab.tree_for_assignment(self.schema, assn)

    @staticmethod
    def _pick(request: Request, choice: Optional[int]) -> FuzzyMatch:
        if choice is None or choice < 0 or choice >= len(request.candidates):
            value = getattr(request, "value", None)
            raise UnmappedInputError(request.column, value, f"choice {choice} is not one of the candidates")
        return request.candidates[choice]

    # -------------------------------------------------------------------------
    # Decisions
    # -------------------------------------------------------------------------

    def _apply_column(self, request: ColumnRequest, decision: ColumnDecision) -> bool:
        column = request.column
        action = decision.action

        if action == ColumnAction.SKIP:
            self._skipped_columns.add(column)
            logger.debug(f"Column [{column}] skipped")
            return False

        if action == ColumnAction.EXCLUDE:
            self.rules.add_property(column, None)
        elif action == ColumnAction.ASSIGN:
            match = self._pick(request, decision.choice)
            self.rules.add_property(column, match.uri, match.group_nest)
        elif action == ColumnAction.ASSIGN_URI:
            if not decision.uri:
                raise UnmappedInputError(column, reason="no property URI given")
            uri = self.registry.expand(decision.uri)
            nest = self.registry.expand_all(decision.group_nest)
            assns = self.schema.find_assignment_by_property(uri, nest)
            if not assns:
                raise UnmappedInputError(column, reason=f"no assignment has property <{uri}>")
            if len(assns) > 1:
                self._pending = ColumnRequest(
                    column=column,
                    candidates=[
                        FuzzyMatch(
                            uri=assn.prop_uri,
                            label=assn.name,
                            distance=0,
                            match_type="uri",
                            matched_text=uri,
                            assignment=assn,
                            group_nest=self.schema.group_nest(assn),
                            group_label=self.schema.group_label(assn),
                        )
                        for assn in assns
                    ],
                    disambiguation=True,
                    samples=request.samples,
                )
                logger.debug(f"Column [{column}]: <{uri}> matches {len(assns)} assignments")
                return False
            self.rules.add_property(column, uri, self.schema.group_nest(assns[0]))
        elif action == ColumnAction.TEXT_BLOCK:
            self.rules.add_text_block(column, decision.title)
        elif action == ColumnAction.IDENTITY:
            self.rules.add_identity(column, decision.prefix)
        else:
            raise UnmappedInputError(column, reason=f"unsupported action {action}")

        logger.info(f"Column [{column}]: {action.value}")
        return True

    def _apply_value(self, request: ValueRequest, decision: ValueDecision) -> bool:
        column, value = request.column, request.value
        prop_uri, nest = request.prop_uri, request.group_nest
        action = decision.action

        if action == ValueAction.SKIP:
            self._skipped_values.add((column, value))
            logger.debug(f"Value [{column}] '{value}' skipped")
            return False

        if action == ValueAction.EXCLUDE:
            self.rules.add_value(column, value, None, prop_uri, nest)
        elif action == ValueAction.ASSIGN:
            match = self._pick(request, decision.choice)
            self.rules.add_value(column, value, match.uri, prop_uri, nest)
        elif action == ValueAction.ASSIGN_URI:
            if not decision.uri:
                raise UnmappedInputError(column, value, "no term URI given")
            uri = self.registry.expand(decision.uri)
            tree = self._tree(request.assignment)
            if tree is not None and uri not in tree:
                raise UnmappedInputError(column, value, f"<{uri}> is not in the assignment's term tree")
            self.rules.add_value(column, value, uri, prop_uri, nest)
        elif action == ValueAction.LITERAL:
            self.rules.add_literal(column, value, prop_uri, nest)
        elif action == ValueAction.LITERAL_ALL:
            self.rules.add_literal(column, None, prop_uri, nest)
        elif action == ValueAction.REFERENCE:
            pattern = reference_pattern(value)
            if pattern is None:
                raise UnmappedInputError(column, value, "value has no numeric suffix")
            self.rules.add_reference(column, pattern, decision.prefix, prop_uri, nest)
        else:
            raise UnmappedInputError(column, value, f"unsupported action {action}")

        logger.info(f"Value [{column}] '{value}': {action.value}")
        return True
