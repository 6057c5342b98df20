#!/usr/bin/env python
# BAO Tools - Keyword Import
# ==========================
# Maps external keyword/value tables onto a template and exports assay documents
"""
Keyword Import Tool

Pipeline:
1. Load template, schema vocabulary, source rows, mapping rules and hints
2. Prune mapping rules that no longer apply
3. Classify every unmapped column and value (console prompt, or skipped in --batch)
4. Convert all rows and write one JSON document per row into a zip

Usage:
    python scripts/import_keywords.py --template schema.json --vocab vocab.dump.gz \\
        --source rows.json --mapping mapping.json --output assays.zip
    python scripts/import_keywords.py ... --source rows.tsv --hints hints.json
    python scripts/import_keywords.py ... --batch

Console commands (column prompt):
    <n>          map to ranked assignment #n
    u <uri>      map to the assignment with this property URI
    x            exclude the column permanently
    t [title]    treat the column as free text
    i <prefix>   treat the column as the unique identifier
    s            skip for now
Console commands (value prompt):
    <n>          map to ranked term #n
    u <uri>      map to this term URI
    x            exclude the value permanently
    l / L        literal for this value / for every value of the column
    r <prefix>   reference: prefix + numeric suffix of the value
    s            skip for now
"""

import argparse
import logging
import sys
import time
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from baotools.dictionary import FuzzyMatcher
from baotools.errors import BaoToolsError, UnmappedInputError
from baotools.importer import (
    ColumnDecision,
    ColumnRequest,
    ImportSession,
    MappingRules,
    ValueDecision,
    load_hints,
    load_source,
    load_source_table,
    skip_all,
)
from baotools.schema import Schema
from baotools.settings import get_settings
from baotools.vocab import SchemaVocab

logger = logging.getLogger(__name__)


def show_request(request) -> None:
    """Print the request and its numbered candidates."""
    print("")
    if isinstance(request, ColumnRequest):
        if request.disambiguation:
            print(f"Column [{request.column}]: the URI matches several assignments, pick one")
        else:
            print(f"Unmapped column [{request.column}]")
        if request.samples:
            print(f"  e.g. {', '.join(request.samples)}")
        for n, match in enumerate(request.candidates, start=1):
            where = " / ".join(reversed(match.group_label)) or "(root)"
            print(f"  {n}. {match.label} <{match.uri}> in {where} (distance {match.distance})")
    else:
        print(f"Unmapped value [{request.column}]: '{request.value}' for <{request.prop_uri}>")
        if not request.suggestions:
            print("  (no suggestions for this assignment)")
        for n, match in enumerate(request.candidates, start=1):
            hint = f" via '{match.matched_text}'" if match.match_type == "hint" else ""
            print(f"  {n}. {match.label} <{match.uri}>{hint} (distance {match.distance})")


def parse_command(request, line: str):
    """Turn a console line into a decision; None if it makes no sense."""
    cmd, _, arg = line.strip().partition(" ")
    arg = arg.strip()
    if cmd.isdigit():
        choice = int(cmd) - 1
        return ColumnDecision.assign(choice) if isinstance(request, ColumnRequest) else ValueDecision.assign(choice)

    if isinstance(request, ColumnRequest):
        commands = {
            "s": lambda: ColumnDecision.skip(),
            "x": lambda: ColumnDecision.exclude(),
            "u": lambda: ColumnDecision.assign_uri(arg) if arg else None,
            "t": lambda: ColumnDecision.text_block(arg),
            "i": lambda: ColumnDecision.identity(arg),
        }
    else:
        commands = {
            "s": lambda: ValueDecision.skip(),
            "x": lambda: ValueDecision.exclude(),
            "u": lambda: ValueDecision.assign_uri(arg) if arg else None,
            "l": lambda: ValueDecision.literal(),
            "L": lambda: ValueDecision.literal_all(),
            "r": lambda: ValueDecision.reference(arg) if arg else None,
        }
    make = commands.get(cmd)
    return make() if make else None


def console_loop(session: ImportSession) -> None:
    """Prompt for each outstanding request until the session is done."""
    request = session.next_request()
    while request is not None:
        show_request(request)
        try:
            line = input("> ")
        except EOFError:
            logger.warning("Input closed: remaining items skipped")
            session.run(skip_all)
            return
        decision = parse_command(request, line)
        if decision is None:
            print("Unrecognised command.")
            continue
        try:
            request = session.respond(decision)
        except UnmappedInputError as e:
            print(f"Rejected: {e.reason}")


def run_import(args) -> bool:
    """Load everything, classify, convert and export."""
    start_time = time.time()
    settings = get_settings()
    registry = settings.prefix_registry()

    logger.info("=" * 60)
    logger.info("BAO Tools: Keyword Import")
    logger.info("=" * 60)

    schema = Schema.deserialise(args.template)
    vocab = SchemaVocab.load(args.vocab, [schema]) if args.vocab else None

    if Path(args.source).suffix.lower() in (".tsv", ".csv", ".tab", ".txt"):
        source = load_source_table(args.source)
    else:
        source = load_source(args.source)

    rules = MappingRules.load(args.mapping, registry)
    matcher = FuzzyMatcher(load_hints(args.hints), registry)

    session = ImportSession(schema, vocab, source, rules, matcher, settings)
    session.start()

    if args.batch:
        session.run(skip_all)
    else:
        console_loop(session)

    archive = session.export(args.output)

    duration = time.time() - start_time
    logger.info("=" * 60)
    logger.info("IMPORT COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Rows exported: {len(source.rows)}")
    logger.info(f"Mapping rules: {rules.summary()}")
    logger.info(f"Archive: {archive}")
    logger.info(f"Total duration: {duration:.1f}s")
    logger.info("=" * 60)
    return True


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="BAO Tools: Keyword Import",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/import_keywords.py --template schema.json --vocab vocab.dump.gz --source rows.json --mapping map.json --output out.zip
  python scripts/import_keywords.py --template schema.json --source rows.tsv --mapping map.json --output out.zip --batch
        """
    )
    parser.add_argument("--template", required=True, help="Template JSON file")
    parser.add_argument("--vocab", help="Schema vocabulary dump")
    parser.add_argument("--source", required=True, help="Source rows (.json, .tsv or .csv)")
    parser.add_argument("--mapping", required=True, help="Mapping rule file (created if missing)")
    parser.add_argument("--hints", help="Keyword -> URI hints file")
    parser.add_argument("--output", required=True, help="Output zip file")
    parser.add_argument(
        "--batch",
        action="store_true",
        help="Never prompt; unmapped columns and values are skipped"
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_settings().log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        success = run_import(args)
    except BaoToolsError as e:
        logger.error(str(e))
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
