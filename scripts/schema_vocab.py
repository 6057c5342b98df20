#!/usr/bin/env python
# BAO Tools - Schema Vocabulary
# =============================
# Compiles, inspects and compares schema vocabulary dumps
"""
Schema Vocabulary Tool

Subcommands:
1. compile  - build a dump from an ontology file and one or more templates
2. summary  - describe the content of a dump
3. diff     - compare two dumps tree by tree (terms added/removed)
4. check    - look for flaws in a template against an ontology

Usage:
    python scripts/schema_vocab.py compile --ontology onto.json --template schema.json --output vocab.dump.gz
    python scripts/schema_vocab.py summary vocab.dump.gz
    python scripts/schema_vocab.py diff old.dump.gz new.dump.gz
    python scripts/schema_vocab.py check schema.json --ontology onto.json
"""

import argparse
import logging
import sys
import time
from pathlib import Path
from typing import List, Optional

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from baotools.errors import BaoToolsError
from baotools.importer import TemplateChecker
from baotools.schema import Schema
from baotools.settings import get_settings
from baotools.vocab import InMemoryOntology, SchemaVocab, compare_vocabs, load_remap_file

logger = logging.getLogger(__name__)


def compile_vocab(ontology_path: str, template_paths: List[str], output: str, remap_path: Optional[str]) -> bool:
    """Build and save a schema vocabulary dump."""
    start_time = time.time()

    logger.info("=" * 60)
    logger.info("BAO Tools: Compile Schema Vocabulary")
    logger.info("=" * 60)

    ontology = InMemoryOntology.load(ontology_path)
    logger.info(f"Ontology: {ontology.num_properties()} properties, {ontology.num_values()} values")

    schemas = []
    for path in template_paths:
        schema = Schema.deserialise(path)
        logger.info(f"Template: <{schema.schema_prefix}> from {path}")
        schemas.append(schema)

    vocab = SchemaVocab.build(ontology, schemas, load_remap_file(remap_path))
    vocab.save(output)

    duration = time.time() - start_time
    logger.info("=" * 60)
    logger.info("COMPILE COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Terms: {vocab.num_terms()}")
    logger.info(f"Prefixes: {vocab.num_prefixes()}")
    logger.info(f"Trees: {len(vocab.get_trees())}")
    logger.info(f"Total duration: {duration:.1f}s")
    logger.info("=" * 60)
    return True


def show_summary(dump_path: str) -> bool:
    """Describe a dump without any templates attached."""
    vocab = SchemaVocab.load(dump_path)
    summary = vocab.get_summary()

    logger.info("=" * 60)
    logger.info("SCHEMA VOCABULARY SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Terms: {summary['terms']}")
    logger.info(f"Prefixes: {len(summary['prefixes'])}")
    for pfx in summary["prefixes"]:
        logger.info(f"  {pfx}")
    logger.info(f"Remappings: {summary['remappings']}")
    logger.info(f"Trees: {len(summary['trees'])}")
    for tree in summary["trees"]:
        nest = " / ".join(tree["group_nest"]) or "(root)"
        logger.info(f"  <{tree['prop_uri']}> in {nest} [{tree['schema_prefix']}]: {tree['nodes']} nodes, depths {tree['depths']}")
    logger.info("=" * 60)
    return True


def show_diff(old_path: str, new_path: str, as_json: bool, include_unchanged: bool) -> bool:
    """Print the tree-by-tree difference of two dumps."""
    diff = compare_vocabs(SchemaVocab.load(old_path), SchemaVocab.load(new_path))
    if as_json:
        print(diff.to_json(get_settings().dump_indent))
    else:
        print(f"Old: {old_path} ({diff.old_term_count} terms)")
        print(f"New: {new_path} ({diff.new_term_count} terms)")
        print(diff.format_report(include_unchanged=include_unchanged))
    return True


def check_template(template_path: str, ontology_path: str) -> bool:
    """Report template flaws; succeeds only when nothing was found."""
    schema = Schema.deserialise(template_path)
    ontology = InMemoryOntology.load(ontology_path)
    logger.info(f"Loaded schema <{schema.schema_prefix}>")
    logger.info(f"Loaded {ontology.num_properties()} properties, {ontology.num_values()} values")

    diagnostics = TemplateChecker(schema, ontology).check()
    for diag in diagnostics:
        print(f"** {diag}")
    logger.info(f"{len(diagnostics)} issue(s) found")
    return not diagnostics


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="BAO Tools: Schema Vocabulary",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python scripts/schema_vocab.py compile --ontology onto.json --template a.json b.json --output vocab.dump.gz
  python scripts/schema_vocab.py summary vocab.dump.gz
  python scripts/schema_vocab.py diff old.dump.gz new.dump.gz --json
  python scripts/schema_vocab.py check schema.json --ontology onto.json
        """
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    sub = parser.add_subparsers(dest="command", required=True)

    p_compile = sub.add_parser("compile", help="Build a dump from ontology + templates")
    p_compile.add_argument("--ontology", required=True, help="Ontology JSON file")
    p_compile.add_argument("--template", nargs="+", default=[], help="Template JSON files")
    p_compile.add_argument("--remap", help="JSON object of fromURI -> toURI")
    p_compile.add_argument("--output", required=True, help="Dump file (.gz to compress)")

    p_summary = sub.add_parser("summary", help="Describe a dump")
    p_summary.add_argument("dump", help="Dump file")

    p_diff = sub.add_parser("diff", help="Compare two dumps")
    p_diff.add_argument("old", help="Baseline dump")
    p_diff.add_argument("new", help="Current dump")
    p_diff.add_argument("--json", action="store_true", help="Emit JSON instead of text")
    p_diff.add_argument("--all", action="store_true", help="Include unchanged trees")

    p_check = sub.add_parser("check", help="Check a template for flaws")
    p_check.add_argument("template", help="Template JSON file")
    p_check.add_argument("--ontology", required=True, help="Ontology JSON file")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else get_settings().log_level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    try:
        if args.command == "compile":
            success = compile_vocab(args.ontology, args.template, args.output, args.remap)
        elif args.command == "summary":
            success = show_summary(args.dump)
        elif args.command == "diff":
            success = show_diff(args.old, args.new, args.json, args.all)
        else:
            success = check_template(args.template, args.ontology)
    except BaoToolsError as e:
        logger.error(str(e))
        sys.exit(1)

    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
