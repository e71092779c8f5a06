#!/usr/bin/env python3
"""
CaseDossier CLI

Command-line interface for building case dossiers from document bundles.

Usage:
    casedossier run notes.txt letter.txt --catalog catalog.yaml --out dossier.json
    casedossier run notes.txt letter.txt --default-catalog --workers 4
    casedossier validate-catalog --catalog catalog.yaml

Exit Codes:
    0   SUCCESS          - Dossier written
    2   INPUT_INVALID    - Invalid arguments, settings or inputs
    3   CATALOG_INVALID  - Catalog could not be loaded or validated
    4   CANCELLED        - Run was cancelled, no dossier written
    5   INTERNAL_ERROR   - Invariant failure or unexpected error

Status messages go to stderr; the dossier goes to --out, or to stdout
when --out is not given.
"""
from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .catalog import Catalog, DefaultCatalogProvider, FileCatalogProvider
from .config import Settings
from .engine import CancellationToken, DossierAssembler
from .exceptions import (
    CatalogInvalidError,
    InternalInvariantViolation,
    PipelineCancelledError,
)
from .logging_setup import configure_logging
from .output import to_json, write_dossier


# ============================================================================
# EXIT CODES
# ============================================================================

class ExitCode:
    """Deterministic exit codes for pipeline integration."""
    SUCCESS = 0           # Dossier produced
    INPUT_INVALID = 2     # Invalid arguments or inputs
    CATALOG_INVALID = 3   # Catalog load/validation failed
    CANCELLED = 4         # Cancelled before completion
    INTERNAL_ERROR = 5    # Invariant violation or unexpected error


# ============================================================================
# OUTPUT HELPERS
# ============================================================================

class Colors:
    """ANSI color codes for terminal output."""
    BLUE = '\033[94m'
    CYAN = '\033[96m'
    GREEN = '\033[92m'
    YELLOW = '\033[93m'
    RED = '\033[91m'
    BOLD = '\033[1m'
    END = '\033[0m'

    @classmethod
    def disable(cls):
        cls.BLUE = ''
        cls.CYAN = ''
        cls.GREEN = ''
        cls.YELLOW = ''
        cls.RED = ''
        cls.BOLD = ''
        cls.END = ''


def print_success(text: str):
    print(f"{Colors.GREEN}[OK] {text}{Colors.END}", file=sys.stderr)


def print_error(text: str):
    print(f"{Colors.RED}[ERROR] {text}{Colors.END}", file=sys.stderr)


def print_warning(text: str):
    print(f"{Colors.YELLOW}[WARN] {text}{Colors.END}", file=sys.stderr)


def print_info(text: str):
    print(f"{Colors.BLUE}[INFO] {text}{Colors.END}", file=sys.stderr)


def print_kv(key: str, value: str, indent: int = 0):
    spaces = "  " * indent
    print(f"{spaces}{Colors.BOLD}{key}:{Colors.END} {value}", file=sys.stderr)


# ============================================================================
# CATALOG RESOLUTION
# ============================================================================

def resolve_catalog(args, settings: Settings) -> Optional[Catalog]:
    """
    Load the catalog named on the command line.

    ``--catalog`` wins over ``CD_CATALOG_PATH``; the bundled catalog is
    used only when ``--default-catalog`` is given.

    Raises:
        CatalogInvalidError: If the catalog cannot be loaded or validated
    """
    path = getattr(args, "catalog", None) or settings.catalog_path
    if getattr(args, "default_catalog", False) and not getattr(args, "catalog", None):
        return DefaultCatalogProvider().load()
    if path:
        return FileCatalogProvider(path).load()
    return None


def _report_catalog_error(error: CatalogInvalidError) -> None:
    print_error(error.message)
    for problem in error.errors:
        print(f"  {Colors.RED}[X]{Colors.END} {problem}", file=sys.stderr)


# ============================================================================
# COMMANDS
# ============================================================================

def cmd_run(args, settings: Settings) -> int:
    """Build a dossier from the given files."""
    settings = settings.with_overrides(
        workers=args.workers, extraction_timeout=args.timeout
    )
    if not args.files:
        print_error("No input files given")
        return ExitCode.INPUT_INVALID

    try:
        catalog = resolve_catalog(args, settings)
    except CatalogInvalidError as e:
        _report_catalog_error(e)
        return ExitCode.CATALOG_INVALID
    if catalog is None:
        print_error("No catalog given: pass --catalog PATH or --default-catalog")
        return ExitCode.INPUT_INVALID

    token = CancellationToken()
    try:
        dossier = DossierAssembler(catalog, settings).assemble(args.files, token)
    except KeyboardInterrupt:
        token.cancel()
        print_warning("Cancelled")
        return ExitCode.CANCELLED
    except PipelineCancelledError as e:
        print_warning(e.message)
        return ExitCode.CANCELLED
    except InternalInvariantViolation as e:
        print_error(f"{e.message}: {', '.join(e.invariants)}")
        return ExitCode.INTERNAL_ERROR

    if args.out:
        target = write_dossier(dossier, args.out)
        print_success(f"Dossier written to {target}")
    else:
        sys.stdout.write(to_json(dossier))

    failed = dossier.validation_report.failed_documents
    if failed:
        print_warning(f"{len(failed)} document(s) failed: {', '.join(failed)}")
    for key, value in dossier.summary().items():
        print_kv(key, str(value))
    return ExitCode.SUCCESS


def cmd_validate_catalog(args, settings: Settings) -> int:
    """Validate a catalog file and print its contents summary."""
    try:
        catalog = resolve_catalog(args, settings)
    except CatalogInvalidError as e:
        _report_catalog_error(e)
        return ExitCode.CATALOG_INVALID
    if catalog is None:
        print_error("No catalog given: pass --catalog PATH or --default-catalog")
        return ExitCode.INPUT_INVALID

    print_success("Catalog is valid!")
    print_kv("Name", catalog.name or "-")
    print_kv("Version", catalog.version)
    print_kv("Fingerprint", catalog.fingerprint[:32] + "...")
    print_kv("Kinds", str(len(catalog.kinds)))
    print_kv("Fact Extractors", str(len(catalog.fact_extractors)))
    print_kv("Event Extractors", str(len(catalog.event_extractors)))
    print_kv("Statutes", str(len(catalog.statutes)))
    print_kv("Violation Signatures", str(len(catalog.violation_signatures)))
    print_kv("Amplification Rules", str(len(catalog.amplification_rules)))
    print_kv("Pattern Templates", str(len(catalog.pattern_templates)))
    print_kv("Chain Templates", str(len(catalog.chain_templates)))
    return ExitCode.SUCCESS


# ============================================================================
# MAIN
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="casedossier",
        description="CaseDossier - multi-document case dossier builder",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Exit Codes:
  0   SUCCESS          Dossier produced
  2   INPUT_INVALID    Invalid arguments or inputs
  3   CATALOG_INVALID  Catalog load/validation failed
  4   CANCELLED        Cancelled before completion
  5   INTERNAL_ERROR   Invariant violation or unexpected error

Examples:
  casedossier run notes.txt letter.txt --catalog catalog.yaml --out dossier.json
  casedossier run *.txt --default-catalog --workers 8
  casedossier validate-catalog --catalog catalog.yaml
        """,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--log-level", help="Log level (default: CD_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # run
    run_parser = subparsers.add_parser("run", help="Build a dossier from documents")
    run_parser.add_argument("files", nargs="*", help="Document files (UTF-8 text)")
    catalog_group = run_parser.add_mutually_exclusive_group()
    catalog_group.add_argument("--catalog", "-c", help="Catalog YAML/JSON file")
    catalog_group.add_argument("--default-catalog", action="store_true",
                               help="Use the bundled default catalog")
    run_parser.add_argument("--out", "-o", type=Path, help="Output JSON file (default: stdout)")
    run_parser.add_argument("--workers", "-w", type=int, help="Worker pool size")
    run_parser.add_argument("--timeout", "-t", type=float,
                            help="Per-document extraction timeout in seconds")
    run_parser.set_defaults(func=cmd_run)

    # validate-catalog
    val_parser = subparsers.add_parser("validate-catalog", help="Validate a catalog file")
    val_group = val_parser.add_mutually_exclusive_group()
    val_group.add_argument("--catalog", "-c", help="Catalog YAML/JSON file")
    val_group.add_argument("--default-catalog", action="store_true",
                           help="Validate the bundled default catalog")
    val_parser.set_defaults(func=cmd_validate_catalog)

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    if not sys.stderr.isatty():
        Colors.disable()

    parser = build_parser()
    try:
        args = parser.parse_args(argv)
    except SystemExit as e:
        # argparse exits 2 on usage errors, which is INPUT_INVALID already
        return int(e.code or 0)

    if not args.command:
        parser.print_help(sys.stderr)
        return ExitCode.INPUT_INVALID

    try:
        settings = Settings.from_env()
    except ValueError as e:
        print_error(str(e))
        return ExitCode.INPUT_INVALID
    if getattr(args, "workers", None) is not None and args.workers < 1:
        print_error(f"--workers must be >= 1, got {args.workers}")
        return ExitCode.INPUT_INVALID
    if getattr(args, "timeout", None) is not None and args.timeout <= 0:
        print_error(f"--timeout must be > 0, got {args.timeout}")
        return ExitCode.INPUT_INVALID

    configure_logging(args.log_level or settings.log_level)

    try:
        return args.func(args, settings)
    except Exception as e:
        print_error(f"Unexpected error: {e}")
        return ExitCode.INTERNAL_ERROR


if __name__ == "__main__":
    sys.exit(main())
