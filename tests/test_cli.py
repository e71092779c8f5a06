"""
Tests for the casedossier command line

Validates:
- run writes a dossier and exits 0
- Usage and settings errors exit 2
- Invalid catalogs exit 3
- validate-catalog reports on a catalog
"""

import json
import logging

import pytest

from casedossier.cli import ExitCode, main
from casedossier.logging_setup import PACKAGE_LOGGER

from conftest import ATTORNEY_NOTES_TEXT, SUMMONS_TEXT


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    """No CD_* settings leak in; the package logger is restored afterwards."""
    for name in ("CD_WORKERS", "CD_EXTRACTION_TIMEOUT", "CD_MAX_DOCUMENT_BYTES",
                 "CD_LOG_LEVEL", "CD_CATALOG_PATH"):
        monkeypatch.delenv(name, raising=False)
    yield
    logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def documents(tmp_path):
    notes = tmp_path / "attorney_notes.txt"
    notes.write_text(ATTORNEY_NOTES_TEXT, encoding="utf-8")
    summons = tmp_path / "summons.txt"
    summons.write_text(SUMMONS_TEXT, encoding="utf-8")
    return [str(notes), str(summons)]


@pytest.fixture
def bad_catalog(tmp_path):
    path = tmp_path / "catalog.yaml"
    path.write_text(
        "version: 1.0.0\n"
        "kinds:\n"
        "  Summons:\n"
        "    headerRegexes: ['(unclosed']\n",
        encoding="utf-8",
    )
    return str(path)


# ============================================================================
# RUN
# ============================================================================

def test_run_writes_dossier(documents, tmp_path):
    out = tmp_path / "dossier.json"

    code = main(["--log-level", "WARNING", "run", *documents, "--default-catalog",
                 "--workers", "2", "--out", str(out)])

    assert code == ExitCode.SUCCESS
    data = json.loads(out.read_text(encoding="utf-8"))
    assert len(data["docs"]) == 2
    assert data["validationReport"]["invariantsChecked"][-1] == "output_schema"


def test_run_prints_to_stdout(documents, capsys):
    code = main(["--log-level", "ERROR", "run", *documents, "--default-catalog"])

    assert code == ExitCode.SUCCESS
    data = json.loads(capsys.readouterr().out)
    assert {d["kind"] for d in data["docs"]} == {"AttorneyNotes", "Summons"}


def test_missing_input_is_not_fatal(documents, tmp_path, capsys):
    missing = str(tmp_path / "summons_missing.txt")

    code = main(["--log-level", "ERROR", "run", *documents, missing, "--default-catalog"])

    assert code == ExitCode.SUCCESS
    assert "1 document(s) failed" in capsys.readouterr().err


def test_catalog_from_environment(documents, monkeypatch, tmp_path):
    from casedossier.catalog import DEFAULT_CATALOG_PATH

    monkeypatch.setenv("CD_CATALOG_PATH", str(DEFAULT_CATALOG_PATH))
    out = tmp_path / "dossier.json"

    assert main(["--log-level", "ERROR", "run", *documents, "--out", str(out)]) == ExitCode.SUCCESS


# ============================================================================
# ERRORS
# ============================================================================

def test_no_files():
    assert main(["run", "--default-catalog"]) == ExitCode.INPUT_INVALID


def test_no_catalog(documents, capsys):
    assert main(["run", *documents]) == ExitCode.INPUT_INVALID
    assert "No catalog given" in capsys.readouterr().err


def test_zero_workers(documents):
    assert main(["run", *documents, "--default-catalog", "--workers", "0"]) == ExitCode.INPUT_INVALID


def test_non_positive_timeout(documents):
    assert main(["run", *documents, "--default-catalog", "--timeout", "0"]) == ExitCode.INPUT_INVALID


def test_bad_environment(documents, monkeypatch):
    monkeypatch.setenv("CD_WORKERS", "lots")
    assert main(["run", *documents, "--default-catalog"]) == ExitCode.INPUT_INVALID


def test_unknown_option():
    assert main(["run", "--no-such-flag"]) == ExitCode.INPUT_INVALID


def test_no_command():
    assert main([]) == ExitCode.INPUT_INVALID


def test_invalid_catalog(documents, bad_catalog, capsys):
    code = main(["run", *documents, "--catalog", bad_catalog])

    assert code == ExitCode.CATALOG_INVALID
    assert "(unclosed" in capsys.readouterr().err


# ============================================================================
# VALIDATE-CATALOG
# ============================================================================

def test_validate_default_catalog(capsys):
    assert main(["validate-catalog", "--default-catalog"]) == ExitCode.SUCCESS
    assert "Catalog is valid" in capsys.readouterr().err


def test_validate_bad_catalog(bad_catalog):
    assert main(["validate-catalog", "--catalog", bad_catalog]) == ExitCode.CATALOG_INVALID
