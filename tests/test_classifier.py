"""
Tests for the document classifier

Validates:
- Signal scoring (filename, header, body cap, statute)
- Confidence multiplier and 0.95 cap
- Arg-max primary with ordinal tie-break
- Filename-only classification for empty text
- Monotonicity: an extra matching signal never lowers a Kind's score
"""

import pytest
import yaml

from casedossier.catalog import Scoring, load_catalog_from_string
from casedossier.engine.classifier import classify, header_text, multiplier, score_document
from casedossier.models import FactKind, Kind

from conftest import ADVERSE_ACTION_TEXT, ATTORNEY_NOTES_TEXT, SUMMONS_TEXT, accuracy_letter


# ============================================================================
# FIXTURES
# ============================================================================

def small_catalog(body_regexes, header_regexes=("NOTICE OF DISPUTE",)):
    return load_catalog_from_string(yaml.safe_dump({
        "version": "1.0.0",
        "kinds": {
            "DisputeLetter": {
                "filenameTokens": ["dispute"],
                "headerRegexes": list(header_regexes),
                "bodyRegexes": list(body_regexes),
            },
            "Correspondence": {
                "filenameTokens": ["dispute"],
                "headerRegexes": list(header_regexes),
            },
        },
    }))


def score_of(scores, kind):
    return next(s for s in scores if s.kind == kind)


DISPUTE_TEXT = "NOTICE OF DISPUTE\nI dispute the balance.\nPlease reinvestigate.\n"


# ============================================================================
# SCENARIOS
# ============================================================================

def test_adverse_action_letter(catalog):
    """Header, body, statute and filename signals give AdverseAction at 0.95."""
    result = classify("adverse_action_letter.txt", ADVERSE_ACTION_TEXT, catalog)

    assert result.primary == Kind.ADVERSE_ACTION
    assert result.score_for(Kind.ADVERSE_ACTION) == pytest.approx(1.4)
    assert result.primary_confidence == pytest.approx(0.95)


def test_adverse_action_signal_breakdown(catalog):
    scores = score_document("adverse_action_letter.txt", ADVERSE_ACTION_TEXT, catalog)
    adverse = score_of(scores, Kind.ADVERSE_ACTION)

    assert adverse.filename_hits == 2
    assert adverse.header_hits == 1
    assert adverse.body_hits == 5
    assert adverse.statute_hits == 1


S1_LETTER = "Dear Jane Q. Doe,\nThis notice is provided pursuant to the Fair Credit Reporting Act.\n"


def test_two_line_adverse_action_letter(run):
    dossier = run([("adverse_action.txt", S1_LETTER)])
    doc = dossier.docs[0]

    assert doc.kind == Kind.ADVERSE_ACTION
    assert doc.primary_confidence >= 0.6
    names = [f for f in dossier.facts if f.kind == FactKind.CLIENT_NAME]
    assert [f.value for f in names] == ["Jane Q. Doe"]
    assert [v.statute_id for v in dossier.violations] == ["FCRA-1681m-a"]


def test_two_line_letter_needs_its_filename(catalog):
    """Without a filename hint the salutation outscores the FCRA citation."""
    result = classify("letter.txt", S1_LETTER, catalog)

    assert result.score_for(Kind.ADVERSE_ACTION) == pytest.approx(0.5)
    assert result.score_for(Kind.CORRESPONDENCE) == pytest.approx(0.7)
    assert result.primary == Kind.CORRESPONDENCE


def test_attorney_notes(catalog):
    result = classify("attorney_notes.txt", ATTORNEY_NOTES_TEXT, catalog)

    assert result.primary == Kind.ATTORNEY_NOTES
    assert result.score_for(Kind.ATTORNEY_NOTES) == pytest.approx(1.2)


def test_summons(catalog):
    result = classify("summons.txt", SUMMONS_TEXT, catalog)
    assert result.primary == Kind.SUMMONS


def test_plain_letter_is_correspondence(catalog):
    result = classify("letter_january.txt", accuracy_letter("2024-01-10"), catalog)

    assert result.primary == Kind.CORRESPONDENCE
    assert result.secondaries == ()


def test_nothing_matches_is_other(catalog):
    result = classify("scan_0001.txt", "lorem ipsum dolor sit amet", catalog)

    assert result.primary == Kind.OTHER
    assert result.primary_confidence == 0.0


def test_empty_text_uses_filename(catalog):
    """An unreadable document still gets the Kind its name suggests."""
    result = classify("summons_missing.txt", "", catalog)

    assert result.primary == Kind.SUMMONS
    assert result.primary_confidence == pytest.approx(0.3)


# ============================================================================
# SCORING RULES
# ============================================================================

def test_body_hits_are_capped():
    catalog = small_catalog(["dispute", "balance", "reinvestigate", "please"])
    scores = score_document("note.txt", DISPUTE_TEXT, catalog)
    dispute = score_of(scores, Kind.DISPUTE_LETTER)

    assert dispute.body_hits == 4
    assert dispute.score == pytest.approx(0.4 + 0.3)


def test_filename_counts_once():
    catalog = small_catalog([])
    scores = score_document("dispute_dispute.txt", "", catalog)
    assert score_of(scores, Kind.DISPUTE_LETTER).score == pytest.approx(0.3)


def test_tie_broken_by_kind_ordinal():
    """DisputeLetter and Correspondence score equal; DisputeLetter is declared first."""
    catalog = small_catalog([])
    result = classify("dispute.txt", DISPUTE_TEXT, catalog)

    assert result.primary == Kind.DISPUTE_LETTER
    assert result.secondaries[0][0] == Kind.CORRESPONDENCE


@pytest.mark.parametrize("hits,expected", [(1, 1.0), (3, 1.0), (4, 1.2), (5, 1.2), (6, 1.4)])
def test_confidence_multiplier(hits, expected):
    assert multiplier(hits, Scoring()) == expected


def test_header_is_first_ten_lines():
    text = "\n".join(f"line {i}" for i in range(20))
    header = header_text(text)

    assert "line 9" in header
    assert "line 10" not in header


def test_header_signal_ignores_late_lines():
    catalog = small_catalog([])
    text = "\n" * 12 + "NOTICE OF DISPUTE\n"
    scores = score_document("note.txt", text, catalog)
    assert score_of(scores, Kind.DISPUTE_LETTER).header_hits == 0


# ============================================================================
# MONOTONICITY
# ============================================================================

def test_extra_body_signal_never_lowers_score():
    before = small_catalog(["dispute"])
    after = small_catalog(["dispute", "reinvestigate"])

    old = score_of(score_document("note.txt", DISPUTE_TEXT, before), Kind.DISPUTE_LETTER)
    new = score_of(score_document("note.txt", DISPUTE_TEXT, after), Kind.DISPUTE_LETTER)

    assert new.score >= old.score


def test_extra_header_signal_never_lowers_score():
    before = small_catalog(["dispute"])
    after = small_catalog(["dispute"], header_regexes=("NOTICE OF DISPUTE", "DISPUTE"))

    old = score_of(score_document("note.txt", DISPUTE_TEXT, before), Kind.DISPUTE_LETTER)
    new = score_of(score_document("note.txt", DISPUTE_TEXT, after), Kind.DISPUTE_LETTER)

    assert new.score > old.score


def test_classification_is_deterministic(catalog):
    first = classify("attorney_notes.txt", ATTORNEY_NOTES_TEXT, catalog)
    second = classify("attorney_notes.txt", ATTORNEY_NOTES_TEXT, catalog)
    assert first == second
