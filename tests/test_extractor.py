"""
Tests for the fact extractor

Validates:
- Facts for each document Kind, normalized values and spans
- Confidence = baseConfidence * category weight
- Violation strength from matched triggers
- Timeline events from event extractors and dated violations
- A failing extractor is logged and contributes nothing
"""

import pytest

from casedossier.canon import stable_id, text_hash
from casedossier.engine import classify
from casedossier.engine.extractor import FactExtractor, element_satisfaction
from casedossier.models import (
    Document,
    DocumentStatus,
    ElementStatus,
    EventKind,
    EvidenceType,
    FactKind,
    Kind,
    Precision,
    ValidationLog,
    ViolationKind,
)

from conftest import ADVERSE_ACTION_TEXT, ATTORNEY_NOTES_TEXT, SUMMONS_TEXT, accuracy_letter


# ============================================================================
# FIXTURES
# ============================================================================

def make_document(catalog, path, text, metadata=None):
    classification = classify(path, text, catalog)
    return Document(
        id=stable_id("doc", text_hash(text)),
        path=path,
        kind=classification.primary,
        primary_confidence=classification.primary_confidence,
        secondaries=classification.secondaries,
        text=text,
        metadata=metadata or {},
    )


@pytest.fixture
def extract(catalog):
    """Classify and extract one in-memory document."""
    def _extract(path, text, metadata=None):
        document = make_document(catalog, path, text, metadata)
        log = ValidationLog()
        extraction = FactExtractor(catalog).extract(document, log)
        return document, extraction, log
    return _extract


def facts_of(extraction, kind):
    return [f for f in extraction.facts if f.kind == kind]


# ============================================================================
# FACTS
# ============================================================================

def test_adverse_action_client_name(extract):
    """Exactly one ClientName, read from the salutation."""
    document, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)

    names = facts_of(extraction, FactKind.CLIENT_NAME)
    assert [f.value for f in names] == ["Jane Q. Doe"]
    assert names[0].confidence == pytest.approx(0.85 * 0.4)
    assert names[0].extractor == "salutation_client_name"


def test_adverse_action_facts(extract):
    _, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)
    values = {f.kind: f.value for f in extraction.facts}

    assert values[FactKind.LETTER_DATE] == "2024-03-05"
    assert values[FactKind.BUREAU_NAME] == "Equifax"
    assert values[FactKind.CREDIT_SCORE] == "580"
    assert values[FactKind.REASON_CODE] == "Too many recent inquiries"
    assert values[FactKind.ACTION_TAKEN] == "declined"


def test_spans_point_at_raw_text(extract):
    document, extraction, _ = extract("attorney_notes.txt", ATTORNEY_NOTES_TEXT)

    assert extraction.facts
    for fact in extraction.facts:
        span = fact.raw_span
        assert span.doc_id == document.id
        assert document.text[span.offset:span.end] == fact.raw_value


def test_notes_money_and_dates(extract):
    _, extraction, _ = extract("attorney_notes.txt", ATTORNEY_NOTES_TEXT)

    amount = facts_of(extraction, FactKind.CASE_AMOUNT)[0]
    assert amount.value == "250000 USD"
    assert amount.raw_value == "$2,500.00"
    assert amount.money.minor_units == 250000

    assert facts_of(extraction, FactKind.EVENT_DATE)[0].value == "2024-03-20"
    assert facts_of(extraction, FactKind.ATTORNEY_NAME)[0].value == "Sam Rivera"


def test_facts_sorted_by_offset(extract):
    _, extraction, _ = extract("summons.txt", SUMMONS_TEXT)
    offsets = [f.raw_span.offset for f in extraction.facts]
    assert offsets == sorted(offsets)


def test_duplicate_matches_collapse(extract):
    """Two extractors finding the same defendant at the same span yield one fact."""
    _, extraction, _ = extract("summons.txt", SUMMONS_TEXT)

    defendants = facts_of(extraction, FactKind.DEFENDANT_NAME)
    assert [f.value for f in defendants] == ["Equifax Information Services LLC"]


def test_month_day_uses_document_year(extract):
    text = "ATTORNEY NOTES\nClient: Jane Q. Doe\nDate: March 20, 2024\nMeeting date: April 2\n"
    _, extraction, _ = extract("attorney_notes.txt", text)

    dates = sorted(f.value for f in facts_of(extraction, FactKind.EVENT_DATE))
    assert dates == ["2024-03-20", "2024-04-02"]


def test_metadata_year_halves_confidence(extract):
    text = "ATTORNEY NOTES\nClient: Jane Q. Doe\nDate: April 2\n"
    _, extraction, _ = extract("attorney_notes.txt", text, metadata={"year": 2023})

    fact = facts_of(extraction, FactKind.EVENT_DATE)[0]
    assert fact.value == "2023-04-02"
    assert fact.confidence == pytest.approx(0.85 * 0.4 * 0.5)

    event = next(e for e in extraction.events if e.kind == EventKind.CLIENT_MEETING)
    assert event.precision == Precision.APPROX


def test_invalid_date_is_dropped(extract):
    text = "ATTORNEY NOTES\nClient: Jane Q. Doe\nDate: February 30, 2024\n"
    _, extraction, _ = extract("attorney_notes.txt", text)

    assert facts_of(extraction, FactKind.EVENT_DATE) == []
    assert all(e.kind != EventKind.CLIENT_MEETING for e in extraction.events)


def test_failed_document_extracts_nothing(catalog):
    document = Document(
        id="doc-failed", path="x.txt", kind=Kind.OTHER, primary_confidence=0.0,
        status=DocumentStatus.FAILED, reason="INPUT_UNREADABLE",
    )
    extraction = FactExtractor(catalog).extract(document, ValidationLog())

    assert extraction.facts == ()
    assert extraction.evidence is None


# ============================================================================
# VIOLATIONS
# ============================================================================

def test_adverse_action_violation(extract):
    """Three triggers: 0.5 + 0.3."""
    document, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)

    assert [v.statute_id for v in extraction.violations] == ["FCRA-1681m-a"]
    violation = extraction.violations[0]
    assert violation.matched_triggers == 3
    assert violation.base_strength == pytest.approx(0.8)
    assert violation.kind == ViolationKind.NEGLIGENT
    assert violation.source_doc_id == document.id
    assert violation.occurrence.date().isoformat() == "2024-03-05"


def test_violation_supporting_facts(extract):
    _, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)
    violation = extraction.violations[0]

    assert set(violation.supporting_fact_ids) == {f.id for f in extraction.facts}


def test_element_satisfaction(extract):
    _, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)
    results = {r.element_id: r.status for r in extraction.violations[0].element_satisfaction}

    assert results == {
        "consumer_identified": ElementStatus.SATISFIED,
        "notice_dated": ElementStatus.SATISFIED,
        "agency_disclosed": ElementStatus.SATISFIED,
        "score_disclosed": ElementStatus.SATISFIED,
    }


def test_element_satisfaction_partial(catalog, extract):
    _, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)
    scores_only = tuple(f for f in extraction.facts if f.kind == FactKind.CREDIT_SCORE)

    results = element_satisfaction(catalog.statute("FCRA-1681m-a"), scores_only)
    statuses = {r.element_id: r.status for r in results}
    assert statuses["score_disclosed"] == ElementStatus.PARTIAL
    assert statuses["consumer_identified"] == ElementStatus.UNSATISFIED


def test_accuracy_letter_violation(extract):
    _, extraction, _ = extract("letter_january.txt", accuracy_letter("2024-01-10"))

    assert [v.statute_id for v in extraction.violations] == ["FCRA-1681e-b"]
    assert extraction.violations[0].base_strength == pytest.approx(0.7)


def test_strength_capped_at_point_nine(extract):
    text = (
        "Dear Jane Q. Doe,\n"
        "inaccurate information, a mixed credit file, 15 U.S.C. § 1681e(b), and no "
        "reasonable procedures to assure maximum possible accuracy.\n"
    )
    _, extraction, _ = extract("letter.txt", text)

    violation = next(v for v in extraction.violations if v.statute_id == "FCRA-1681e-b")
    assert violation.matched_triggers == 4
    assert violation.base_strength == pytest.approx(0.9)


# ============================================================================
# EVENTS AND EVIDENCE
# ============================================================================

def test_notes_events(extract):
    _, extraction, _ = extract("attorney_notes.txt", ATTORNEY_NOTES_TEXT)
    events = {(e.kind, e.instant.date().isoformat()) for e in extraction.events}

    assert events == {
        (EventKind.CLIENT_MEETING, "2024-03-20"),
        (EventKind.DISPUTE_SUBMITTED, "2024-03-12"),
    }


def test_dated_violation_becomes_event(extract):
    _, extraction, _ = extract("adverse_action_letter.txt", ADVERSE_ACTION_TEXT)
    kinds = [e.kind for e in extraction.events]

    assert EventKind.ADVERSE_ACTION in kinds
    assert EventKind.FCRA_VIOLATION in kinds
    violation_event = next(e for e in extraction.events if e.kind == EventKind.FCRA_VIOLATION)
    assert violation_event.description == "Violation of 15 U.S.C. § 1681m(a)"


def test_events_ordered(extract):
    _, extraction, _ = extract("summons.txt", SUMMONS_TEXT)
    instants = [e.instant for e in extraction.events]

    assert [e.kind for e in extraction.events] == [EventKind.SUMMONS_ISSUED, EventKind.SUMMONS_SERVED]
    assert instants == sorted(instants)


def test_evidence_item(extract):
    document, extraction, _ = extract("attorney_notes.txt", ATTORNEY_NOTES_TEXT)
    evidence = extraction.evidence

    assert evidence.doc_id == document.id
    assert evidence.evidence_type == EvidenceType.TESTIMONIAL
    assert evidence.fact_ids == tuple(f.id for f in extraction.facts)


# ============================================================================
# EXTRACTOR FAILURE
# ============================================================================

def test_extractor_panic_is_isolated(extract, monkeypatch):
    """A raising extractor leaves one EXTRACTOR_PANIC entry; other facts survive."""
    def explode(text, currency="USD"):
        raise RuntimeError("boom")

    monkeypatch.setattr("casedossier.engine.extractor.parse_money", explode)
    document, extraction, log = extract("attorney_notes.txt", ATTORNEY_NOTES_TEXT)

    assert facts_of(extraction, FactKind.CASE_AMOUNT) == []
    assert facts_of(extraction, FactKind.CLIENT_NAME)

    entries = log.entries_for(document.id)
    assert [e.code for e in entries] == ["CD_EXTRACTOR_PANIC"]
    assert "notes_case_amount" in entries[0].message


def test_extraction_is_pure(extract):
    _, first, _ = extract("summons.txt", SUMMONS_TEXT)
    _, second, _ = extract("summons.txt", SUMMONS_TEXT)
    assert first == second
