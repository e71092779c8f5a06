"""
Shared fixtures for the casedossier test suite.

Sample documents are small, realistic consumer-credit texts. Each one is
written so the bundled catalog classifies it unambiguously.
"""

from datetime import datetime, timezone

import pytest

from casedossier import DefaultCatalogProvider, Settings, build_dossier
from casedossier.canon import stable_id
from casedossier.models import (
    EventKind,
    Fact,
    FactKind,
    Precision,
    RawSpan,
    Relevance,
    Significance,
    TimelineEvent,
    Violation,
    ViolationKind,
)


# ============================================================================
# SAMPLE DOCUMENTS
# ============================================================================

ADVERSE_ACTION_TEXT = """ADVERSE ACTION NOTICE
March 5, 2024

Dear Jane Q. Doe,

We have declined your application for credit. This notice is provided pursuant to the Fair Credit Reporting Act.
Our decision was based on information in a credit report obtained from Equifax, a consumer reporting agency.
Your credit score: 580
Principal reason: Too many recent inquiries
You have the right to obtain a free copy of your credit report within 60 days.
"""

ATTORNEY_NOTES_TEXT = """ATTORNEY NOTES
Client: Jane Q. Doe
Date: March 20, 2024
Attorney: Sam Rivera

Client meeting to review the adverse action notice.
Client disputed the report with Equifax on March 12, 2024.
Violations: failure to provide proper adverse action notice
Damages: $2,500.00
"""

JANE_NOTES_TEXT = """ATTORNEY NOTES
Client: Jane Q. Doe
"""

JOHN_NOTES_TEXT = """ATTORNEY NOTES
Client: John Doe
"""


def accuracy_letter(date: str) -> str:
    """Correspondence citing 1681e(b); two triggers, so base strength 0.7."""
    return f"""{date}

Dear Jane Q. Doe,

Your file continues to show inaccurate information despite 15 U.S.C. § 1681e(b).

Sincerely,
Records Department
"""


SUMMONS_TEXT = """UNITED STATES DISTRICT COURT
DISTRICT OF Massachusetts
SUMMONS IN A CIVIL ACTION
Case No. 1:24-cv-10234
Plaintiff: Jane Q. Doe
Defendant: Equifax Information Services LLC
Date issued: April 1, 2024
Date of service: April 8, 2024

YOU ARE HEREBY SUMMONED and required to answer the complaint. Failure to appear and defend
may result in a default judgment.
"""


# ============================================================================
# FIXTURES
# ============================================================================

@pytest.fixture(scope="session")
def catalog():
    """The bundled catalog, loaded once."""
    return DefaultCatalogProvider().load()


@pytest.fixture
def bundle():
    """Four documents covering letters, notes and a court filing."""
    return [
        ("adverse_action_letter.txt", ADVERSE_ACTION_TEXT),
        ("attorney_notes.txt", ATTORNEY_NOTES_TEXT),
        ("summons.txt", SUMMONS_TEXT),
        ("letter_january.txt", accuracy_letter("2024-01-10")),
    ]


@pytest.fixture
def run(catalog):
    """Build a dossier with the bundled catalog and a given worker count."""
    def _run(inputs, workers=1, **settings):
        return build_dossier(inputs, catalog, Settings(workers=workers, **settings))
    return _run


# ============================================================================
# MODEL FACTORIES
# ============================================================================

def utc(year, month, day):
    return datetime(year, month, day, tzinfo=timezone.utc)


def make_fact(doc_id, kind, value, offset=0, confidence=0.8, relevance=Relevance.HIGH):
    return Fact(
        id=stable_id("fact", doc_id, kind.value, offset, value),
        kind=kind,
        value=value,
        raw_value=value,
        raw_span=RawSpan(doc_id=doc_id, offset=offset, length=len(value)),
        confidence=confidence,
        relevance=relevance,
        extractor="test",
    )


def make_violation(statute_id, doc_id, strength, occurrence=None, kind=ViolationKind.WILLFUL):
    return Violation(
        id=stable_id("viol", doc_id, statute_id),
        statute_id=statute_id,
        kind=kind,
        source_doc_id=doc_id,
        supporting_fact_ids=(),
        base_strength=strength,
        occurrence=occurrence,
        matched_triggers=1,
    )


def make_event(kind, instant, doc_id="doc-a1", description=None, confidence=0.8,
               significance=Significance.MEDIUM):
    description = description or kind.value.replace("_", " ")
    return TimelineEvent(
        id=stable_id("evt", doc_id, kind.value, instant.isoformat(), description),
        instant=instant,
        precision=Precision.DAY,
        kind=kind,
        description=description,
        source_doc_ids=(doc_id,),
        significance=significance,
        confidence=confidence,
    )


__all__ = [
    "ADVERSE_ACTION_TEXT",
    "ATTORNEY_NOTES_TEXT",
    "JANE_NOTES_TEXT",
    "JOHN_NOTES_TEXT",
    "SUMMONS_TEXT",
    "accuracy_letter",
    "make_event",
    "make_fact",
    "make_violation",
    "utc",
    "EventKind",
    "FactKind",
]
