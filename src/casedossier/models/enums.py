"""
CaseDossier Enumerations

All enumeration types used throughout the dossier pipeline.
Organized by pipeline stage.

All enums inherit from (str, Enum) for JSON serialization compatibility.
Declaration order is significant: it is the ordinal used as a stable
tie-breaker wherever outputs are sorted.
"""
from __future__ import annotations

from enum import Enum


def ordinal(member: Enum) -> int:
    """Position of an enum member in its declaration order."""
    return _ORDINALS[type(member)][member]


# =============================================================================
# Documents
# =============================================================================

class Kind(str, Enum):
    """Closed set of document archetypes produced by the classifier."""
    ADVERSE_ACTION = "AdverseAction"
    SUMMONS = "Summons"
    COMPLAINT = "Complaint"
    CIVIL_COVER_SHEET = "CivilCoverSheet"
    ATTORNEY_NOTES = "AttorneyNotes"
    DENIAL_LETTER = "DenialLetter"
    CREDIT_REPORT = "CreditReport"
    DISPUTE_LETTER = "DisputeLetter"
    CORRESPONDENCE = "Correspondence"
    OTHER = "Other"


class DocumentStatus(str, Enum):
    """Outcome of reading and extracting a single document."""
    OK = "ok"
    FAILED = "failed"


class EvidenceType(str, Enum):
    """How a document would be offered as evidence."""
    DOCUMENTARY = "documentary"
    TESTIMONIAL = "testimonial"
    STATISTICAL = "statistical"
    CIRCUMSTANTIAL = "circumstantial"


# =============================================================================
# Extraction
# =============================================================================

class FactKind(str, Enum):
    """Typed fact categories emitted by the extractor."""
    CLIENT_NAME = "ClientName"
    CASE_AMOUNT = "CaseAmount"
    COURT_NAME = "CourtName"
    CASE_NUMBER = "CaseNumber"
    FILING_DATE = "FilingDate"
    JURISDICTION = "Jurisdiction"
    DEFENDANT_NAME = "DefendantName"
    STATUTE_CITATION = "StatuteCitation"
    VIOLATION_CLAIM = "ViolationClaim"
    DISPUTE_DATE = "DisputeDate"
    EVENT_DATE = "EventDate"
    PLAINTIFF_NAME = "PlaintiffName"
    ATTORNEY_NAME = "AttorneyName"
    CREDITOR_NAME = "CreditorName"
    BUREAU_NAME = "BureauName"
    ACCOUNT_NUMBER = "AccountNumber"
    CREDIT_SCORE = "CreditScore"
    REASON_CODE = "ReasonCode"
    ACTION_TAKEN = "ActionTaken"
    LETTER_DATE = "LetterDate"
    RESPONSE_DEADLINE = "ResponseDeadline"
    NATURE_OF_SUIT = "NatureOfSuit"

    @property
    def is_date(self) -> bool:
        return self in DATE_FACT_KINDS

    @property
    def is_money(self) -> bool:
        return self in MONEY_FACT_KINDS


DATE_FACT_KINDS = frozenset({
    FactKind.FILING_DATE,
    FactKind.DISPUTE_DATE,
    FactKind.EVENT_DATE,
    FactKind.LETTER_DATE,
    FactKind.RESPONSE_DEADLINE,
})

MONEY_FACT_KINDS = frozenset({FactKind.CASE_AMOUNT})


class Relevance(str, Enum):
    """Declared relevance of an extracted fact."""
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        """Higher rank means more relevant (Low=1, Medium=2, High=3)."""
        return {"High": 3, "Medium": 2, "Low": 1}[self.value]

    @property
    def weight(self) -> float:
        """Numeric relevance used when scoring chain links."""
        return {"High": 1.0, "Medium": 0.6, "Low": 0.3}[self.value]


class ExtractorCategory(str, Enum):
    """Signal category of an extractor; shares weights with the classifier."""
    FILENAME = "filename"
    HEADER = "header"
    BODY = "body"
    STATUTE = "statute"


# =============================================================================
# Violations
# =============================================================================

class ViolationKind(str, Enum):
    """Culpability class of a statutory violation."""
    WILLFUL = "willful"
    NEGLIGENT = "negligent"
    STRICT = "strict"


class ElementStatus(str, Enum):
    """How far a statute element is supported by extracted facts."""
    SATISFIED = "satisfied"
    PARTIAL = "partial"
    UNSATISFIED = "unsatisfied"


# =============================================================================
# Timeline
# =============================================================================

class Precision(str, Enum):
    """Declared granularity of a timeline instant."""
    EXACT = "exact"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    APPROX = "approx"


class Significance(str, Enum):
    """Significance of events, patterns and gap priorities."""
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class EventCategory(str, Enum):
    """Coarse grouping of event kinds used by causal fallback rules."""
    CREDIT = "credit"
    DISPUTE = "dispute"
    VIOLATION = "violation"
    COMMUNICATION = "communication"
    LITIGATION = "litigation"


class EventKind(str, Enum):
    """Kinds of dated events placed on the case timeline."""
    CREDIT_REPORT_PULLED = "credit_report_pulled"
    ADVERSE_ACTION = "adverse_action"
    CREDIT_DENIAL = "credit_denial"
    DISPUTE_SUBMITTED = "dispute_submitted"
    REINVESTIGATION_STARTED = "reinvestigation_started"
    REINVESTIGATION_COMPLETED = "reinvestigation_completed"
    FCRA_VIOLATION = "fcra_violation"
    VIOLATION_NOTICE = "violation_notice"
    CORRESPONDENCE_SENT = "correspondence_sent"
    CLIENT_MEETING = "client_meeting"
    CASE_FILED = "case_filed"
    SUMMONS_ISSUED = "summons_issued"
    SUMMONS_SERVED = "summons_served"
    RESPONSE_DUE = "response_due"
    JUDGMENT = "judgment"
    SETTLEMENT = "settlement"

    @property
    def category(self) -> EventCategory:
        return EVENT_CATEGORIES[self]

    @property
    def fact_analogue(self) -> FactKind:
        """Fact kind whose conflict severity applies to this event kind."""
        return EVENT_FACT_ANALOGUES.get(self, FactKind.EVENT_DATE)

    @property
    def is_milestone(self) -> bool:
        return self in LEGAL_MILESTONES


EVENT_CATEGORIES = {
    EventKind.CREDIT_REPORT_PULLED: EventCategory.CREDIT,
    EventKind.ADVERSE_ACTION: EventCategory.CREDIT,
    EventKind.CREDIT_DENIAL: EventCategory.CREDIT,
    EventKind.DISPUTE_SUBMITTED: EventCategory.DISPUTE,
    EventKind.REINVESTIGATION_STARTED: EventCategory.DISPUTE,
    EventKind.REINVESTIGATION_COMPLETED: EventCategory.DISPUTE,
    EventKind.FCRA_VIOLATION: EventCategory.VIOLATION,
    EventKind.VIOLATION_NOTICE: EventCategory.VIOLATION,
    EventKind.CORRESPONDENCE_SENT: EventCategory.COMMUNICATION,
    EventKind.CLIENT_MEETING: EventCategory.COMMUNICATION,
    EventKind.CASE_FILED: EventCategory.LITIGATION,
    EventKind.SUMMONS_ISSUED: EventCategory.LITIGATION,
    EventKind.SUMMONS_SERVED: EventCategory.LITIGATION,
    EventKind.RESPONSE_DUE: EventCategory.LITIGATION,
    EventKind.JUDGMENT: EventCategory.LITIGATION,
    EventKind.SETTLEMENT: EventCategory.LITIGATION,
}

EVENT_FACT_ANALOGUES = {
    EventKind.CASE_FILED: FactKind.FILING_DATE,
    EventKind.SUMMONS_ISSUED: FactKind.FILING_DATE,
    EventKind.SUMMONS_SERVED: FactKind.FILING_DATE,
    EventKind.DISPUTE_SUBMITTED: FactKind.DISPUTE_DATE,
}

LEGAL_MILESTONES = frozenset({
    EventKind.CASE_FILED,
    EventKind.SUMMONS_SERVED,
    EventKind.JUDGMENT,
    EventKind.SETTLEMENT,
})


class CausalLinkType(str, Enum):
    """Relationship inferred between two ordered timeline events."""
    CAUSAL = "causal"                  # Catalog causal template matched
    CONTRIBUTING = "contributing"      # Same category, within 30 days
    SEQUENTIAL = "sequential"          # Different category, within 30 days
    CORRELATIONAL = "correlational"    # Within 90 days


# =============================================================================
# Correlation
# =============================================================================

class ConflictSeverity(str, Enum):
    """Severity of a conflict between two facts or events."""
    CRITICAL = "critical"
    SIGNIFICANT = "significant"
    MINOR = "minor"


# =============================================================================
# Patterns and Amplification
# =============================================================================

class PatternType(str, Enum):
    """Shape of a group of related violations."""
    SYSTEMATIC = "systematic"
    PROGRESSIVE = "progressive"
    COORDINATED = "coordinated"
    RECURRING = "recurring"
    ESCALATING = "escalating"
    COMPOUND = "compound"


class AmplificationType(str, Enum):
    """How an amplification rule adjusts a violation's strength."""
    MULTIPLICATIVE = "multiplicative"  # s * factor
    ADDITIVE = "additive"              # s + 0.1 * factor
    SYNERGISTIC = "synergistic"        # s * (1 + 0.2 * factor)
    CUMULATIVE = "cumulative"          # s + 0.05 * factor


# =============================================================================
# Evidence Chains
# =============================================================================

class LinkKind(str, Enum):
    """Kind of link between two evidence chain elements."""
    CAUSAL = "causal"
    CORROBORATIVE = "corroborative"
    SUPPORTING = "supporting"
    SEQUENTIAL = "sequential"
    CONTRADICTORY = "contradictory"


class LinkCondition(str, Enum):
    """Precondition a pair of elements must meet before a link rule applies."""
    ANY = "any"
    SAME_KIND = "same_kind"
    DIFFERENT_KIND = "different_kind"
    CROSS_DOCUMENT = "cross_document"
    CONFLICTING_VALUE = "conflicting_value"


_ORDINALS: dict = {
    enum_cls: {member: index for index, member in enumerate(enum_cls)}
    for enum_cls in (
        Kind, DocumentStatus, EvidenceType, FactKind, Relevance,
        ExtractorCategory, ViolationKind, ElementStatus, Precision,
        Significance, EventCategory, EventKind, CausalLinkType,
        ConflictSeverity, PatternType, AmplificationType, LinkKind,
        LinkCondition,
    )
}
