"""
CaseDossier Models

All domain models for the dossier pipeline, organized by stage:

    from casedossier.models import (
        # Enums
        Kind, FactKind, EventKind, PatternType, LinkKind,
        # Documents and extraction
        Document, Fact, Violation, EvidenceItem,
        # Cross-document
        Correlation, Timeline, Pattern, AmplifiedViolation, EvidenceChain,
        # Root
        Dossier,
    )
"""
from __future__ import annotations

# =============================================================================
# Enums
# =============================================================================
from .enums import (
    AmplificationType,
    CausalLinkType,
    ConflictSeverity,
    DocumentStatus,
    ElementStatus,
    EventCategory,
    EventKind,
    EvidenceType,
    ExtractorCategory,
    FactKind,
    Kind,
    LinkCondition,
    LinkKind,
    PatternType,
    Precision,
    Relevance,
    Significance,
    ViolationKind,
    ordinal,
)

# =============================================================================
# Documents and Extraction
# =============================================================================
from .document import Classification, Document, Money, RawSpan, ReadResult
from .facts import ElementResult, EvidenceItem, Fact, Violation

# =============================================================================
# Cross-Document Stages
# =============================================================================
from .correlation import (
    ConsistencySummary,
    Correlation,
    CorrelationResult,
    FactConflict,
    FactMatch,
)
from .timeline import (
    CausalLink,
    Corroboration,
    CriticalPeriod,
    Deadline,
    Gap,
    TemporalConflict,
    Timeline,
    TimelineEvent,
)
from .patterns import (
    AmplificationSource,
    AmplifiedViolation,
    LegalTheory,
    Pattern,
    PatternAnalysis,
    TemporalProfile,
)
from .chains import (
    EVIDENCE_ELEMENT,
    VIOLATION_ELEMENT,
    ChainElement,
    ChainLink,
    EvidenceChain,
)

# =============================================================================
# Report and Root
# =============================================================================
from .report import DocumentReport, ValidationEntry, ValidationLog, ValidationReport
from .dossier import Dossier

__all__ = [
    # Enums
    "AmplificationType",
    "CausalLinkType",
    "ConflictSeverity",
    "DocumentStatus",
    "ElementStatus",
    "EventCategory",
    "EventKind",
    "EvidenceType",
    "ExtractorCategory",
    "FactKind",
    "Kind",
    "LinkCondition",
    "LinkKind",
    "PatternType",
    "Precision",
    "Relevance",
    "Significance",
    "ViolationKind",
    "ordinal",
    # Documents and extraction
    "Classification",
    "Document",
    "Money",
    "RawSpan",
    "ReadResult",
    "ElementResult",
    "EvidenceItem",
    "Fact",
    "Violation",
    # Correlation
    "ConsistencySummary",
    "Correlation",
    "CorrelationResult",
    "FactConflict",
    "FactMatch",
    # Timeline
    "CausalLink",
    "Corroboration",
    "CriticalPeriod",
    "Deadline",
    "Gap",
    "TemporalConflict",
    "Timeline",
    "TimelineEvent",
    # Patterns
    "AmplificationSource",
    "AmplifiedViolation",
    "LegalTheory",
    "Pattern",
    "PatternAnalysis",
    "TemporalProfile",
    # Chains
    "EVIDENCE_ELEMENT",
    "VIOLATION_ELEMENT",
    "ChainElement",
    "ChainLink",
    "EvidenceChain",
    # Report and root
    "DocumentReport",
    "ValidationEntry",
    "ValidationLog",
    "ValidationReport",
    "Dossier",
]
