"""
CaseDossier Extraction Models

Facts, violations and evidence items produced by the extractor.
Created once during extraction and never mutated; later stages hold
references to them by id.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..canon import format_instant
from .document import Money, RawSpan, _round
from .enums import ElementStatus, EvidenceType, FactKind, Relevance, ViolationKind


# =============================================================================
# Fact
# =============================================================================

@dataclass(frozen=True)
class Fact:
    """
    A typed, normalized value extracted from one document.

    Attributes:
        id: Stable id derived from document, kind, span and value
        kind: FactKind
        value: Normalized value (YYYY-MM-DD for dates, "<minor> <CUR>" for money)
        raw_value: Exact text at raw_span
        raw_span: Where the value was found
        confidence: Extractor base confidence times category weight
        relevance: Extractor-declared relevance
        extractor: Name of the catalog extractor that produced it
        money: Parsed amount for money-valued kinds
    """
    id: str
    kind: FactKind
    value: str
    raw_value: str
    raw_span: RawSpan
    confidence: float
    relevance: Relevance
    extractor: str = ""
    money: Optional[Money] = None

    @property
    def doc_id(self) -> str:
        return self.raw_span.doc_id

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "kind": self.kind.value,
            "value": self.value,
            "rawValue": self.raw_value,
            "rawSpan": self.raw_span.to_dict(),
            "confidence": _round(self.confidence),
            "relevance": self.relevance.value,
            "extractor": self.extractor,
        }
        if self.money is not None:
            result["money"] = self.money.to_dict()
        return result


# =============================================================================
# Violation
# =============================================================================

@dataclass(frozen=True)
class ElementResult:
    """Satisfaction of one statute element by a document's facts."""
    element_id: str
    status: ElementStatus
    support: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"status": self.status.value, "support": list(self.support)}


@dataclass(frozen=True)
class Violation:
    """
    A claim that a statute is implicated by one document.

    Attributes:
        id: Stable id derived from document and statute
        statute_id: Catalog statute id (e.g. FCRA-1681m-a)
        kind: willful / negligent / strict
        source_doc_id: Document whose text triggered the signature
        supporting_fact_ids: Facts meeting the signature's relevance floor
        base_strength: 0.5 + 0.1 per matched trigger, capped at 0.9
        occurrence: Earliest dated fact in the document, if any
        matched_triggers: Number of distinct triggers that matched
        element_satisfaction: Statute element results, in catalog order
    """
    id: str
    statute_id: str
    kind: ViolationKind
    source_doc_id: str
    supporting_fact_ids: tuple[str, ...]
    base_strength: float
    occurrence: Optional[datetime] = None
    matched_triggers: int = 0
    element_satisfaction: tuple[ElementResult, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "statuteId": self.statute_id,
            "kind": self.kind.value,
            "sourceDocId": self.source_doc_id,
            "supportingFactIds": list(self.supporting_fact_ids),
            "baseStrength": _round(self.base_strength),
            "occurrence": format_instant(self.occurrence) if self.occurrence else None,
            "matchedTriggers": self.matched_triggers,
            "elementSatisfaction": {
                element.element_id: element.to_dict()
                for element in self.element_satisfaction
            },
        }


# =============================================================================
# Evidence Item
# =============================================================================

@dataclass(frozen=True)
class EvidenceItem:
    """A document offered as evidence, with the facts it carries."""
    id: str
    doc_id: str
    evidence_type: EvidenceType
    description: str
    fact_ids: tuple[str, ...]
    confidence: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "docId": self.doc_id,
            "evidenceType": self.evidence_type.value,
            "description": self.description,
            "factIds": list(self.fact_ids),
            "confidence": _round(self.confidence),
        }
