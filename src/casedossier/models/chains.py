"""
CaseDossier Evidence Chain Models
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Optional

from ..canon import format_instant
from .document import _round
from .enums import LinkKind


# Element kinds beyond the FactKind names
VIOLATION_ELEMENT = "Violation"
EVIDENCE_ELEMENT = "Evidence"


@dataclass(frozen=True)
class ChainElement:
    """
    A fact, violation or evidence item promoted into a chain.

    Attributes:
        id: Element id (the source record's id)
        kind: FactKind name, "Violation" or "Evidence"
        doc_id: Document the source came from
        confidence: Source confidence (base strength for violations)
        relevance: Numeric relevance in [0, 1]
        value: Normalized value for facts, statute id for violations
        instant: Date carried by the source, when known
    """
    id: str
    kind: str
    doc_id: str
    confidence: float
    relevance: float
    value: str = ""
    instant: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "kind": self.kind,
            "docId": self.doc_id,
            "confidence": _round(self.confidence),
            "relevance": _round(self.relevance),
            "value": self.value,
            "instant": format_instant(self.instant) if self.instant else None,
        }


@dataclass(frozen=True)
class ChainLink:
    """Directed link between two elements of the same chain."""
    from_id: str
    to_id: str
    kind: LinkKind
    strength: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "fromElemId": self.from_id,
            "toElemId": self.to_id,
            "linkKind": self.kind.value,
            "strength": _round(self.strength),
        }


@dataclass(frozen=True)
class EvidenceChain:
    """A connected DAG of linked evidence built from one chain template."""
    id: str
    template_id: str
    chain_type: str
    elements: tuple[ChainElement, ...]
    links: tuple[ChainLink, ...]
    strength: float
    quality: float

    @property
    def element_ids(self) -> frozenset:
        return frozenset(e.id for e in self.elements)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "templateId": self.template_id,
            "type": self.chain_type,
            "elements": [e.to_dict() for e in self.elements],
            "links": [link.to_dict() for link in self.links],
            "strength": _round(self.strength),
            "quality": _round(self.quality),
        }
