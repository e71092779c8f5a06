"""
CaseDossier Document Models

Models for input documents and their classification.

Key components:
- Money: fixed-point amount with ISO currency
- RawSpan: location of extracted text inside a document
- Classification: classifier output for one document
- Document: a read, classified document (immutable after extraction)
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..canon import text_hash
from .enums import DocumentStatus, Kind


def _round(value: float) -> float:
    return round(value, 6)


# =============================================================================
# Value Types
# =============================================================================

@dataclass(frozen=True)
class Money:
    """
    A monetary amount in minor units.

    Attributes:
        minor_units: Amount in cents (or the currency's minor unit)
        currency: ISO 4217 code
    """
    minor_units: int
    currency: str = "USD"

    @property
    def canonical(self) -> str:
        """Normalized fact value, e.g. ``123456 USD``."""
        return f"{self.minor_units} {self.currency}"

    def to_dict(self) -> dict[str, Any]:
        return {"minorUnits": self.minor_units, "currency": self.currency}


@dataclass(frozen=True)
class RawSpan:
    """Code-point span of extracted text inside a document's normalized text."""
    doc_id: str
    offset: int
    length: int

    @property
    def end(self) -> int:
        return self.offset + self.length

    def to_dict(self) -> dict[str, Any]:
        return {"docId": self.doc_id, "offset": self.offset, "length": self.length}


# =============================================================================
# Classification
# =============================================================================

@dataclass(frozen=True)
class Classification:
    """
    Result of classifying one document.

    Attributes:
        primary: Arg-max Kind
        primary_confidence: Confidence of the primary Kind in [0, 0.95]
        secondaries: Other plausible kinds, ranked, with confidences
        scores: Raw score per Kind that scored above zero
    """
    primary: Kind
    primary_confidence: float
    secondaries: tuple[tuple[Kind, float], ...] = ()
    scores: tuple[tuple[Kind, float], ...] = ()

    @classmethod
    def unclassified(cls) -> "Classification":
        return cls(primary=Kind.OTHER, primary_confidence=0.0)

    def score_for(self, kind: Kind) -> float:
        for scored_kind, score in self.scores:
            if scored_kind == kind:
                return score
        return 0.0


# =============================================================================
# Document
# =============================================================================

@dataclass(frozen=True)
class ReadResult:
    """What a DocumentReader returns for one input."""
    text: str
    page_count: int = 1
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class Document:
    """
    A read and classified input document.

    Failed documents keep their Kind (classified from the filename when
    the text could not be read) but carry no facts downstream.
    """
    id: str
    path: str
    kind: Kind
    primary_confidence: float
    secondaries: tuple[tuple[Kind, float], ...] = ()
    text: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
    page_count: int = 0
    status: DocumentStatus = DocumentStatus.OK
    reason: Optional[str] = None

    @property
    def failed(self) -> bool:
        return self.status == DocumentStatus.FAILED

    def to_dict(self, reliability: Optional[float] = None) -> dict[str, Any]:
        result: dict[str, Any] = {
            "id": self.id,
            "path": self.path,
            "kind": self.kind.value,
            "primaryConfidence": _round(self.primary_confidence),
            "secondaries": [
                {"kind": kind.value, "confidence": _round(conf)}
                for kind, conf in self.secondaries
            ],
            "status": self.status.value,
            "textHash": text_hash(self.text),
            "length": len(self.text),
            "pageCount": self.page_count,
            "metadata": dict(sorted(self.metadata.items())),
        }
        if self.reason:
            result["reason"] = self.reason
        if reliability is not None:
            result["reliability"] = _round(reliability)
        return result
