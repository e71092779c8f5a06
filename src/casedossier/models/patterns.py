"""
CaseDossier Pattern Models

Violation patterns, amplified violations and legal theory aggregates.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from .document import _round
from .enums import PatternType, Significance
from .facts import Violation


@dataclass(frozen=True)
class TemporalProfile:
    """Time span covered by a pattern and how its occurrences are spread."""
    span_days: Optional[int]
    frequency: str

    def to_dict(self) -> dict[str, Any]:
        return {"spanDays": self.span_days, "frequency": self.frequency}


@dataclass(frozen=True)
class Pattern:
    """
    A group of two or more related violations.

    Attributes:
        id: Stable id from type and member violations
        pattern_type: systematic / escalating / recurring / ...
        violation_ids: Member violations (sorted, >= 2)
        doc_ids: Documents the members came from (sorted)
        strength: Deterministic strength in [0, 1]
        significance: Template-declared or derived from strength
        temporal: Span and frequency profile
        template_id: Catalog template, or None for synthesized patterns
    """
    id: str
    pattern_type: PatternType
    violation_ids: tuple[str, ...]
    doc_ids: tuple[str, ...]
    strength: float
    significance: Significance
    temporal: TemporalProfile
    template_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.pattern_type.value,
            "violationIds": list(self.violation_ids),
            "docIds": list(self.doc_ids),
            "strength": _round(self.strength),
            "significance": self.significance.value,
            "temporal": self.temporal.to_dict(),
            "templateId": self.template_id,
        }


@dataclass(frozen=True)
class AmplificationSource:
    """One applied rule or pattern bonus and the strength change it made."""
    source_id: str
    delta: float

    def to_dict(self) -> dict[str, Any]:
        return {"sourceId": self.source_id, "delta": _round(self.delta)}


@dataclass(frozen=True)
class AmplifiedViolation:
    """A violation plus its amplified strength and the sources that raised it."""
    violation: Violation
    amplified_strength: float
    sources: tuple[AmplificationSource, ...] = ()

    @property
    def id(self) -> str:
        return self.violation.id

    @property
    def statute_id(self) -> str:
        return self.violation.statute_id

    @property
    def base_strength(self) -> float:
        return self.violation.base_strength

    def to_dict(self) -> dict[str, Any]:
        result = self.violation.to_dict()
        result["amplifiedStrength"] = _round(self.amplified_strength)
        result["sources"] = [s.to_dict() for s in self.sources]
        return result


@dataclass(frozen=True)
class LegalTheory:
    """Aggregate of amplified violations supporting one theory template."""
    id: str
    template_id: str
    theory_type: str
    supporting_violation_ids: tuple[str, ...]
    strength: float
    legal_basis: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "templateId": self.template_id,
            "theoryType": self.theory_type,
            "supportingViolationIds": list(self.supporting_violation_ids),
            "strength": _round(self.strength),
            "legalBasis": self.legal_basis,
        }


@dataclass(frozen=True)
class PatternAnalysis:
    """Everything the pattern engine publishes."""
    patterns: tuple[Pattern, ...] = ()
    amplified_violations: tuple[AmplifiedViolation, ...] = ()
    theories: tuple[LegalTheory, ...] = ()
