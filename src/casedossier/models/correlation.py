"""
CaseDossier Correlation Models

Pairwise cross-document fact alignment.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from .document import _round
from .enums import ConflictSeverity, FactKind, ordinal


@dataclass(frozen=True)
class FactMatch:
    """Two facts of the same kind that agree (strength >= 0.5)."""
    fact_a: str
    fact_b: str
    fact_kind: FactKind
    strength: float

    def swapped(self) -> "FactMatch":
        return FactMatch(self.fact_b, self.fact_a, self.fact_kind, self.strength)

    def to_dict(self) -> dict[str, Any]:
        return {
            "factA": self.fact_a,
            "factB": self.fact_b,
            "factKind": self.fact_kind.value,
            "strength": _round(self.strength),
        }


@dataclass(frozen=True)
class FactConflict:
    """Two facts of the same kind that disagree (strength < 0.3)."""
    fact_a: str
    fact_b: str
    fact_kind: FactKind
    strength: float
    severity: ConflictSeverity

    def swapped(self) -> "FactConflict":
        return FactConflict(
            self.fact_b, self.fact_a, self.fact_kind, self.strength, self.severity
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "factA": self.fact_a,
            "factB": self.fact_b,
            "factKind": self.fact_kind.value,
            "strength": _round(self.strength),
            "severity": self.severity.value,
        }


def match_sort_key(match: FactMatch) -> tuple:
    """(kind ordinal, -strength, fact ids); symmetric in the two fact ids."""
    return (
        ordinal(match.fact_kind),
        -match.strength,
        min(match.fact_a, match.fact_b),
        max(match.fact_a, match.fact_b),
    )


def conflict_sort_key(conflict: FactConflict) -> tuple:
    return (
        ordinal(conflict.fact_kind),
        conflict.strength,
        min(conflict.fact_a, conflict.fact_b),
        max(conflict.fact_a, conflict.fact_b),
    )


@dataclass(frozen=True)
class Correlation:
    """
    Correlation between two documents.

    Attributes:
        doc_a: First document id
        doc_b: Second document id
        matching_facts: Agreeing fact pairs, sorted by (kind ordinal, -strength)
        conflicting_facts: Disagreeing fact pairs with severity
    """
    doc_a: str
    doc_b: str
    matching_facts: tuple[FactMatch, ...] = ()
    conflicting_facts: tuple[FactConflict, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.matching_facts and not self.conflicting_facts

    def swapped(self) -> "Correlation":
        """The same correlation with the roles of the two documents swapped."""
        return Correlation(
            doc_a=self.doc_b,
            doc_b=self.doc_a,
            matching_facts=tuple(
                sorted((m.swapped() for m in self.matching_facts), key=match_sort_key)
            ),
            conflicting_facts=tuple(
                sorted((c.swapped() for c in self.conflicting_facts), key=conflict_sort_key)
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "docA": self.doc_a,
            "docB": self.doc_b,
            "matchingFacts": [m.to_dict() for m in self.matching_facts],
            "conflictingFacts": [c.to_dict() for c in self.conflicting_facts],
        }


@dataclass(frozen=True)
class ConsistencySummary:
    """Cross-document consistency across all emitted correlations."""
    match_count: int = 0
    conflict_count: int = 0
    critical_conflicts: int = 0

    @property
    def score(self) -> float:
        total = self.match_count + self.conflict_count
        if total == 0:
            return 1.0
        return self.match_count / total

    def to_dict(self) -> dict[str, Any]:
        return {
            "matchCount": self.match_count,
            "conflictCount": self.conflict_count,
            "criticalConflicts": self.critical_conflicts,
            "consistencyScore": _round(self.score),
        }


@dataclass(frozen=True)
class CorrelationResult:
    """Everything the correlator publishes."""
    correlations: tuple[Correlation, ...] = ()
    reliability: tuple[tuple[str, float], ...] = ()
    consistency: ConsistencySummary = field(default_factory=ConsistencySummary)

    def reliability_of(self, doc_id: str) -> float:
        for candidate, score in self.reliability:
            if candidate == doc_id:
                return score
        return 0.0
