"""
CaseDossier Correlator

Pairwise cross-document fact alignment.

For every pair of successfully extracted documents (docA.id < docB.id)
and every FactKind present in both, each fact pair is scored:

    exact (case-insensitive)   1.0
    containment                len(shorter) / len(longer)
    otherwise                  token Jaccard

Scores >= 0.5 are matches, scores < 0.3 are conflicts, anything in
between is informational and dropped. Scoring is symmetric, so the
correlation of (B, A) is the correlation of (A, B) with roles swapped.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from statistics import fmean
from typing import Mapping, Optional, Sequence

from ..catalog import Catalog, Scoring
from ..models import (
    ConflictSeverity,
    ConsistencySummary,
    Correlation,
    CorrelationResult,
    Document,
    Fact,
    FactConflict,
    FactKind,
    FactMatch,
    ordinal,
)
from ..models.correlation import conflict_sort_key, match_sort_key
from .executor import ExecutorStrategy
from .normalize import jaccard

logger = logging.getLogger(__name__)


CONFLICT_SEVERITY = {
    FactKind.CLIENT_NAME: ConflictSeverity.CRITICAL,
    FactKind.CASE_NUMBER: ConflictSeverity.CRITICAL,
    FactKind.CASE_AMOUNT: ConflictSeverity.SIGNIFICANT,
    FactKind.FILING_DATE: ConflictSeverity.SIGNIFICANT,
    FactKind.COURT_NAME: ConflictSeverity.SIGNIFICANT,
}


def conflict_severity(kind: FactKind) -> ConflictSeverity:
    """critical for identity facts, significant for case particulars, else minor."""
    return CONFLICT_SEVERITY.get(kind, ConflictSeverity.MINOR)


def value_similarity(a: str, b: str) -> float:
    """
    Symmetric similarity of two normalized values.

    Example:
        >>> value_similarity("Jane Q. Doe", "jane q. doe")
        1.0
        >>> value_similarity("Jane Q. Doe", "John Doe")
        0.25
    """
    left, right = a.casefold(), b.casefold()
    if left == right:
        return 1.0
    if left and right:
        shorter, longer = (left, right) if len(left) <= len(right) else (right, left)
        if shorter in longer:
            return len(shorter) / len(longer)
    return jaccard(left, right)


def _by_kind(facts: Sequence[Fact]) -> dict[FactKind, list[Fact]]:
    grouped: dict[FactKind, list[Fact]] = defaultdict(list)
    for fact in facts:
        grouped[fact.kind].append(fact)
    return grouped


def correlate_pair(
    doc_a: str,
    facts_a: Sequence[Fact],
    doc_b: str,
    facts_b: Sequence[Fact],
    scoring: Optional[Scoring] = None,
) -> Correlation:
    """Correlate the facts of two documents."""
    scoring = scoring or Scoring()
    grouped_a, grouped_b = _by_kind(facts_a), _by_kind(facts_b)
    matches: list[FactMatch] = []
    conflicts: list[FactConflict] = []

    for kind in sorted(set(grouped_a) & set(grouped_b), key=ordinal):
        for fact_a in grouped_a[kind]:
            for fact_b in grouped_b[kind]:
                strength = value_similarity(fact_a.value, fact_b.value)
                if strength >= scoring.match_threshold:
                    matches.append(FactMatch(fact_a.id, fact_b.id, kind, strength))
                elif strength < scoring.conflict_threshold:
                    conflicts.append(FactConflict(
                        fact_a.id, fact_b.id, kind, strength, conflict_severity(kind)
                    ))

    return Correlation(
        doc_a=doc_a,
        doc_b=doc_b,
        matching_facts=tuple(sorted(matches, key=match_sort_key)),
        conflicting_facts=tuple(sorted(conflicts, key=conflict_sort_key)),
    )


def overall_confidence(document: Document, facts: Sequence[Fact]) -> float:
    """Mean of primary confidence and mean fact confidence."""
    if not facts:
        return document.primary_confidence
    return (document.primary_confidence + fmean(f.confidence for f in facts)) / 2


def reliability(document: Document, facts: Sequence[Fact], catalog: Catalog) -> float:
    return catalog.reliability(document.kind) * overall_confidence(document, facts)


def summarize(correlations: Sequence[Correlation]) -> ConsistencySummary:
    matches = sum(len(c.matching_facts) for c in correlations)
    conflicts = sum(len(c.conflicting_facts) for c in correlations)
    critical = sum(
        1
        for c in correlations
        for conflict in c.conflicting_facts
        if conflict.severity == ConflictSeverity.CRITICAL
    )
    return ConsistencySummary(
        match_count=matches, conflict_count=conflicts, critical_conflicts=critical
    )


class Correlator:
    """
    Correlates every pair of extracted documents.

    Usage:
        result = Correlator(catalog).correlate(documents, facts_by_doc)
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def correlate(
        self,
        documents: Sequence[Document],
        facts_by_doc: Mapping[str, Sequence[Fact]],
        strategy: Optional[ExecutorStrategy] = None,
    ) -> CorrelationResult:
        """
        Correlate all document pairs; failed documents are skipped.

        Pairs are produced from id-sorted documents and results keep that
        order, so the output is the same for any worker count.
        """
        ordered = sorted(documents, key=lambda d: d.id)
        active = [d for d in ordered if not d.failed]
        pairs = [
            (a.id, b.id)
            for i, a in enumerate(active)
            for b in active[i + 1:]
        ]

        def run(pair: tuple[str, str]) -> Correlation:
            doc_a, doc_b = pair
            return correlate_pair(
                doc_a, facts_by_doc.get(doc_a, ()),
                doc_b, facts_by_doc.get(doc_b, ()),
                self.catalog.scoring,
            )

        if strategy is None:
            results = [run(pair) for pair in pairs]
        else:
            results = strategy.map(run, pairs)
        correlations = tuple(c for c in results if not c.is_empty)

        scores = tuple(
            (d.id, reliability(d, facts_by_doc.get(d.id, ()), self.catalog))
            for d in ordered
        )
        consistency = summarize(correlations)
        logger.info(
            "Correlated %d document pairs: %d matches, %d conflicts",
            len(pairs), consistency.match_count, consistency.conflict_count,
            extra={"stage": "correlate"},
        )
        return CorrelationResult(
            correlations=correlations,
            reliability=scores,
            consistency=consistency,
        )
