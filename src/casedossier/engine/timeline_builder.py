"""
CaseDossier Timeline Builder

Builds the unified case timeline from the events of every document.

Steps:
1. Normalize instants to UTC
2. Merge duplicates (same kind, same day, description similarity >= 0.9;
   exact-precision events also need the same instant)
3. Order by (instant, kind ordinal, id)
4. Corroboration edges (same kind, <= 7 days, similarity >= 0.7)
5. Temporal conflicts (same kind, > 7 days apart)
6. Critical periods around critical events
7. Causal links from catalog templates, else fallback rules
8. Gaps between consecutive events
9. Statutory deadlines
10. Legal milestones

Description similarity is the word-overlap ratio 2|A∩B| / (|A|+|B|).
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from statistics import fmean
from typing import Mapping, Optional, Sequence

from ..canon import stable_id
from ..catalog import Catalog, Scoring
from ..models import (
    CausalLink,
    CausalLinkType,
    Corroboration,
    CriticalPeriod,
    Deadline,
    Gap,
    Precision,
    Significance,
    TemporalConflict,
    Timeline,
    TimelineEvent,
    ordinal,
)
from .correlator import conflict_severity
from .normalize import dice

logger = logging.getLogger(__name__)


def to_utc(instant: datetime) -> datetime:
    if instant.tzinfo is None:
        return instant.replace(tzinfo=timezone.utc)
    return instant.astimezone(timezone.utc)


def event_sort_key(event: TimelineEvent) -> tuple:
    return (event.instant, ordinal(event.kind), event.id)


# =============================================================================
# Duplicate Merging
# =============================================================================

def _normalize(event: TimelineEvent) -> TimelineEvent:
    instant = to_utc(event.instant)
    sources = tuple(to_utc(i) for i in event.source_instants) or (instant,)
    return replace(event, instant=instant, source_instants=sources)


def _event_reliability(event: TimelineEvent, reliability: Mapping[str, float]) -> float:
    return max((reliability.get(doc_id, 0.0) for doc_id in event.source_doc_ids), default=0.0)


def instants_agree(a: TimelineEvent, b: TimelineEvent) -> bool:
    """Same-day events agree unless either is exact, which needs the same instant."""
    if Precision.EXACT in (a.precision, b.precision):
        return a.instant == b.instant
    return a.instant.date() == b.instant.date()


def merge_duplicates(
    events: Sequence[TimelineEvent],
    reliability: Mapping[str, float],
    scoring: Scoring,
) -> list[TimelineEvent]:
    """
    Merge events of the same kind on the same day with near-identical
    descriptions. Exact-precision events only merge at the same instant.

    The highest-confidence source (ties by document reliability, then id)
    keeps its fields; source documents are unioned and confidence is the
    mean across the merged sources.
    """
    groups: dict[tuple, list[TimelineEvent]] = defaultdict(list)
    for event in events:
        groups[(event.kind, event.instant.date())].append(event)

    merged: list[TimelineEvent] = []
    for key in sorted(groups, key=lambda k: (k[1], ordinal(k[0]))):
        ranked = sorted(
            groups[key],
            key=lambda e: (-e.confidence, -_event_reliability(e, reliability), e.id),
        )
        assigned: set[str] = set()
        for representative in ranked:
            if representative.id in assigned:
                continue
            cluster = [representative]
            assigned.add(representative.id)
            for candidate in ranked:
                if candidate.id in assigned or not instants_agree(representative, candidate):
                    continue
                similarity = dice(representative.description, candidate.description)
                if similarity >= scoring.duplicate_similarity:
                    cluster.append(candidate)
                    assigned.add(candidate.id)

            if len(cluster) == 1:
                merged.append(representative)
                continue
            sources = sorted({d for e in cluster for d in e.source_doc_ids})
            merged.append(replace(
                representative,
                source_doc_ids=tuple(sources),
                confidence=fmean(e.confidence for e in cluster),
                source_instants=tuple(sorted({i for e in cluster for i in e.source_instants})),
            ))
    return merged


# =============================================================================
# Relations
# =============================================================================

def _pair(a: str, b: str) -> tuple[str, str]:
    return (a, b) if a <= b else (b, a)


def find_corroborations(
    events: Sequence[TimelineEvent], scoring: Scoring
) -> list[Corroboration]:
    edges = []
    for i, a in enumerate(events):
        for b in events[i + 1:]:
            if a.kind != b.kind:
                continue
            if abs(b.instant - a.instant) > scoring.corroboration_window:
                continue
            similarity = dice(a.description, b.description)
            if similarity >= scoring.corroboration_similarity:
                first, second = _pair(a.id, b.id)
                edges.append(Corroboration(first, second, similarity))
    return edges


def find_conflicts(
    events: Sequence[TimelineEvent], scoring: Scoring
) -> list[TemporalConflict]:
    """Same-kind events more than the conflict window apart."""
    conflicts = []
    for i, a in enumerate(events):
        for b in events[i + 1:]:
            if a.kind != b.kind:
                continue
            delta = abs(b.instant - a.instant)
            if delta > scoring.conflict_window:
                first, second = _pair(a.id, b.id)
                conflicts.append(TemporalConflict(
                    first, second, delta.days, conflict_severity(a.kind.fact_analogue)
                ))
    return conflicts


def _attach_relations(
    events: Sequence[TimelineEvent],
    corroborations: Sequence[Corroboration],
    conflicts: Sequence[TemporalConflict],
) -> list[TimelineEvent]:
    corroborating: dict[str, set[str]] = defaultdict(set)
    conflicting: dict[str, set[str]] = defaultdict(set)
    for edge in corroborations:
        corroborating[edge.event_a].add(edge.event_b)
        corroborating[edge.event_b].add(edge.event_a)
    for conflict in conflicts:
        conflicting[conflict.event_a].add(conflict.event_b)
        conflicting[conflict.event_b].add(conflict.event_a)
    return [
        replace(
            event,
            corroborating_event_ids=tuple(sorted(corroborating.get(event.id, ()))),
            conflicting_event_ids=tuple(sorted(conflicting.get(event.id, ()))),
        )
        for event in events
    ]


# =============================================================================
# Derived Features
# =============================================================================

def critical_periods(
    events: Sequence[TimelineEvent], scoring: Scoring
) -> list[CriticalPeriod]:
    radius = scoring.critical_period_radius
    return [
        CriticalPeriod(
            id=stable_id("period", event.id),
            event_id=event.id,
            start=event.instant - radius,
            end=event.instant + radius,
        )
        for event in events
        if event.significance == Significance.CRITICAL
    ]


def classify_link(
    earlier: TimelineEvent, later: TimelineEvent, catalog: Catalog
) -> Optional[CausalLink]:
    """
    Link an earlier event to a later one.

    A catalog causal template within its max gap wins; otherwise the
    contributing, sequential and correlational windows are tried in turn.
    """
    scoring = catalog.scoring
    delta = later.instant - earlier.instant
    template = catalog.causal_template(earlier.kind, later.kind)
    if template is not None and delta <= template.max_gap:
        return CausalLink(
            earlier.id, later.id, CausalLinkType.CAUSAL, template.strength, template.id
        )

    same_category = earlier.category == later.category
    if same_category and delta <= scoring.contributing_window:
        return CausalLink(
            earlier.id, later.id, CausalLinkType.CONTRIBUTING, scoring.contributing_strength
        )
    if not same_category and delta <= scoring.sequential_window:
        return CausalLink(
            earlier.id, later.id, CausalLinkType.SEQUENTIAL, scoring.sequential_strength
        )
    if delta <= scoring.correlational_window:
        return CausalLink(
            earlier.id, later.id, CausalLinkType.CORRELATIONAL, scoring.correlational_strength
        )
    return None


def causal_links(events: Sequence[TimelineEvent], catalog: Catalog) -> list[CausalLink]:
    links = []
    for i, earlier in enumerate(events):
        for later in events[i + 1:]:
            link = classify_link(earlier, later, catalog)
            if link is not None:
                links.append(link)
    return links


def find_gaps(events: Sequence[TimelineEvent], scoring: Scoring) -> list[Gap]:
    gaps = []
    for earlier, later in zip(events, events[1:]):
        delta = later.instant - earlier.instant
        if delta <= scoring.gap_threshold:
            continue
        priority = (
            Significance.HIGH if delta > scoring.high_gap_threshold else Significance.MEDIUM
        )
        gaps.append(Gap(
            start_event_id=earlier.id,
            end_event_id=later.id,
            start=earlier.instant,
            end=later.instant,
            duration_days=delta // timedelta(days=1),
            priority=priority,
        ))
    return gaps


def statutory_deadlines(
    events: Sequence[TimelineEvent], catalog: Catalog
) -> list[Deadline]:
    deadlines = [
        Deadline(
            id=stable_id("deadline", event.id, rule.id),
            event_id=event.id,
            due=event.instant + rule.offset,
            statutory_basis=rule.statutory_basis,
            compliance_required=rule.compliance_required,
            description=rule.description,
        )
        for event in events
        for rule in catalog.deadlines_for(event.kind)
    ]
    return sorted(deadlines, key=lambda d: (d.due, d.id))


def milestones(events: Sequence[TimelineEvent]) -> list[str]:
    return [
        event.id
        for event in events
        if event.kind.is_milestone or event.significance == Significance.CRITICAL
    ]


# =============================================================================
# Timeline Builder
# =============================================================================

class TimelineBuilder:
    """
    Builds the case timeline.

    Usage:
        builder = TimelineBuilder(catalog)
        timeline = builder.build(events, reliability={"doc-1a2b": 0.76})
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog

    def build(
        self,
        events: Sequence[TimelineEvent],
        reliability: Optional[Mapping[str, float]] = None,
    ) -> Timeline:
        """
        Build the timeline from every document's events.

        Args:
            events: Events in any order
            reliability: Document reliability, used to break merge ties

        Returns:
            Timeline with events non-decreasing in instant
        """
        scoring = self.catalog.scoring
        reliability = reliability or {}

        normalized = [_normalize(e) for e in events]
        merged = sorted(merge_duplicates(normalized, reliability, scoring), key=event_sort_key)

        corroborations = find_corroborations(merged, scoring)
        conflicts = find_conflicts(merged, scoring)
        ordered = _attach_relations(merged, corroborations, conflicts)

        timeline = Timeline(
            events=tuple(ordered),
            corroborations=tuple(corroborations),
            conflicts=tuple(conflicts),
            critical_periods=tuple(critical_periods(ordered, scoring)),
            causal_links=tuple(causal_links(ordered, self.catalog)),
            gaps=tuple(find_gaps(ordered, scoring)),
            deadlines=tuple(statutory_deadlines(ordered, self.catalog)),
            milestones=tuple(milestones(ordered)),
        )
        logger.info(
            "Built timeline: %d events (%d merged), %d gaps, %d deadlines",
            len(ordered), len(events) - len(ordered), len(timeline.gaps),
            len(timeline.deadlines),
            extra={"stage": "timeline"},
        )
        return timeline
