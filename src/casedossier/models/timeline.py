"""
CaseDossier Timeline Models

Models for the unified case timeline.

Key components:
- TimelineEvent: a dated event, possibly merged from several documents
- Corroboration / TemporalConflict: undirected relations between events
- CriticalPeriod, CausalLink, Gap, Deadline: derived timeline features
- Timeline: the complete, ordered timeline value
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

from ..canon import format_instant
from .document import _round
from .enums import (
    CausalLinkType,
    ConflictSeverity,
    EventCategory,
    EventKind,
    Precision,
    Significance,
)


# =============================================================================
# Timeline Event
# =============================================================================

@dataclass(frozen=True)
class TimelineEvent:
    """
    A dated event on the case timeline.

    Attributes:
        id: Stable id
        instant: UTC instant
        precision: Granularity of the instant
        kind: EventKind
        description: Text describing the event
        source_doc_ids: Documents the event was read from (sorted, >= 1)
        corroborating_event_ids: Events corroborating this one
        conflicting_event_ids: Events in temporal conflict with this one
        significance: critical / high / medium / low
        confidence: Extraction confidence (mean across merged sources)
        source_instants: Instant read from each merged source (not serialized)
    """
    id: str
    instant: datetime
    precision: Precision
    kind: EventKind
    description: str
    source_doc_ids: tuple[str, ...]
    significance: Significance = Significance.MEDIUM
    confidence: float = 0.0
    corroborating_event_ids: tuple[str, ...] = ()
    conflicting_event_ids: tuple[str, ...] = ()
    source_instants: tuple[datetime, ...] = field(default=(), compare=False)

    @property
    def category(self) -> EventCategory:
        return self.kind.category

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "instant": format_instant(self.instant),
            "precision": self.precision.value,
            "kind": self.kind.value,
            "category": self.category.value,
            "description": self.description,
            "sourceDocIds": list(self.source_doc_ids),
            "corroboratingEventIds": list(self.corroborating_event_ids),
            "conflictingEventIds": list(self.conflicting_event_ids),
            "significance": self.significance.value,
            "confidence": _round(self.confidence),
        }


# =============================================================================
# Event Relations
# =============================================================================

@dataclass(frozen=True)
class Corroboration:
    """Undirected corroboration edge; event_a sorts before event_b."""
    event_a: str
    event_b: str
    similarity: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventA": self.event_a,
            "eventB": self.event_b,
            "similarity": _round(self.similarity),
        }


@dataclass(frozen=True)
class TemporalConflict:
    """Same-kind events dated more than a week apart."""
    event_a: str
    event_b: str
    days_apart: int
    severity: ConflictSeverity

    def to_dict(self) -> dict[str, Any]:
        return {
            "eventA": self.event_a,
            "eventB": self.event_b,
            "daysApart": self.days_apart,
            "severity": self.severity.value,
        }


@dataclass(frozen=True)
class CriticalPeriod:
    """Window of plus or minus seven days around a critical event."""
    id: str
    event_id: str
    start: datetime
    end: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "start": format_instant(self.start),
            "end": format_instant(self.end),
        }


@dataclass(frozen=True)
class CausalLink:
    """Directed link from an earlier event to a later one."""
    from_event_id: str
    to_event_id: str
    link_type: CausalLinkType
    strength: float
    template_id: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "fromEventId": self.from_event_id,
            "toEventId": self.to_event_id,
            "type": self.link_type.value,
            "strength": _round(self.strength),
        }
        if self.template_id:
            result["templateId"] = self.template_id
        return result


@dataclass(frozen=True)
class Gap:
    """Interval of more than 30 days between consecutive events."""
    start_event_id: str
    end_event_id: str
    start: datetime
    end: datetime
    duration_days: int
    priority: Significance

    def to_dict(self) -> dict[str, Any]:
        return {
            "startEventId": self.start_event_id,
            "endEventId": self.end_event_id,
            "start": format_instant(self.start),
            "end": format_instant(self.end),
            "durationDays": self.duration_days,
            "priority": self.priority.value,
        }


@dataclass(frozen=True)
class Deadline:
    """Statutory deadline triggered by an event."""
    id: str
    event_id: str
    due: datetime
    statutory_basis: str
    compliance_required: bool = True
    description: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "eventId": self.event_id,
            "due": format_instant(self.due),
            "statutoryBasis": self.statutory_basis,
            "complianceRequired": self.compliance_required,
            "description": self.description,
        }


# =============================================================================
# Timeline
# =============================================================================

@dataclass(frozen=True)
class Timeline:
    """The complete timeline, every collection in deterministic order."""
    events: tuple[TimelineEvent, ...] = ()
    corroborations: tuple[Corroboration, ...] = ()
    conflicts: tuple[TemporalConflict, ...] = ()
    critical_periods: tuple[CriticalPeriod, ...] = ()
    causal_links: tuple[CausalLink, ...] = ()
    gaps: tuple[Gap, ...] = ()
    deadlines: tuple[Deadline, ...] = ()
    milestones: tuple[str, ...] = ()

    def event(self, event_id: str) -> Optional[TimelineEvent]:
        for event in self.events:
            if event.id == event_id:
                return event
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "events": [e.to_dict() for e in self.events],
            "corroborations": [c.to_dict() for c in self.corroborations],
            "conflicts": [c.to_dict() for c in self.conflicts],
            "criticalPeriods": [p.to_dict() for p in self.critical_periods],
            "causalLinks": [link.to_dict() for link in self.causal_links],
            "gaps": [g.to_dict() for g in self.gaps],
            "deadlines": [d.to_dict() for d in self.deadlines],
            "milestones": list(self.milestones),
        }
