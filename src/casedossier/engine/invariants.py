"""
CaseDossier Dossier Invariants

Top-level consistency checks run on every assembled Dossier. Each check
returns a list of problems; any problem fails the whole run with
InternalInvariantViolation naming the failing invariants.
"""
from __future__ import annotations

import logging
from collections import Counter
from typing import Callable, Iterable

from ..exceptions import InternalInvariantViolation
from ..models import Dossier, Precision

logger = logging.getLogger(__name__)

MAX_REPORTED_PROBLEMS = 20


def _duplicates(ids: Iterable[str]) -> list[str]:
    return sorted(i for i, n in Counter(ids).items() if n > 1)


def check_span_integrity(dossier: Dossier) -> list[str]:
    problems = []
    texts = {d.id: d.text for d in dossier.docs}
    for fact in dossier.facts:
        text = texts.get(fact.doc_id)
        if text is None:
            problems.append(f"fact {fact.id} points at unknown document {fact.doc_id}")
            continue
        span = fact.raw_span
        if span.offset < 0 or span.end > len(text):
            problems.append(f"fact {fact.id} span outside document text")
        elif text[span.offset:span.end] != fact.raw_value:
            problems.append(f"fact {fact.id} raw value does not match its span")
    return problems


def check_unique_ids(dossier: Dossier) -> list[str]:
    tables = {
        "docs": (d.id for d in dossier.docs),
        "facts": (f.id for f in dossier.facts),
        "violations": (v.id for v in dossier.violations),
        "evidenceItems": (e.id for e in dossier.evidence_items),
        "events": (e.id for e in dossier.timeline.events),
        "patterns": (p.id for p in dossier.patterns),
        "amplifiedViolations": (a.id for a in dossier.amplified_violations),
        "theories": (t.id for t in dossier.theories),
        "chains": (c.id for c in dossier.chains),
    }
    problems = []
    for table, ids in tables.items():
        for duplicate in _duplicates(ids):
            problems.append(f"duplicate id {duplicate} in {table}")
    return problems


def check_references(dossier: Dossier) -> list[str]:
    doc_ids = {d.id for d in dossier.docs}
    fact_ids = {f.id for f in dossier.facts}
    violation_ids = {v.id for v in dossier.violations}
    event_ids = {e.id for e in dossier.timeline.events}
    problems = []

    def expect(ids: Iterable[str], known: set, owner: str) -> None:
        for ref in ids:
            if ref not in known:
                problems.append(f"{owner} references unknown id {ref}")

    for violation in dossier.violations:
        expect([violation.source_doc_id], doc_ids, violation.id)
        expect(violation.supporting_fact_ids, fact_ids, violation.id)
    for item in dossier.evidence_items:
        expect([item.doc_id], doc_ids, item.id)
        expect(item.fact_ids, fact_ids, item.id)
    for correlation in dossier.correlations:
        expect([correlation.doc_a, correlation.doc_b], doc_ids, "correlation")
        for pair in (*correlation.matching_facts, *correlation.conflicting_facts):
            expect([pair.fact_a, pair.fact_b], fact_ids, "correlation")
    for event in dossier.timeline.events:
        expect(event.source_doc_ids, doc_ids, event.id)
        expect(event.corroborating_event_ids, event_ids, event.id)
        expect(event.conflicting_event_ids, event_ids, event.id)
    for link in dossier.timeline.causal_links:
        expect([link.from_event_id, link.to_event_id], event_ids, "causal link")
    for pattern in dossier.patterns:
        expect(pattern.violation_ids, violation_ids, pattern.id)
    for amplified in dossier.amplified_violations:
        expect([amplified.id], violation_ids, "amplified violation")
    for theory in dossier.theories:
        expect(theory.supporting_violation_ids, violation_ids, theory.id)
    return problems


def check_amplification_bounds(dossier: Dossier) -> list[str]:
    return [
        f"{a.id} amplified strength {a.amplified_strength} outside "
        f"[{a.base_strength}, 1]"
        for a in dossier.amplified_violations
        if not a.base_strength <= a.amplified_strength <= 1.0
    ]


def check_event_precision(dossier: Dossier) -> list[str]:
    """Day events sit on midnight; merged sources agree to the event's precision."""
    problems = []
    for event in dossier.timeline.events:
        if event.precision not in (Precision.EXACT, Precision.DAY):
            continue
        if event.precision == Precision.DAY and event.instant.time().isoformat() != "00:00:00":
            problems.append(f"event {event.id} is not day-aligned")
        if not event.source_doc_ids:
            problems.append(f"event {event.id} has no source document")
        if event.precision == Precision.EXACT:
            disagree = any(i != event.instant for i in event.source_instants)
        else:
            disagree = any(i.date() != event.instant.date() for i in event.source_instants)
        if disagree:
            problems.append(f"event {event.id} merges sources that disagree at {event.precision.value} precision")
    return problems


def check_chain_links(dossier: Dossier) -> list[str]:
    problems = []
    for chain in dossier.chains:
        members = chain.element_ids
        for link in chain.links:
            if link.from_id not in members or link.to_id not in members:
                problems.append(f"chain {chain.id} link {link.from_id}->{link.to_id} leaves the chain")
    return problems


def check_timeline_order(dossier: Dossier) -> list[str]:
    events = dossier.timeline.events
    return [
        f"event {b.id} precedes {a.id}"
        for a, b in zip(events, events[1:])
        if b.instant < a.instant
    ]


INVARIANTS: tuple[tuple[str, Callable[[Dossier], list[str]]], ...] = (
    ("span_integrity", check_span_integrity),
    ("unique_ids", check_unique_ids),
    ("references", check_references),
    ("amplification_bounds", check_amplification_bounds),
    ("event_precision", check_event_precision),
    ("chain_links", check_chain_links),
    ("timeline_order", check_timeline_order),
)


def check_invariants(dossier: Dossier) -> tuple[str, ...]:
    """
    Run every invariant check.

    Returns:
        Names of the invariants checked

    Raises:
        InternalInvariantViolation: With the failing names in
            ``details["invariants"]``
    """
    failed: list[str] = []
    problems: list[str] = []
    for name, check in INVARIANTS:
        found = check(dossier)
        if found:
            failed.append(name)
            problems.extend(found)

    if failed:
        logger.error(
            "Dossier invariants failed: %s", ", ".join(failed),
            extra={"stage": "invariants"},
        )
        raise InternalInvariantViolation(
            message=f"Dossier failed invariant checks: {', '.join(failed)}",
            details={
                "invariants": failed,
                "problems": problems[:MAX_REPORTED_PROBLEMS],
            },
        )
    return tuple(name for name, _ in INVARIANTS)
