"""
CaseDossier Fact Extractor

Runs the catalog extractors declared for a document's primary Kind and
produces facts, violations, timeline events and one evidence item.

Extraction is a pure function of (document, catalog). A failing
extractor contributes nothing and leaves one EXTRACTOR_PANIC entry in
the document's validation log; cancellation and timeouts propagate to
the caller.

Fact confidence:
    baseConfidence * categoryWeight(category)
    (halved again when a date's year came from reader metadata)

Violation strength:
    min(0.9, 0.5 + 0.1 * matchedTriggers)
"""
from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from ..canon import collapse_whitespace, stable_id
from ..catalog import (
    Catalog,
    EventExtractorSpec,
    FactExtractorSpec,
    Statute,
    ViolationSignature,
)
from ..exceptions import ExtractionTimeoutError, ExtractorPanicError, PipelineCancelledError
from ..models import (
    Document,
    ElementResult,
    ElementStatus,
    EventKind,
    EvidenceItem,
    EvidenceType,
    Fact,
    Kind,
    Precision,
    RawSpan,
    Relevance,
    TimelineEvent,
    ValidationEntry,
    ValidationLog,
    Violation,
    ordinal,
)
from .normalize import ParsedDate, document_year, parse_date, parse_money

logger = logging.getLogger(__name__)

Checkpoint = Callable[[], None]


EVIDENCE_TYPES = {
    Kind.ATTORNEY_NOTES: EvidenceType.TESTIMONIAL,
    Kind.CREDIT_REPORT: EvidenceType.STATISTICAL,
    Kind.CORRESPONDENCE: EvidenceType.CIRCUMSTANTIAL,
    Kind.OTHER: EvidenceType.CIRCUMSTANTIAL,
}


def evidence_type_for(kind: Kind) -> EvidenceType:
    return EVIDENCE_TYPES.get(kind, EvidenceType.DOCUMENTARY)


@dataclass(frozen=True)
class Extraction:
    """Everything extracted from one document."""
    doc_id: str
    facts: tuple[Fact, ...] = ()
    violations: tuple[Violation, ...] = ()
    events: tuple[TimelineEvent, ...] = ()
    evidence: Optional[EvidenceItem] = None

    @classmethod
    def empty(cls, doc_id: str) -> "Extraction":
        return cls(doc_id=doc_id)


def value_span(match: re.Match) -> tuple[int, int]:
    """Bounds of the ``value`` group, else group 1, else the whole match."""
    if "value" in match.re.groupindex and match.start("value") != -1:
        return match.span("value")
    if match.re.groups >= 1 and match.start(1) != -1:
        return match.span(1)
    return match.span(0)


def _noop() -> None:
    return None


class FactExtractor:
    """
    Extracts facts, violations, events and evidence from documents.

    Usage:
        extractor = FactExtractor(catalog)
        extraction = extractor.extract(document, log, checkpoint)
    """

    def __init__(self, catalog: Catalog):
        self.catalog = catalog
        self.scoring = catalog.scoring

    # -------------------------------------------------------------------------
    # Entry point
    # -------------------------------------------------------------------------

    def extract(
        self,
        document: Document,
        log: ValidationLog,
        checkpoint: Optional[Checkpoint] = None,
    ) -> Extraction:
        """
        Extract everything from one successfully read document.

        Raises:
            PipelineCancelledError: If the pipeline is cancelled mid-scan
            ExtractionTimeoutError: If the document's deadline passes
        """
        if document.failed:
            return Extraction.empty(document.id)
        checkpoint = checkpoint or _noop
        doc_year = document_year(document.text)

        facts = self._extract_facts(document, doc_year, log, checkpoint)
        violations = self._extract_violations(document, facts, log, checkpoint)
        events = self._extract_events(document, doc_year, violations, log, checkpoint)
        evidence = EvidenceItem(
            id=stable_id("evid", document.id),
            doc_id=document.id,
            evidence_type=evidence_type_for(document.kind),
            description=f"{document.kind.value} {os.path.basename(document.path)}",
            fact_ids=tuple(f.id for f in facts),
            confidence=document.primary_confidence,
        )

        logger.debug(
            "Extracted %d facts, %d violations, %d events",
            len(facts), len(violations), len(events),
            extra={"doc_id": document.id, "stage": "extract"},
        )
        return Extraction(
            doc_id=document.id,
            facts=facts,
            violations=violations,
            events=events,
            evidence=evidence,
        )

    def _guarded(self, document: Document, name: str, log: ValidationLog, run: Callable[[], list]) -> list:
        """Run one extractor; a failure is logged and yields nothing."""
        try:
            return run()
        except (PipelineCancelledError, ExtractionTimeoutError):
            raise
        except Exception as e:
            error = ExtractorPanicError(
                message=f"Extractor '{name}' failed: {type(e).__name__}: {e}",
                details={"extractor": name},
                doc_id=document.id,
            )
            log.append(document.id, ValidationEntry.from_error(error))
            logger.warning(
                "Extractor %s failed: %s", name, e,
                extra={"doc_id": document.id, "stage": "extract"},
            )
            return []

    # -------------------------------------------------------------------------
    # Facts
    # -------------------------------------------------------------------------

    def _extract_facts(
        self,
        document: Document,
        doc_year: Optional[int],
        log: ValidationLog,
        checkpoint: Checkpoint,
    ) -> tuple[Fact, ...]:
        collected: list[Fact] = []
        for spec in self.catalog.extractors_for(document.kind):
            collected.extend(self._guarded(
                document, spec.name, log,
                lambda spec=spec: self._run_fact_extractor(spec, document, doc_year, checkpoint),
            ))

        unique: dict[tuple, Fact] = {}
        for fact in collected:
            key = (fact.kind, fact.value, fact.raw_span.offset, fact.raw_span.length)
            unique.setdefault(key, fact)
        return tuple(sorted(
            unique.values(),
            key=lambda f: (f.raw_span.offset, ordinal(f.kind), f.raw_span.length, f.value),
        ))

    def _run_fact_extractor(
        self,
        spec: FactExtractorSpec,
        document: Document,
        doc_year: Optional[int],
        checkpoint: Checkpoint,
    ) -> list[Fact]:
        text = document.text
        base = spec.base_confidence * self.scoring.category_weight(spec.category)
        facts = []
        for match in spec.pattern.finditer(text):
            checkpoint()
            start, end = value_span(match)
            raw_value = text[start:end]
            if not raw_value.strip():
                continue

            conf = base
            money = None
            if spec.fact_kind.is_date:
                parsed = parse_date(raw_value, doc_year, document.metadata)
                if parsed is None:
                    continue
                value = parsed.iso
                if parsed.year_from_metadata:
                    conf *= self.scoring.inferred_year_penalty
            elif spec.fact_kind.is_money:
                money = parse_money(raw_value)
                if money is None:
                    continue
                value = money.canonical
            else:
                value = collapse_whitespace(raw_value)

            facts.append(Fact(
                id=stable_id("fact", document.id, spec.fact_kind.value, start, end - start, value),
                kind=spec.fact_kind,
                value=value,
                raw_value=raw_value,
                raw_span=RawSpan(doc_id=document.id, offset=start, length=end - start),
                confidence=conf,
                relevance=spec.relevance,
                extractor=spec.name,
                money=money,
            ))
        return facts

    # -------------------------------------------------------------------------
    # Violations
    # -------------------------------------------------------------------------

    def _extract_violations(
        self,
        document: Document,
        facts: tuple[Fact, ...],
        log: ValidationLog,
        checkpoint: Checkpoint,
    ) -> tuple[Violation, ...]:
        violations: dict[str, Violation] = {}
        for signature in self.catalog.signatures_for(document.kind):
            if signature.statute_id in violations:
                continue
            found = self._guarded(
                document, f"signature:{signature.statute_id}", log,
                lambda sig=signature: self._match_signature(sig, document, facts, checkpoint),
            )
            for violation in found:
                violations[violation.statute_id] = violation
        return tuple(sorted(violations.values(), key=lambda v: v.id))

    def _match_signature(
        self,
        signature: ViolationSignature,
        document: Document,
        facts: tuple[Fact, ...],
        checkpoint: Checkpoint,
    ) -> list[Violation]:
        matched = 0
        for trigger in signature.triggers:
            checkpoint()
            if trigger.search(document.text):
                matched += 1
        if matched == 0:
            return []

        supporting = [f for f in facts if f.relevance.rank >= signature.min_relevance.rank]
        if signature.min_relevance != Relevance.LOW and not supporting:
            return []

        scoring = self.scoring
        strength = min(
            scoring.violation_cap,
            scoring.violation_base + scoring.violation_per_trigger * matched,
        )
        return [Violation(
            id=stable_id("viol", document.id, signature.statute_id),
            statute_id=signature.statute_id,
            kind=signature.violation_kind,
            source_doc_id=document.id,
            supporting_fact_ids=tuple(f.id for f in supporting),
            base_strength=strength,
            occurrence=earliest_date(facts),
            matched_triggers=matched,
            element_satisfaction=element_satisfaction(
                self.catalog.statute(signature.statute_id), facts
            ),
        )]

    # -------------------------------------------------------------------------
    # Timeline events
    # -------------------------------------------------------------------------

    def _extract_events(
        self,
        document: Document,
        doc_year: Optional[int],
        violations: tuple[Violation, ...],
        log: ValidationLog,
        checkpoint: Checkpoint,
    ) -> tuple[TimelineEvent, ...]:
        events: dict[str, TimelineEvent] = {}
        for spec in self.catalog.event_extractors_for(document.kind):
            found = self._guarded(
                document, spec.name, log,
                lambda spec=spec: self._run_event_extractor(spec, document, doc_year, checkpoint),
            )
            for event in found:
                events.setdefault(event.id, event)

        for violation in violations:
            if violation.occurrence is None:
                continue
            statute = self.catalog.statute(violation.statute_id)
            label = statute.citation if statute and statute.citation else violation.statute_id
            event = TimelineEvent(
                id=stable_id("evt", violation.id),
                instant=violation.occurrence,
                precision=Precision.DAY,
                kind=EventKind.FCRA_VIOLATION,
                description=f"Violation of {label}",
                source_doc_ids=(document.id,),
                confidence=violation.base_strength,
            )
            events.setdefault(event.id, event)
        return tuple(sorted(events.values(), key=lambda e: (e.instant, ordinal(e.kind), e.id)))

    def _run_event_extractor(
        self,
        spec: EventExtractorSpec,
        document: Document,
        doc_year: Optional[int],
        checkpoint: Checkpoint,
    ) -> list[TimelineEvent]:
        base = spec.base_confidence * self.scoring.category_weight(spec.category)
        events = []
        for match in spec.pattern.finditer(document.text):
            checkpoint()
            raw = match.group("date")
            if raw is None:
                continue
            parsed = parse_date(raw, doc_year, document.metadata)
            if parsed is None:
                continue
            conf = base * (self.scoring.inferred_year_penalty if parsed.year_from_metadata else 1.0)
            events.append(TimelineEvent(
                id=stable_id("evt", document.id, spec.name, parsed.iso),
                instant=parsed.instant,
                precision=parsed.precision,
                kind=spec.event_kind,
                description=spec.description,
                source_doc_ids=(document.id,),
                significance=spec.significance,
                confidence=conf,
            ))
        return events


# =============================================================================
# Helpers
# =============================================================================

def fact_instant(fact: Fact) -> Optional[datetime]:
    """Instant carried by a date-valued fact."""
    if not fact.kind.is_date:
        return None
    parsed = parse_date(fact.value)
    return parsed.instant if isinstance(parsed, ParsedDate) else None


def earliest_date(facts: tuple[Fact, ...]) -> Optional[datetime]:
    instants = [i for i in (fact_instant(f) for f in facts) if i is not None]
    return min(instants) if instants else None


def element_satisfaction(
    statute: Optional[Statute], facts: tuple[Fact, ...]
) -> tuple[ElementResult, ...]:
    """
    Score each statute element against a document's facts.

    An element is satisfied when every listed fact kind has a fact,
    partial when some do, else unsatisfied.
    """
    if statute is None:
        return ()
    results = []
    for element in statute.elements:
        support = tuple(f.id for f in facts if f.kind in element.fact_kinds)
        present = {f.kind for f in facts if f.kind in element.fact_kinds}
        if element.fact_kinds and len(present) == len(set(element.fact_kinds)):
            status = ElementStatus.SATISFIED
        elif present:
            status = ElementStatus.PARTIAL
        else:
            status = ElementStatus.UNSATISFIED
        results.append(ElementResult(element_id=element.id, status=status, support=support))
    return tuple(results)
