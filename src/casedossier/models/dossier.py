"""
CaseDossier Root Aggregate

The Dossier is produced once by the assembler and never modified.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from .chains import EvidenceChain
from .correlation import Correlation
from .document import Document
from .facts import EvidenceItem, Fact, Violation
from .patterns import AmplifiedViolation, LegalTheory, Pattern
from .report import ValidationReport
from .timeline import Timeline


@dataclass(frozen=True)
class Dossier:
    """
    Structured case dossier.

    Attributes:
        docs: Documents sorted by id
        facts: Facts sorted by (document id, offset, kind ordinal)
        correlations: Sorted by (docA, docB)
        timeline: Ordered timeline with derived features
        patterns: Violation patterns sorted by id
        amplified_violations: One per violation, sorted by violation id
        theories: Legal theory aggregates
        chains: Evidence chains in template order
        validation_report: Per-document and dossier-level notes
        violations: Violations as extracted, sorted by id
        evidence_items: One per extracted document
        catalog_fingerprint: Hash of the catalog used
        reliability: Per-document reliability score
    """
    docs: tuple[Document, ...]
    facts: tuple[Fact, ...]
    correlations: tuple[Correlation, ...]
    timeline: Timeline
    patterns: tuple[Pattern, ...]
    amplified_violations: tuple[AmplifiedViolation, ...]
    theories: tuple[LegalTheory, ...]
    chains: tuple[EvidenceChain, ...]
    validation_report: ValidationReport
    violations: tuple[Violation, ...] = ()
    evidence_items: tuple[EvidenceItem, ...] = ()
    catalog_fingerprint: str = ""
    reliability: tuple[tuple[str, float], ...] = field(default=())

    def doc(self, doc_id: str) -> Optional[Document]:
        for document in self.docs:
            if document.id == doc_id:
                return document
        return None

    def facts_for(self, doc_id: str) -> tuple[Fact, ...]:
        return tuple(f for f in self.facts if f.doc_id == doc_id)

    def summary(self) -> dict[str, int]:
        """Table sizes, for logging."""
        return {
            "docs": len(self.docs),
            "failedDocs": len(self.validation_report.failed_documents),
            "facts": len(self.facts),
            "violations": len(self.violations),
            "correlations": len(self.correlations),
            "events": len(self.timeline.events),
            "patterns": len(self.patterns),
            "theories": len(self.theories),
            "chains": len(self.chains),
        }

    def to_dict(self) -> dict[str, Any]:
        """
        Serialize with camelCase keys.

        The first nine keys come in the order downstream tools diff on;
        the expanded keys follow.
        """
        reliability = dict(self.reliability)
        return {
            "docs": [d.to_dict(reliability.get(d.id)) for d in self.docs],
            "facts": [f.to_dict() for f in self.facts],
            "correlations": [c.to_dict() for c in self.correlations],
            "timeline": self.timeline.to_dict(),
            "patterns": [p.to_dict() for p in self.patterns],
            "amplifiedViolations": [a.to_dict() for a in self.amplified_violations],
            "theories": [t.to_dict() for t in self.theories],
            "chains": [c.to_dict() for c in self.chains],
            "validationReport": self.validation_report.to_dict(),
            "violations": [v.to_dict() for v in self.violations],
            "evidenceItems": [e.to_dict() for e in self.evidence_items],
            "catalogFingerprint": self.catalog_fingerprint,
        }
