"""
CaseDossier Validation Report Models

Per-document notes are appended to a ValidationLog while the owning
extraction task runs, and read only after that task has completed.
"""
from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import Any, Optional

from ..exceptions import DossierError
from .correlation import ConsistencySummary


@dataclass(frozen=True)
class ValidationEntry:
    """One note about a document or the dossier as a whole."""
    code: str
    message: str
    severity: str = "error"
    doc_id: Optional[str] = None
    details: tuple[tuple[str, Any], ...] = ()

    @classmethod
    def from_error(cls, error: DossierError, severity: str = "error") -> "ValidationEntry":
        return cls(
            code=error.code,
            message=error.message,
            severity=severity,
            doc_id=error.doc_id,
            details=tuple(sorted((k, str(v)) for k, v in error.details.items())),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "code": self.code,
            "severity": self.severity,
            "message": self.message,
        }
        if self.doc_id:
            result["docId"] = self.doc_id
        if self.details:
            result["details"] = dict(self.details)
        return result


class ValidationLog:
    """
    Append-only log of validation entries keyed by document id.

    Appends take an exclusive lock. Reads return snapshots and are only
    made once the owning document task has finished.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[str, list[ValidationEntry]] = {}

    def append(self, doc_id: str, entry: ValidationEntry) -> None:
        with self._lock:
            self._entries.setdefault(doc_id, []).append(entry)

    def entries_for(self, doc_id: str) -> tuple[ValidationEntry, ...]:
        with self._lock:
            return tuple(self._entries.get(doc_id, ()))

    def discard(self, doc_id: str) -> None:
        """Drop partial notes of a document whose task was abandoned."""
        with self._lock:
            self._entries.pop(doc_id, None)


@dataclass(frozen=True)
class DocumentReport:
    """Validation section of one document."""
    doc_id: str
    path: str
    status: str
    reason: Optional[str] = None
    entries: tuple[ValidationEntry, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "docId": self.doc_id,
            "path": self.path,
            "status": self.status,
            "entries": [e.to_dict() for e in self.entries],
        }
        if self.reason:
            result["reason"] = self.reason
        return result


@dataclass(frozen=True)
class ValidationReport:
    """Dossier-level validation report."""
    documents: tuple[DocumentReport, ...] = ()
    consistency: ConsistencySummary = field(default_factory=ConsistencySummary)
    invariants_checked: tuple[str, ...] = ()

    @property
    def failed_documents(self) -> tuple[str, ...]:
        return tuple(d.doc_id for d in self.documents if d.status == "failed")

    def to_dict(self) -> dict[str, Any]:
        return {
            "documents": [d.to_dict() for d in self.documents],
            "failedDocuments": list(self.failed_documents),
            "consistency": self.consistency.to_dict(),
            "invariantsChecked": list(self.invariants_checked),
        }
