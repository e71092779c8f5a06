"""
CaseDossier Exception Hierarchy

Domain-specific exceptions for the dossier pipeline.
All exceptions include error codes for tracking and logging.

Exception codes follow the pattern: CD_<CATEGORY>_<SPECIFIC>

Per-document errors (input, extraction) are caught by the assembler and
recorded as data on the document. Catalog, cancellation and invariant
errors are pipeline-wide and propagate to the caller.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DossierError(Exception):
    """
    Base exception for all CaseDossier errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code (CD_*)
        details: Additional context about the error
        doc_id: Associated document ID if applicable
    """
    message: str
    code: str = "CD_INTERNAL_ERROR"
    details: dict[str, Any] = field(default_factory=dict)
    doc_id: Optional[str] = None

    def __post_init__(self) -> None:
        super().__init__(self.message)

    def __str__(self) -> str:
        parts = [f"[{self.code}] {self.message}"]
        if self.doc_id:
            parts.append(f"(document: {self.doc_id})")
        return " ".join(parts)

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging and the validation report."""
        result: dict[str, Any] = {
            "code": self.code,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.doc_id:
            result["docId"] = self.doc_id
        return result


# =============================================================================
# Catalog Errors (fatal, raised before the pipeline runs)
# =============================================================================

@dataclass
class CatalogInvalidError(DossierError):
    """Pattern catalog failed validation; nothing from it is applied."""
    code: str = "CD_CATALOG_INVALID"

    @property
    def errors(self) -> list[str]:
        return list(self.details.get("errors", []))


@dataclass
class CatalogLoadError(CatalogInvalidError):
    """Pattern catalog file could not be read or parsed."""
    code: str = "CD_CATALOG_LOAD_ERROR"


@dataclass
class CatalogVersionError(CatalogInvalidError):
    """Catalog version is not compatible with this release."""
    code: str = "CD_CATALOG_VERSION_MISMATCH"


# =============================================================================
# Per-Document Errors (recorded as data)
# =============================================================================

@dataclass
class DocumentError(DossierError):
    """Base for errors that degrade a single document."""
    code: str = "CD_DOCUMENT_ERROR"

    @property
    def reason(self) -> str:
        """Short reason code recorded on the failed document."""
        return self.code[len("CD_"):] if self.code.startswith("CD_") else self.code


@dataclass
class InputTooLargeError(DocumentError):
    """Document exceeds the configured maximum size."""
    code: str = "CD_INPUT_TOO_LARGE"


@dataclass
class InputUnreadableError(DocumentError):
    """Document could not be read or decoded as UTF-8."""
    code: str = "CD_INPUT_UNREADABLE"


@dataclass
class ExtractionTimeoutError(DocumentError):
    """Per-document extraction exceeded its time budget."""
    code: str = "CD_EXTRACTION_TIMEOUT"


@dataclass
class ExtractorPanicError(DocumentError):
    """A single extractor failed; its facts are discarded."""
    code: str = "CD_EXTRACTOR_PANIC"


# =============================================================================
# Pipeline Errors (fatal, raised to the caller)
# =============================================================================

@dataclass
class PipelineCancelledError(DossierError):
    """Pipeline was cancelled; no dossier is produced."""
    code: str = "CD_CANCELLED"


@dataclass
class InternalInvariantViolation(DossierError):
    """Final invariant check failed on the assembled dossier."""
    code: str = "CD_INVARIANT_VIOLATION"

    @property
    def invariants(self) -> list[str]:
        return list(self.details.get("invariants", []))


@dataclass
class OutputSchemaError(InternalInvariantViolation):
    """Serialized dossier does not conform to the output JSON schema."""
    code: str = "CD_OUTPUT_SCHEMA_ERROR"
