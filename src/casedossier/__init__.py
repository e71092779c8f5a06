"""
CaseDossier - Multi-Document Case Dossier Pipeline

CaseDossier reads the documents of one consumer-credit legal matter
(adverse-action letters, summonses, complaints, attorney notes,
correspondence, credit reports) and produces a single deterministic,
machine-readable dossier.

Key Features:
- Catalog-driven classification and fact extraction (no learned models)
- Cross-document fact correlation with conflict severity
- Unified timeline with corroboration, gaps and statutory deadlines
- Violation patterns, amplification and legal theory aggregates
- Template-driven evidence chains
- Byte-identical output for any input order or worker count

Quick Start:
    from casedossier import DefaultCatalogProvider, Settings, build_dossier
    from casedossier.output import to_json

    dossier = build_dossier(
        ["notes.txt", "adverse_action.txt"],
        DefaultCatalogProvider(),
        Settings(workers=4),
    )
    print(to_json(dossier))

Version: 0.1.0
"""
from __future__ import annotations

__version__ = "0.1.0"

from .catalog import (
    Catalog,
    CatalogProvider,
    DefaultCatalogProvider,
    FileCatalogProvider,
    StaticCatalogProvider,
    load_catalog,
    load_catalog_from_string,
)
from .config import Settings
from .engine import CancellationToken, DossierAssembler, build_dossier
from .exceptions import (
    CatalogInvalidError,
    CatalogLoadError,
    CatalogVersionError,
    DocumentError,
    DossierError,
    ExtractionTimeoutError,
    ExtractorPanicError,
    InputTooLargeError,
    InputUnreadableError,
    InternalInvariantViolation,
    OutputSchemaError,
    PipelineCancelledError,
)
from .models import Dossier, Kind

__all__ = [
    "__version__",
    # Catalog
    "Catalog",
    "CatalogProvider",
    "DefaultCatalogProvider",
    "FileCatalogProvider",
    "StaticCatalogProvider",
    "load_catalog",
    "load_catalog_from_string",
    # Pipeline
    "Settings",
    "CancellationToken",
    "DossierAssembler",
    "build_dossier",
    "Dossier",
    "Kind",
    # Errors
    "DossierError",
    "CatalogInvalidError",
    "CatalogLoadError",
    "CatalogVersionError",
    "DocumentError",
    "InputTooLargeError",
    "InputUnreadableError",
    "ExtractionTimeoutError",
    "ExtractorPanicError",
    "PipelineCancelledError",
    "InternalInvariantViolation",
    "OutputSchemaError",
]
