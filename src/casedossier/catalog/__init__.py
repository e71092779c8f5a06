"""
CaseDossier Pattern Catalog

Typed, validated, read-only pattern tables.

Usage:
    from casedossier.catalog import DefaultCatalogProvider, load_catalog

    catalog = DefaultCatalogProvider().load()
    custom = load_catalog("catalogs/custom.yaml")
"""
from __future__ import annotations

from .loader import (
    CatalogLoader,
    build_catalog,
    load_catalog,
    load_catalog_from_string,
)
from .model import (
    AmplificationRule,
    Catalog,
    CausalTemplate,
    ChainTemplate,
    DeadlineRule,
    EventExtractorSpec,
    FactExtractorSpec,
    KindProfile,
    LinkRule,
    PatternTemplate,
    Scoring,
    Statute,
    StatuteElement,
    TheoryTemplate,
    ViolationSignature,
)
from .provider import (
    DEFAULT_CATALOG_PATH,
    CatalogProvider,
    DefaultCatalogProvider,
    FileCatalogProvider,
    StaticCatalogProvider,
)
from .schema import CATALOG_SCHEMA_VERSION, CatalogSchema, parse_duration, validate_catalog

__all__ = [
    # Loading
    "CatalogLoader",
    "build_catalog",
    "load_catalog",
    "load_catalog_from_string",
    # Providers
    "CatalogProvider",
    "FileCatalogProvider",
    "DefaultCatalogProvider",
    "StaticCatalogProvider",
    "DEFAULT_CATALOG_PATH",
    # Schema
    "CATALOG_SCHEMA_VERSION",
    "CatalogSchema",
    "parse_duration",
    "validate_catalog",
    # Domain model
    "Catalog",
    "Scoring",
    "KindProfile",
    "FactExtractorSpec",
    "EventExtractorSpec",
    "Statute",
    "StatuteElement",
    "ViolationSignature",
    "AmplificationRule",
    "PatternTemplate",
    "TheoryTemplate",
    "ChainTemplate",
    "LinkRule",
    "CausalTemplate",
    "DeadlineRule",
]
