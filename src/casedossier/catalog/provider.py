"""
CaseDossier Catalog Providers

Catalogs reach the pipeline only through an explicit provider. There is
no implicit fallback: callers who want the bundled tables ask for them
by name with DefaultCatalogProvider.
"""
from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional, Protocol, Union, runtime_checkable

from .loader import CatalogLoader
from .model import Catalog


FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"
DEFAULT_CATALOG_PATH = FIXTURES_DIR / "default_catalog.yaml"


@runtime_checkable
class CatalogProvider(Protocol):
    """
    Protocol for catalog sources.

    Implementations return a fully validated Catalog or raise
    CatalogInvalidError; they never return a partial catalog.
    """

    def load(self) -> Catalog:
        ...


class FileCatalogProvider:
    """
    Loads a catalog from a YAML or JSON file, once.

    Usage:
        provider = FileCatalogProvider("catalogs/fcra.yaml")
        catalog = provider.load()
    """

    def __init__(self, path: Union[str, Path], loader: Optional[CatalogLoader] = None):
        self.path = Path(path)
        self._loader = loader or CatalogLoader()
        self._lock = threading.Lock()
        self._catalog: Optional[Catalog] = None

    def load(self) -> Catalog:
        with self._lock:
            if self._catalog is None:
                self._catalog = self._loader.load(self.path)
            return self._catalog

    def __repr__(self) -> str:
        return f"{type(self).__name__}({str(self.path)!r})"


class DefaultCatalogProvider(FileCatalogProvider):
    """The bundled consumer-credit catalog (fixtures/default_catalog.yaml)."""

    def __init__(self, loader: Optional[CatalogLoader] = None):
        super().__init__(DEFAULT_CATALOG_PATH, loader)


class StaticCatalogProvider:
    """Wraps an already-built Catalog."""

    def __init__(self, catalog: Catalog):
        self._catalog = catalog

    def load(self) -> Catalog:
        return self._catalog
