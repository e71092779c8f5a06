"""
CaseDossier Settings

Runtime settings read from CD_* environment variables:

    CD_WORKERS              worker pool size (default: CPU count)
    CD_EXTRACTION_TIMEOUT   per-document extraction timeout, seconds (30)
    CD_MAX_DOCUMENT_BYTES   per-document size limit (50 MiB)
    CD_LOG_LEVEL            log level for the CLI (INFO)
    CD_CATALOG_PATH         catalog file used when none is given

Settings only carry values; nothing here discovers catalogs or reads
files.
"""
from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

DEFAULT_EXTRACTION_TIMEOUT = 30.0
DEFAULT_MAX_DOCUMENT_BYTES = 50 * 1024 * 1024


def _int(env: Mapping[str, str], name: str, default: Optional[int]) -> Optional[int]:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def _float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")
    if value <= 0:
        raise ValueError(f"{name} must be > 0, got {value}")
    return value


@dataclass(frozen=True)
class Settings:
    """
    Pipeline settings.

    Attributes:
        workers: Worker pool size; None means one per CPU
        extraction_timeout: Per-document extraction timeout in seconds
        max_document_bytes: Documents larger than this fail with INPUT_TOO_LARGE
        log_level: Log level name
        catalog_path: Catalog file, if configured
    """
    workers: Optional[int] = None
    extraction_timeout: float = DEFAULT_EXTRACTION_TIMEOUT
    max_document_bytes: int = DEFAULT_MAX_DOCUMENT_BYTES
    log_level: str = "INFO"
    catalog_path: Optional[str] = None

    @property
    def pool_size(self) -> int:
        return self.workers or os.cpu_count() or 1

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        """
        Build settings from the environment.

        Raises:
            ValueError: If a variable is set to an invalid value
        """
        env = os.environ if env is None else env
        return cls(
            workers=_int(env, "CD_WORKERS", None),
            extraction_timeout=_float(env, "CD_EXTRACTION_TIMEOUT", DEFAULT_EXTRACTION_TIMEOUT),
            max_document_bytes=_int(env, "CD_MAX_DOCUMENT_BYTES", DEFAULT_MAX_DOCUMENT_BYTES),
            log_level=(env.get("CD_LOG_LEVEL") or "INFO").upper(),
            catalog_path=env.get("CD_CATALOG_PATH") or None,
        )

    def with_overrides(self, **overrides) -> "Settings":
        """Copy with every non-None override applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})
