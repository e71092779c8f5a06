"""
Canonical JSON Serialization and Stable Identifiers

Provides deterministic JSON serialization for hashing and comparison:
- Sorted keys (lexicographic)
- No whitespace
- UTF-8 encoding

Every identifier in a dossier is derived from input content through
these helpers, so two runs over the same documents and catalog produce
the same ids regardless of scheduling.
"""
from __future__ import annotations

import hashlib
import json
import unicodedata
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any


def _default_serializer(obj: Any) -> Any:
    """
    Custom JSON serializer for non-standard types.

    Handles:
    - datetime: ISO 8601, UTC, second resolution, Z suffix
    - date: ISO 8601
    - Decimal: string (preserves precision)
    - Enum: value
    - dataclass: dict
    - set/frozenset: sorted list
    """
    if isinstance(obj, datetime):
        return format_instant(obj)
    if isinstance(obj, date):
        return obj.isoformat()
    if isinstance(obj, Decimal):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if is_dataclass(obj) and not isinstance(obj, type):
        return asdict(obj)
    if isinstance(obj, (set, frozenset)):
        return sorted(obj, key=str)
    if isinstance(obj, bytes):
        return obj.hex()
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def format_instant(value: datetime) -> str:
    """Format an instant as ``YYYY-MM-DDTHH:MM:SSZ`` in UTC."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def canonical_json(obj: Any) -> str:
    """
    Serialize object to canonical JSON string.

    Example:
        >>> canonical_json({"b": 1, "a": 2})
        '{"a":2,"b":1}'
    """
    return json.dumps(
        obj,
        sort_keys=True,
        separators=(",", ":"),
        default=_default_serializer,
        ensure_ascii=False,
    )


def canonical_json_bytes(obj: Any) -> bytes:
    """Serialize object to canonical JSON as UTF-8 bytes."""
    return canonical_json(obj).encode("utf-8")


def content_hash(obj: Any) -> str:
    """
    Compute SHA-256 hash of canonical JSON representation.

    Returns:
        Hex-encoded SHA-256 hash string (64 characters)
    """
    return hashlib.sha256(canonical_json_bytes(obj)).hexdigest()


def content_hash_short(obj: Any, length: int = 12) -> str:
    """Compute truncated SHA-256 hash of an object."""
    return content_hash(obj)[:length]


def text_hash(text: str) -> str:
    """Compute SHA-256 hash of text content."""
    return hashlib.sha256(text.encode("utf-8")).hexdigest()


def stable_id(prefix: str, *parts: Any, length: int = 12) -> str:
    """
    Build a deterministic identifier from a prefix and content parts.

    Example:
        >>> stable_id("fact", "doc-1a2b", "ClientName", 12, 11)
        'fact-...'
    """
    return f"{prefix}-{content_hash_short(list(parts), length)}"


def normalize_newlines(text: str) -> str:
    """Normalize line endings (CRLF -> LF, CR -> LF)."""
    return text.replace("\r\n", "\n").replace("\r", "\n")


def normalize_document_text(text: str) -> str:
    """
    Normalize decoded document text before any span is computed.

    Normalization:
    - Unicode normalize (NFC, keeps code points stable for offsets)
    - Normalize line endings to LF

    Whitespace and case are preserved so that extracted spans point at
    the text a reader would see.
    """
    return normalize_newlines(unicodedata.normalize("NFC", text))


def collapse_whitespace(text: str) -> str:
    """
    Collapse runs of whitespace to single spaces and strip the ends.

    Example:
        >>> collapse_whitespace("  Jane \\n  Q.  Doe ")
        'Jane Q. Doe'
    """
    return " ".join(text.split())
