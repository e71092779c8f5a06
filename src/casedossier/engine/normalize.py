"""
CaseDossier Value Normalization

Date, money and token helpers shared by the extractor, correlator and
timeline builder.

Accepted date forms:
    M/D/YYYY          3/5/2024
    YYYY-MM-DD        2024-03-05
    Month D, YYYY     March 5, 2024
    Month D           March 5        (year inferred)

Invalid calendar dates (February 30) are dropped, never guessed.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

from ..canon import collapse_whitespace
from ..models import Money, Precision


# =============================================================================
# Dates
# =============================================================================

MONTHS = {
    "january": 1, "february": 2, "march": 3, "april": 4,
    "may": 5, "june": 6, "july": 7, "august": 8,
    "september": 9, "october": 10, "november": 11, "december": 12,
    "jan": 1, "feb": 2, "mar": 3, "apr": 4, "jun": 6, "jul": 7,
    "aug": 8, "sep": 9, "sept": 9, "oct": 10, "nov": 11, "dec": 12,
}

_MONTH_NAMES = "|".join(sorted(MONTHS, key=len, reverse=True))

US_DATE = re.compile(r"\b(\d{1,2})/(\d{1,2})/(\d{4})\b")
ISO_DATE = re.compile(r"\b(\d{4})-(\d{2})-(\d{2})\b")
LONG_DATE = re.compile(
    rf"\b({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?,?\s+(\d{{4}})\b", re.IGNORECASE
)
MONTH_DAY = re.compile(rf"^({_MONTH_NAMES})\.?\s+(\d{{1,2}})(?:st|nd|rd|th)?$", re.IGNORECASE)


@dataclass(frozen=True)
class ParsedDate:
    """
    A parsed calendar date.

    Attributes:
        value: The date
        precision: day, or approx when the year came from reader metadata
        year_from_metadata: True when confidence should be reduced
    """
    value: date
    precision: Precision = Precision.DAY
    year_from_metadata: bool = False

    @property
    def iso(self) -> str:
        return self.value.isoformat()

    @property
    def instant(self) -> datetime:
        return to_instant(self.value)


def to_instant(value: date) -> datetime:
    """Midnight UTC on the given date."""
    return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)


def _make_date(year: int, month: int, day: int) -> Optional[date]:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _full_date(text: str) -> Optional[date]:
    text = text.strip()
    match = ISO_DATE.fullmatch(text)
    if match:
        return _make_date(int(match.group(1)), int(match.group(2)), int(match.group(3)))
    match = US_DATE.fullmatch(text)
    if match:
        return _make_date(int(match.group(3)), int(match.group(1)), int(match.group(2)))
    match = LONG_DATE.fullmatch(text)
    if match:
        month = MONTHS[match.group(1).lower()]
        return _make_date(int(match.group(3)), month, int(match.group(2)))
    return None


def document_year(text: str) -> Optional[int]:
    """
    Year of the document date: the first valid full date in the text.

    Example:
        >>> document_year("Re: account\\nMarch 5, 2024\\nDear ...")
        2024
    """
    candidates = []
    for pattern in (ISO_DATE, US_DATE, LONG_DATE):
        for match in pattern.finditer(text):
            parsed = _full_date(match.group(0))
            if parsed is not None:
                candidates.append((match.start(), parsed.year))
                break
    if not candidates:
        return None
    return min(candidates)[1]


def _metadata_year(metadata: Optional[dict[str, Any]]) -> Optional[int]:
    if not metadata:
        return None
    value = metadata.get("year")
    try:
        year = int(value)
    except (TypeError, ValueError):
        return None
    return year if 1 <= year <= 9999 else None


def parse_date(
    text: str,
    doc_year: Optional[int] = None,
    metadata: Optional[dict[str, Any]] = None,
) -> Optional[ParsedDate]:
    """
    Parse one of the accepted date forms.

    ``Month D`` takes ``doc_year``; without one it takes the ``year``
    from reader metadata and is flagged low-confidence; otherwise it is
    dropped.

    Returns:
        ParsedDate, or None when the text is not a valid date
    """
    text = collapse_whitespace(text)
    if not text:
        return None

    full = _full_date(text)
    if full is not None:
        return ParsedDate(value=full)

    match = MONTH_DAY.fullmatch(text)
    if not match:
        return None
    month = MONTHS[match.group(1).lower()]
    day = int(match.group(2))

    if doc_year is not None:
        value = _make_date(doc_year, month, day)
        return ParsedDate(value=value) if value else None

    year = _metadata_year(metadata)
    if year is None:
        return None
    value = _make_date(year, month, day)
    if value is None:
        return None
    return ParsedDate(value=value, precision=Precision.APPROX, year_from_metadata=True)


# =============================================================================
# Money
# =============================================================================

_AMOUNT = re.compile(r"^\d+(?:\.\d{1,2})?$")
_CURRENCY_CODE = re.compile(r"^[A-Z]{3}$")


def parse_money(text: str, currency: str = "USD") -> Optional[Money]:
    """
    Parse a money amount into minor units.

    Strips ``$`` and thousands separators. Negative amounts (leading
    minus or accounting parentheses) are rejected.

    Example:
        >>> parse_money("$12,500.00")
        Money(minor_units=1250000, currency='USD')
    """
    cleaned = collapse_whitespace(text)
    if not cleaned or cleaned.startswith("-") or cleaned.startswith("("):
        return None

    parts = cleaned.split(" ")
    if len(parts) == 2 and _CURRENCY_CODE.match(parts[1]):
        cleaned, currency = parts[0], parts[1]

    cleaned = cleaned.replace(" ", "")
    if cleaned.startswith("$"):
        cleaned = cleaned[1:]
    if cleaned.startswith("-"):
        return None
    cleaned = cleaned.replace(",", "")
    if not _AMOUNT.match(cleaned):
        return None

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    return Money(minor_units=int(amount * 100), currency=currency)


# =============================================================================
# Tokens and similarity
# =============================================================================

def tokens(text: str) -> set[str]:
    """Lowercased whitespace-split token set."""
    return set(text.lower().split())


def jaccard(a: str, b: str) -> float:
    """Jaccard index of the token sets; 0.0 when both are empty."""
    left, right = tokens(a), tokens(b)
    union = left | right
    if not union:
        return 0.0
    return len(left & right) / len(union)


def dice(a: str, b: str) -> float:
    """Word-overlap ratio ``2|A∩B| / (|A|+|B|)``; 0.0 when both are empty."""
    left, right = tokens(a), tokens(b)
    total = len(left) + len(right)
    if total == 0:
        return 0.0
    return 2 * len(left & right) / total
