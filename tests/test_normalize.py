"""
Tests for value normalization

Validates:
- Accepted date forms and year inference
- Invalid calendar dates are dropped
- Money parsing into minor units; negatives rejected
- Token similarity helpers
"""

from datetime import date

import pytest

from casedossier.engine.normalize import (
    dice,
    document_year,
    jaccard,
    parse_date,
    parse_money,
)
from casedossier.models import Precision


# ============================================================================
# DATES
# ============================================================================

@pytest.mark.parametrize("text", ["3/5/2024", "2024-03-05", "March 5, 2024", "Mar. 5 2024", "march 5th, 2024"])
def test_full_date_forms(text):
    parsed = parse_date(text)

    assert parsed.value == date(2024, 3, 5)
    assert parsed.precision == Precision.DAY
    assert not parsed.year_from_metadata


def test_month_day_takes_document_year():
    assert parse_date("March 5", doc_year=2023).value == date(2023, 3, 5)


def test_month_day_falls_back_to_metadata_year():
    parsed = parse_date("March 5", metadata={"year": "2022"})

    assert parsed.value == date(2022, 3, 5)
    assert parsed.precision == Precision.APPROX
    assert parsed.year_from_metadata


def test_month_day_without_year_is_dropped():
    assert parse_date("March 5") is None


@pytest.mark.parametrize("text", ["February 30, 2024", "2024-13-01", "2/30/2024", "soon", ""])
def test_invalid_dates_dropped(text):
    assert parse_date(text) is None


def test_instant_is_midnight_utc():
    instant = parse_date("2024-03-05").instant

    assert instant.isoformat() == "2024-03-05T00:00:00+00:00"


def test_document_year_is_first_full_date():
    text = "Re: account\nMarch 5, 2024\nPrevious letter dated 2023-11-02\n"
    assert document_year(text) == 2024


def test_document_year_none_without_dates():
    assert document_year("no dates here") is None


# ============================================================================
# MONEY
# ============================================================================

@pytest.mark.parametrize("text,minor", [
    ("$12,500.00", 1250000),
    ("$2,500", 250000),
    ("1234.5", 123450),
    ("$ 75.25", 7525),
])
def test_money_minor_units(text, minor):
    money = parse_money(text)

    assert money.minor_units == minor
    assert money.currency == "USD"


def test_money_currency_code():
    money = parse_money("1,000.00 EUR")

    assert money.minor_units == 100000
    assert money.canonical == "100000 EUR"


@pytest.mark.parametrize("text", ["-$50.00", "($50.00)", "$-50", "fifty dollars", "$1.234"])
def test_money_rejects_invalid(text):
    assert parse_money(text) is None


# ============================================================================
# SIMILARITY
# ============================================================================

def test_jaccard():
    assert jaccard("Jane Q. Doe", "john doe") == pytest.approx(0.25)
    assert jaccard("", "") == 0.0


def test_dice():
    assert dice("Adverse action notice issued", "adverse action notice issued") == 1.0
    assert dice("summons served", "summons issued") == pytest.approx(0.5)
    assert dice("", "") == 0.0
