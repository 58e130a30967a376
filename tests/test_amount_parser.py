"""Tests for amount parsing and formatting helpers."""

import pytest
from decimal import Decimal
from invoicetrack.utils.amount_parser import format_amount, parse_amount


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("$123.45", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("€ 99", Decimal("99")),
        ("  0.10 ", Decimal("0.10")),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == expected


@pytest.mark.parametrize("text", ["", "   ", "abc", "-5", "NaN", "Infinity"])
def test_parse_amount_rejects(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_format_amount_symbols():
    assert format_amount(Decimal("1250"), "USD") == "$1,250.00"
    assert format_amount(Decimal("99.995"), "eur") == "€100.00"
    assert format_amount(Decimal("10"), "PLN") == "10.00 zł"


def test_format_amount_unknown_currency():
    assert format_amount(Decimal("1234.5"), "CHF") == "CHF 1,234.50"
