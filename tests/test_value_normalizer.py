from datetime import date, datetime
from decimal import Decimal

import pytest

from fainatic.core.exceptions import AmountParseError, DateParseError
from fainatic.services.value_normalizer import (
    detect_currency,
    normalize_currency,
    normalize_date,
    parse_amount,
    parse_date,
)


@pytest.mark.parametrize("value", ["31/12/2023", "2023-12-31", "12/31/2023", "31 Dec 2023", "Dec 31, 2023"])
def test_dates_normalize_to_iso(value):
    assert normalize_date(value) == "2023-12-31"


def test_ambiguous_dates_follow_day_first_setting():
    assert parse_date("01/02/2024") == date(2024, 1, 2)
    assert parse_date("01/02/2024", day_first=True) == date(2024, 2, 1)


def test_native_and_iso_datetime_values_keep_their_day():
    assert parse_date(datetime(2024, 3, 15, 23, 59)) == date(2024, 3, 15)
    assert parse_date(date(2024, 3, 15)) == date(2024, 3, 15)
    assert parse_date("2024-03-15T23:59:00Z") == date(2024, 3, 15)


@pytest.mark.parametrize("value", [None, "", "   ", "not a date", "2024-13-45"])
def test_bad_dates_raise(value):
    with pytest.raises(DateParseError) as exc_info:
        parse_date(value)
    assert exc_info.value.error_code == "DATE_PARSE_FAILURE"


@pytest.mark.parametrize("value, expected", [
    ("$1,234.56", Decimal("1234.56")),
    ("(1,234.56)", Decimal("-1234.56")),
    ("-€42.00", Decimal("-42.00")),
    ("-(5.00)", Decimal("-5.00")),
    ("42.00-", Decimal("-42.00")),
    ("3000", Decimal("3000")),
    (" 12.5 ", Decimal("12.5")),
    (1500, Decimal("1500")),
    (-12.25, Decimal("-12.25")),
    ("999,999,999,999,999.99", Decimal("999999999999999.99")),
])
def test_amounts(value, expected):
    assert parse_amount(value) == expected


@pytest.mark.parametrize("value", [
    None, "", "abc", "-", "1.2.3", float("nan"), float("inf"), True,
    "-100000000000000000000000000000", "1000000000000000.00", 10 ** 20, Decimal("NaN"),
])
def test_bad_amounts_raise(value):
    with pytest.raises(AmountParseError) as exc_info:
        parse_amount(value)
    assert exc_info.value.error_code == "AMOUNT_PARSE_FAILURE"


@pytest.mark.parametrize("value, expected", [
    ("$1,234.56", "USD"),
    ("-€42.00", "EUR"),
    ("(£10.00)", "GBP"),
    ("A$99.00", "AUD"),
    ("C$5.00", "CAD"),
    ("₹250", "INR"),
    ("1.234,00 €", "EUR"),
    ("GBP 12.00", "GBP"),
    ("12.00", None),
    (12.0, None),
    (None, None),
])
def test_detect_currency(value, expected):
    assert detect_currency(value) == expected


def test_normalize_currency():
    assert normalize_currency("eur") == "EUR"
    assert normalize_currency(" € ") == "EUR"
    assert normalize_currency("Euro") is None
    assert normalize_currency("") is None
    assert normalize_currency(None) is None
