"""
Shared date / amount / currency normalization used by every parser.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, List, Optional

from fainatic.core.exceptions import AmountParseError, DateParseError
from fainatic.schemas.transaction import MAX_AMOUNT

# Longest symbols first so "A$" wins over "$"
CURRENCY_SYMBOLS = {
    "A$": "AUD",
    "C$": "CAD",
    "$": "USD",
    "€": "EUR",
    "£": "GBP",
    "¥": "JPY",
    "₹": "INR",
    "₽": "RUB",
    "₣": "CHF",
}
CURRENCY_CODES = set(CURRENCY_SYMBOLS.values())

ISO_DATE_FORMATS = ["%Y-%m-%d", "%Y/%m/%d", "%Y.%m.%d"]
MONTH_FIRST_FORMATS = ["%m/%d/%Y", "%m-%d-%Y", "%m/%d/%y", "%m-%d-%y"]
DAY_FIRST_FORMATS = ["%d/%m/%Y", "%d-%m-%Y", "%d.%m.%Y", "%d/%m/%y", "%d-%m-%y", "%d.%m.%y"]
NAMED_MONTH_FORMATS = [
    "%d %b %Y", "%d %B %Y", "%d-%b-%Y", "%d-%b-%y",
    "%b %d, %Y", "%B %d, %Y", "%b %d %Y", "%B %d %Y",
]

_ISO_DATETIME = re.compile(r"^(\d{4}-\d{1,2}-\d{1,2})[T ]\d{1,2}:\d{2}")
_PARENTHESIZED = re.compile(r"^\s*-?\s*\(.*\)\s*$")
_NON_NUMERIC = re.compile(r"[^0-9.\-]")
_LEADING_MARKERS = re.compile(r"^[\s(+\-]+")
_SYMBOL_PREFIX = re.compile(r"^[^\d\s.,\-()]+")
_SYMBOL_SUFFIX = re.compile(r"([^\d\s.,\-()]+)\s*\)?\s*$")


def date_formats(day_first: bool = False) -> List[str]:
    """Accepted input formats, in the order they are tried"""
    if day_first:
        ambiguous = DAY_FIRST_FORMATS + MONTH_FIRST_FORMATS
    else:
        ambiguous = MONTH_FIRST_FORMATS + DAY_FIRST_FORMATS
    return ISO_DATE_FORMATS + ambiguous + NAMED_MONTH_FORMATS


def parse_date(value: Any, day_first: bool = False) -> date:
    """
    Turn a cell or regex match into a calendar date.

    Native date/datetime values (Excel cells) are taken as-is, without any
    timezone conversion. Ambiguous slash dates are read month-first unless
    ``day_first`` is set; the other reading is the fallback, so "31/12/2023"
    still parses.

    Raises:
        DateParseError: value is empty or matches none of the formats
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if value is None:
        raise DateParseError("Missing date value")

    text = re.sub(r"\s+", " ", str(value).strip())
    if not text:
        raise DateParseError("Missing date value")

    iso_match = _ISO_DATETIME.match(text)
    if iso_match:
        text = iso_match.group(1)

    for fmt in date_formats(day_first):
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    raise DateParseError(f"Unrecognised date: {text!r}")


def normalize_date(value: Any, day_first: bool = False) -> str:
    """Canonical YYYY-MM-DD form of a date value"""
    return parse_date(value, day_first=day_first).isoformat()


def check_amount_bounds(amount: Decimal) -> Decimal:
    """
    Raises:
        AmountParseError: amount is not finite or reaches MAX_AMOUNT
    """
    if not amount.is_finite():
        raise AmountParseError(f"Amount is not a finite number: {amount!r}")
    if abs(amount) >= MAX_AMOUNT:
        raise AmountParseError(f"Amount is out of range: {amount:f}")
    return amount


def parse_amount(value: Any) -> Decimal:
    """
    Turn a cell or regex match into a signed Decimal.

    Everything except digits, "." and "-" is stripped. An amount wrapped in
    parentheses is negative whatever its sign; a single trailing minus
    ("42.00-") is negative too.

    Raises:
        AmountParseError: value is empty, not a finite number or out of range
    """
    if value is None or isinstance(value, bool):
        raise AmountParseError("Missing amount value")

    if isinstance(value, (int, float, Decimal)):
        if isinstance(value, float) and not math.isfinite(value):
            raise AmountParseError(f"Amount is not a finite number: {value!r}")
        return check_amount_bounds(Decimal(str(value)))

    text = str(value).strip()
    if not text:
        raise AmountParseError("Missing amount value")

    parenthesized = bool(_PARENTHESIZED.match(text))
    cleaned = _NON_NUMERIC.sub("", text)

    if cleaned.endswith("-") and cleaned.count("-") == 1:
        cleaned = "-" + cleaned[:-1]
    if parenthesized:
        cleaned = cleaned.replace("-", "")

    if cleaned in ("", "-", ".", "-."):
        raise AmountParseError(f"No digits in amount: {text!r}")

    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise AmountParseError(f"Unparseable amount: {text!r}")

    return check_amount_bounds(-abs(amount) if parenthesized else amount)


def _lookup_currency(token: str) -> Optional[str]:
    token = token.strip()
    if token in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[token]
    if token.upper() in CURRENCY_CODES:
        return token.upper()
    return None


def detect_currency(amount_value: Any) -> Optional[str]:
    """Currency code implied by a symbol or code around an amount, e.g. "-€42.00" -> EUR"""
    if amount_value is None or isinstance(amount_value, (int, float, Decimal)):
        return None

    text = str(amount_value).strip()
    rest = _LEADING_MARKERS.sub("", text)

    prefix = _SYMBOL_PREFIX.match(rest)
    if prefix:
        return _lookup_currency(prefix.group(0))

    suffix = _SYMBOL_SUFFIX.search(text)
    if suffix:
        return _lookup_currency(suffix.group(1))

    return None


def normalize_currency(value: Any) -> Optional[str]:
    """Clean a currency-column cell: symbols become codes, codes are upper-cased"""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if text in CURRENCY_SYMBOLS:
        return CURRENCY_SYMBOLS[text]
    if len(text) == 3 and text.isalpha():
        return text.upper()
    return None
