"""
Header detection for tabular statements (CSV / Excel).

Every header cell is scored against a pattern list per field: 1.0 for an
exact (case/whitespace-insensitive) match, 0.8 when a pattern is contained
in the header, 0 otherwise. The best-scoring cell wins; ties go to the
leftmost column. The result is a fixed-shape ColumnMapping so row
extraction never has to guess header names.
"""

import re
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from fainatic.core.exceptions import MissingRequiredColumnError

EXACT_MATCH_SCORE = 1.0
PARTIAL_MATCH_SCORE = 0.8

COLUMN_PATTERNS: Dict[str, Tuple[str, ...]] = {
    "date": (
        "date", "transaction date", "posted date", "trans date",
        "posting date", "payment date", "value date", "booking date",
    ),
    "description": (
        "description", "details", "transaction", "narrative", "particulars",
        "memo", "note", "reference", "payee", "merchant",
    ),
    "amount": ("amount", "value", "sum", "total", "payment", "transaction amount"),
    "debit": ("debit", "withdrawal", "expense", "paid out"),
    "credit": ("credit", "deposit", "income", "paid in"),
    "currency": ("currency", "iso code", "curr", "ccy"),
}

# Columns holding these fields are not offered to description / currency
_PRIMARY_FIELDS = ("date", "amount", "debit", "credit")


@dataclass(frozen=True)
class ColumnMapping:
    date: Optional[int] = None
    description: Optional[int] = None
    amount: Optional[int] = None
    debit: Optional[int] = None
    credit: Optional[int] = None
    currency: Optional[int] = None

    @property
    def has_split_amount(self) -> bool:
        return self.debit is not None and self.credit is not None

    def missing_column(self) -> Optional[str]:
        """Error detail for the first required column that is missing, None when usable"""
        if self.date is None:
            return MissingRequiredColumnError.DATE_COLUMN_NOT_FOUND
        if self.amount is not None and self.amount != self.date:
            return None
        if self.has_split_amount and self.date not in (self.debit, self.credit):
            return None
        return MissingRequiredColumnError.AMOUNT_COLUMN_NOT_FOUND

    @property
    def is_valid(self) -> bool:
        return self.missing_column() is None

    @staticmethod
    def cell(row: Sequence[Any], index: Optional[int]) -> Any:
        if index is None or index >= len(row):
            return None
        return row[index]


def normalize_header(value: Any) -> str:
    if value is None:
        return ""
    text = str(value).replace("_", " ")
    return re.sub(r"\s+", " ", text).strip().lower()


def score_header(header: Any, patterns: Iterable[str]) -> float:
    normalized = normalize_header(header)
    if not normalized:
        return 0.0
    best = 0.0
    for pattern in patterns:
        if normalized == pattern:
            return EXACT_MATCH_SCORE
        if pattern in normalized:
            best = PARTIAL_MATCH_SCORE
    return best


def find_best_column(
    headers: Sequence[Any],
    patterns: Iterable[str],
    exclude: Iterable[int] = (),
) -> Optional[int]:
    patterns = tuple(patterns)
    excluded = set(exclude)
    best_index, best_score = None, 0.0
    for index, header in enumerate(headers):
        if index in excluded:
            continue
        score = score_header(header, patterns)
        # strict ">" keeps the leftmost column on ties
        if score > best_score:
            best_index, best_score = index, score
    return best_index


def map_columns(headers: Sequence[Any]) -> ColumnMapping:
    found: Dict[str, Optional[int]] = {}
    for field in _PRIMARY_FIELDS:
        found[field] = find_best_column(headers, COLUMN_PATTERNS[field])

    claimed = [index for index in found.values() if index is not None]
    found["currency"] = find_best_column(headers, COLUMN_PATTERNS["currency"], exclude=claimed)
    if found["currency"] is not None:
        claimed.append(found["currency"])
    found["description"] = find_best_column(headers, COLUMN_PATTERNS["description"], exclude=claimed)

    return ColumnMapping(**found)


def is_header_row(row: Sequence[Any]) -> bool:
    return map_columns(row).is_valid


def _is_blank_row(row: Sequence[Any]) -> bool:
    return all(normalize_header(cell) == "" for cell in row)


def find_header_row(rows: List[Sequence[Any]], scan_limit: int) -> Tuple[int, ColumnMapping]:
    """
    Locate the first usable header row within the first ``scan_limit`` rows.

    Raises:
        MissingRequiredColumnError: no scanned row qualifies; the detail says
            which column was missing from the first non-empty row
    """
    first_mapping = None
    for index, row in enumerate(rows[:scan_limit]):
        if _is_blank_row(row):
            continue
        mapping = map_columns(row)
        if mapping.is_valid:
            return index, mapping
        if first_mapping is None:
            first_mapping = mapping

    missing = (
        first_mapping.missing_column()
        if first_mapping is not None
        else MissingRequiredColumnError.DATE_COLUMN_NOT_FOUND
    )
    if missing == MissingRequiredColumnError.DATE_COLUMN_NOT_FOUND:
        message = "Could not find a date column"
    else:
        message = "Could not find an amount column or a debit/credit column pair"
    raise MissingRequiredColumnError(message, details=missing)
