"""
CSV and Excel statement parsing.

Both formats are reduced to a list of positional rows and go through the
same header detection, row extraction and currency sampling.
"""

import io
import logging
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

import pandas as pd

from fainatic.core.config import Settings
from fainatic.core.exceptions import (
    AmountParseError,
    DateParseError,
    InvalidFileContentError,
    MissingRequiredColumnError,
    NoValidRecordsError,
    RecordError,
)
from fainatic.schemas.transaction import Transaction
from fainatic.services.categorization_service import categorize
from fainatic.services.column_mapper import ColumnMapping, find_header_row, map_columns
from fainatic.services.value_normalizer import (
    check_amount_bounds,
    detect_currency,
    normalize_currency,
    parse_amount,
    parse_date,
)

logger = logging.getLogger(__name__)

CSV_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
CSV_DELIMITERS = (",", ";", "\t")

Row = List[Any]
Block = Tuple[ColumnMapping, List[Tuple[int, Row]]]


def _clean_cell(value: Any) -> Any:
    """Empty strings, NaN and NaT all become None"""
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    try:
        if pd.isna(value):
            return None
    except (TypeError, ValueError):
        pass
    return value


def decode_csv(content: bytes) -> str:
    for encoding in CSV_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise InvalidFileContentError("Could not decode CSV file")


def detect_delimiter(text: str) -> str:
    """First of comma / semicolon / tab present on the first non-empty line, comma by default"""
    first_line = next((line for line in text.splitlines() if line.strip()), "")
    for delimiter in CSV_DELIMITERS:
        if delimiter in first_line:
            return delimiter
    return ","


class TabularParser:
    """Turns CSV / Excel statements into transactions"""

    def __init__(self, settings: Settings):
        self.settings = settings

    # ----- format entry points -----

    def parse_csv(self, content: bytes) -> List[Transaction]:
        text = decode_csv(content)
        if not text.strip():
            raise InvalidFileContentError("CSV file is empty")

        delimiter = detect_delimiter(text)
        # Preamble lines can be narrower than the table, so size the frame by the widest line
        width = max(line.count(delimiter) for line in text.splitlines()) + 1

        try:
            df = pd.read_csv(
                io.StringIO(text),
                sep=delimiter,
                header=None,
                names=list(range(width)),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                engine="python",
            )
        except (pd.errors.ParserError, pd.errors.EmptyDataError) as e:
            raise InvalidFileContentError("Could not read CSV file", details=str(e))

        logger.debug(f"CSV read with delimiter {delimiter!r}: {len(df)} rows x {width} columns")
        return self.parse_rows(df.values.tolist(), source="CSV")

    def parse_excel(self, content: bytes) -> List[Transaction]:
        try:
            sheets = pd.read_excel(io.BytesIO(content), sheet_name=None, header=None)
        except Exception as e:
            raise InvalidFileContentError("Could not read Excel workbook", details=str(e))

        if not sheets:
            raise InvalidFileContentError("Excel workbook has no worksheets")

        first_error = None
        for sheet_name, df in sheets.items():
            rows = [[_clean_cell(cell) for cell in row] for row in df.values.tolist()]
            try:
                header = find_header_row(rows, self.settings.HEADER_SCAN_ROWS)
            except MissingRequiredColumnError as e:
                logger.info(f"Sheet {sheet_name!r} has no usable header row ({e.details})")
                first_error = first_error or e
                continue
            return self.parse_rows(rows, source=f"Excel sheet {sheet_name!r}", header=header)

        raise first_error

    # ----- shared row pipeline -----

    def parse_rows(
        self,
        rows: List[Row],
        source: str,
        header: Optional[Tuple[int, ColumnMapping]] = None,
    ) -> List[Transaction]:
        rows = [[_clean_cell(cell) for cell in row] for row in rows]
        header_index, mapping = header or find_header_row(rows, self.settings.HEADER_SCAN_ROWS)
        logger.debug(f"{source}: header at row {header_index + 1}, mapping {mapping}")

        transactions: List[Transaction] = []
        dropped = 0
        for block_mapping, block_rows in self._split_blocks(rows, header_index, mapping):
            default_currency = self._sample_currency(block_mapping, [row for _, row in block_rows])
            for row_number, row in block_rows:
                try:
                    transactions.append(self._row_to_transaction(row, block_mapping, default_currency))
                except RecordError as e:
                    dropped += 1
                    logger.warning(f"{source}: dropped row {row_number} [{e.error_code}] {e.message}")

        if not transactions:
            raise NoValidRecordsError(
                f"No valid transactions found in {source}",
                details=f"{dropped} rows were dropped during validation",
            )

        logger.info(f"{source}: parsed {len(transactions)} transactions, dropped {dropped} rows")
        return transactions

    def _split_blocks(self, rows: List[Row], header_index: int, mapping: ColumnMapping) -> List[Block]:
        """Group data rows under the header they follow; a repeated header starts a new block"""
        blocks: List[Block] = [(mapping, [])]
        for index in range(header_index + 1, len(rows)):
            row = rows[index]
            if all(cell is None for cell in row):
                continue
            row_mapping = map_columns(row)
            if row_mapping.is_valid:
                logger.debug(f"Repeated header at row {index + 1}, re-mapping columns")
                blocks.append((row_mapping, []))
                continue
            blocks[-1][1].append((index + 1, row))
        return [block for block in blocks if block[1]]

    def _sample_currency(self, mapping: ColumnMapping, rows: List[Row]) -> Optional[str]:
        """File-wide currency from amount symbols, only when the sample agrees on exactly one"""
        if mapping.currency is not None:
            return None

        found = set()
        for row in rows[: self.settings.CURRENCY_SAMPLE_SIZE]:
            if mapping.amount is not None:
                raw = ColumnMapping.cell(row, mapping.amount)
            else:
                raw = ColumnMapping.cell(row, mapping.credit) or ColumnMapping.cell(row, mapping.debit)
            currency = detect_currency(raw)
            if currency:
                found.add(currency)

        return found.pop() if len(found) == 1 else None

    def _row_to_transaction(
        self,
        row: Row,
        mapping: ColumnMapping,
        default_currency: Optional[str],
    ) -> Transaction:
        date_value = ColumnMapping.cell(row, mapping.date)
        if date_value is None:
            raise DateParseError("Missing date value")
        transaction_date = parse_date(date_value, day_first=self.settings.DAY_FIRST_DATES)

        amount = self._row_amount(row, mapping)

        description = ColumnMapping.cell(row, mapping.description)
        description = str(description).strip() if description is not None else ""

        currency = None
        if mapping.currency is not None:
            currency = normalize_currency(ColumnMapping.cell(row, mapping.currency))
        currency = currency or default_currency

        return Transaction(
            date=transaction_date,
            amount=amount,
            currency=currency,
            counterparty=description,
            category=categorize(description, amount),
        )

    @staticmethod
    def _row_amount(row: Sequence[Any], mapping: ColumnMapping) -> Decimal:
        if mapping.amount is not None and mapping.amount != mapping.date:
            return parse_amount(ColumnMapping.cell(row, mapping.amount))

        debit_value = ColumnMapping.cell(row, mapping.debit)
        credit_value = ColumnMapping.cell(row, mapping.credit)
        if debit_value is None and credit_value is None:
            raise AmountParseError("Row has neither a debit nor a credit value")

        # Only one side is expected per row; the empty side counts as zero
        debit = parse_amount(debit_value) if debit_value is not None else Decimal("0")
        credit = parse_amount(credit_value) if credit_value is not None else Decimal("0")
        return check_amount_bounds(credit - debit)
