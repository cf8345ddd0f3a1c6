"""
Line-oriented transaction extraction for PDF and OCR text.

Statements without a table structure are read one line at a time: a line is
a transaction when it carries both a date and an amount. The whole trimmed
line becomes the counterparty.
"""

import io
import logging
import re
from decimal import Decimal
from typing import List, Optional

import pdfplumber

from fainatic.core.config import Settings
from fainatic.core.exceptions import InvalidFileContentError, NoValidRecordsError, RecordError
from fainatic.schemas.transaction import Transaction
from fainatic.services.categorization_service import categorize
from fainatic.services.value_normalizer import CURRENCY_SYMBOLS, parse_amount, parse_date

logger = logging.getLogger(__name__)

DATE_PATTERN = re.compile(r"\b\d{1,2}[-/]\d{1,2}[-/]\d{2,4}\b")
AMOUNT_PATTERN = re.compile(
    r"(?P<open>\()?\s*(?P<minus>-)?\s*(?P<symbol>A\$|C\$|[$€£¥₹₽₣])?\s*(?P<inner_minus>-)?"
    r"(?<![\d.,])(?P<number>(?:\d{1,3}(?:,\d{3})+|\d+)\.\d{2})(?![\d])"
    r"(?P<trailing_minus>-)?\s*(?P<close>\))?"
)
CURRENCY_CODE_PATTERN = re.compile(r"\b(USD|EUR|GBP|JPY|RUB)\b", re.IGNORECASE)
DEBIT_MARKER = re.compile(r"\bDR\b")
CREDIT_MARKER = re.compile(r"\bCR\b")


def extract_pdf_text(content: bytes) -> str:
    """Text layer of every page, joined by newlines. Empty for scanned PDFs."""
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            pages = []
            for number, page in enumerate(pdf.pages, 1):
                page_text = page.extract_text() or ""
                logger.debug(f"PDF page {number}: {len(page_text)} chars")
                pages.append(page_text)
    except Exception as e:
        raise InvalidFileContentError("Could not read PDF file", details=str(e))

    return "\n".join(pages)


def render_pdf_pages(content: bytes, resolution: int) -> list:
    """Rasterize every page to a PIL image for OCR"""
    try:
        with pdfplumber.open(io.BytesIO(content)) as pdf:
            return [page.to_image(resolution=resolution).original for page in pdf.pages]
    except Exception as e:
        raise InvalidFileContentError("Could not render PDF pages", details=str(e))


class LineExtractor:
    def __init__(self, settings: Settings):
        self.settings = settings
        self.positive_keywords = [keyword.lower() for keyword in settings.POSITIVE_AMOUNT_KEYWORDS]

    def extract(self, text: str, source: str = "text") -> List[Transaction]:
        """
        Build transactions from every line that has a date and an amount.

        Raises:
            NoValidRecordsError: no line produced a transaction
        """
        transactions = []
        skipped = 0
        for line in (raw.strip() for raw in (text or "").splitlines()):
            if not line:
                continue
            try:
                transaction = self.parse_line(line)
            except RecordError as e:
                skipped += 1
                logger.warning(f"{source}: skipped line {line!r} [{e.error_code}] {e.message}")
                continue
            if transaction is not None:
                transactions.append(transaction)

        if not transactions:
            raise NoValidRecordsError(
                f"No transactions could be extracted from the {source}",
                details=f"{skipped} candidate lines were skipped",
            )

        logger.info(f"{source}: extracted {len(transactions)} transactions, skipped {skipped} lines")
        return transactions

    def parse_line(self, line: str) -> Optional[Transaction]:
        """None when the line is not a transaction line"""
        date_match = DATE_PATTERN.search(line)
        if not date_match:
            return None

        # Blank out the date so its digits are never read as the amount
        start, end = date_match.span()
        remainder = line[:start] + " " * (end - start) + line[end:]
        amount_match = AMOUNT_PATTERN.search(remainder)
        if not amount_match:
            return None

        transaction_date = parse_date(date_match.group(0), day_first=self.settings.DAY_FIRST_DATES)
        amount = self._signed_amount(amount_match, line)

        return Transaction(
            date=transaction_date,
            amount=amount,
            currency=self._line_currency(amount_match, line),
            counterparty=line,
            category=categorize(line, amount),
        )

    def _signed_amount(self, match: re.Match, line: str) -> Decimal:
        """
        Explicit minus, parentheses or a DR marker make the amount an expense.
        Otherwise a positive keyword or a CR marker makes it income, and
        everything else is treated as an expense.
        """
        magnitude = abs(parse_amount(match.group("number")))

        explicit_negative = (
            match.group("minus") or match.group("inner_minus") or match.group("trailing_minus")
            or (match.group("open") and match.group("close"))
        )
        if explicit_negative or DEBIT_MARKER.search(line):
            return -magnitude

        lowered = line.lower()
        if CREDIT_MARKER.search(line) or any(keyword in lowered for keyword in self.positive_keywords):
            return magnitude

        return -magnitude

    @staticmethod
    def _line_currency(match: re.Match, line: str) -> Optional[str]:
        code = CURRENCY_CODE_PATTERN.search(line)
        if code:
            return code.group(1).upper()
        symbol = match.group("symbol")
        return CURRENCY_SYMBOLS.get(symbol) if symbol else None
