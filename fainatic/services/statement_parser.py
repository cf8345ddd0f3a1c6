"""
Statement parsing entry point: dispatches raw bytes to the parser for their
format and returns one normalized, chronologically sorted transaction list.
"""

import asyncio
import logging
from typing import List, Optional

from fainatic.core.config import Settings
from fainatic.core.exceptions import ParseTimeoutError, UnsupportedFileTypeError
from fainatic.schemas.transaction import Transaction
from fainatic.services.format_detector import FileFormat, check_content, ensure_supported
from fainatic.services.ocr_service import OCRService
from fainatic.services.tabular_parser import TabularParser
from fainatic.services.text_extractor import LineExtractor, extract_pdf_text, render_pdf_pages

logger = logging.getLogger(__name__)


class StatementParser:
    def __init__(self, settings: Settings, ocr_service: Optional[OCRService] = None):
        self.settings = settings
        self.tabular = TabularParser(settings)
        self.lines = LineExtractor(settings)
        self.ocr = ocr_service or OCRService(settings)

    async def parse_upload(
        self,
        content: bytes,
        mime_type: Optional[str],
        filename: Optional[str] = None,
    ) -> List[Transaction]:
        """Detect the format from upload metadata, then parse"""
        file_format = ensure_supported(mime_type, filename)
        return await self.parse(content, file_format)

    async def parse(self, content: bytes, file_format: FileFormat) -> List[Transaction]:
        """
        Parse a statement of a known format.

        Raises:
            UnsupportedFileTypeError: file_format is UNSUPPORTED
            InvalidFileContentError: empty or unreadable content
            FileTooLargeError: an image has more pixels than OCR accepts
            MissingRequiredColumnError: no usable header row (CSV / Excel)
            NoValidRecordsError: every record was dropped
            ParseTimeoutError: parsing took longer than PARSE_TIMEOUT_SECONDS
        """
        if file_format is FileFormat.UNSUPPORTED:
            raise UnsupportedFileTypeError("Unsupported file type")
        check_content(content, file_format)

        logger.info(f"Parsing {file_format.value} statement ({len(content)} bytes)")
        try:
            transactions = await asyncio.wait_for(
                self._dispatch(content, file_format),
                timeout=self.settings.PARSE_TIMEOUT_SECONDS,
            )
        except asyncio.TimeoutError:
            logger.error(f"Parsing {file_format.value} statement exceeded {self.settings.PARSE_TIMEOUT_SECONDS}s")
            raise ParseTimeoutError(
                "Statement parsing timed out",
                details=f"Limit is {self.settings.PARSE_TIMEOUT_SECONDS} seconds",
            )

        default_currency = self.settings.DEFAULT_CURRENCY
        transactions = [
            t if t.currency else t.model_copy(update={"currency": default_currency})
            for t in transactions
        ]
        return sorted(transactions, key=lambda t: t.date)

    async def _dispatch(self, content: bytes, file_format: FileFormat) -> List[Transaction]:
        if file_format is FileFormat.CSV:
            return await asyncio.to_thread(self.tabular.parse_csv, content)
        if file_format is FileFormat.EXCEL:
            return await asyncio.to_thread(self.tabular.parse_excel, content)
        if file_format is FileFormat.PDF:
            return await self._parse_pdf(content)
        text = await self.ocr.extract_text(content)
        return self.lines.extract(text, source="image")

    async def _parse_pdf(self, content: bytes) -> List[Transaction]:
        text = await asyncio.to_thread(extract_pdf_text, content)
        if not text.strip():
            logger.info("PDF has no text layer, falling back to OCR")
            pages = await asyncio.to_thread(render_pdf_pages, content, self.settings.PDF_OCR_RESOLUTION)
            text = await self.ocr.extract_pages(pages)
        return self.lines.extract(text, source="PDF")
