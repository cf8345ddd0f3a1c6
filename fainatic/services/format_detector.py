"""
Picks a parsing strategy for an uploaded statement.

The declared MIME type wins when it is on the allow-list; otherwise the
filename extension decides.
"""

from enum import Enum
from pathlib import Path
from typing import Optional
import logging

from fainatic.core.exceptions import InvalidFileContentError, UnsupportedFileTypeError

logger = logging.getLogger(__name__)

PDF_SIGNATURE = b"%PDF-"


class FileFormat(str, Enum):
    CSV = "csv"
    EXCEL = "excel"
    PDF = "pdf"
    IMAGE = "image"
    UNSUPPORTED = "unsupported"


MIME_TYPES = {
    "text/csv": FileFormat.CSV,
    "text/plain": FileFormat.CSV,
    "application/vnd.ms-excel": FileFormat.EXCEL,
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": FileFormat.EXCEL,
    "application/pdf": FileFormat.PDF,
    "image/jpeg": FileFormat.IMAGE,
    "image/png": FileFormat.IMAGE,
}

EXTENSIONS = {
    ".csv": FileFormat.CSV,
    ".xlsx": FileFormat.EXCEL,
    ".xls": FileFormat.EXCEL,
    ".pdf": FileFormat.PDF,
    ".jpg": FileFormat.IMAGE,
    ".jpeg": FileFormat.IMAGE,
    ".png": FileFormat.IMAGE,
}


def detect_format(mime_type: Optional[str], filename: Optional[str] = None) -> FileFormat:
    """Map upload metadata to a FileFormat, UNSUPPORTED when nothing matches"""
    if mime_type:
        # "text/csv; charset=utf-8" -> "text/csv"
        base_type = mime_type.split(";", 1)[0].strip().lower()
        if base_type in MIME_TYPES:
            return MIME_TYPES[base_type]

    if filename:
        extension = Path(filename).suffix.lower()
        if extension in EXTENSIONS:
            return EXTENSIONS[extension]

    return FileFormat.UNSUPPORTED


def ensure_supported(mime_type: Optional[str], filename: Optional[str] = None) -> FileFormat:
    """Like detect_format, but raises UnsupportedFileTypeError instead of returning UNSUPPORTED"""
    file_format = detect_format(mime_type, filename)
    if file_format is FileFormat.UNSUPPORTED:
        logger.warning(f"Rejected upload {filename!r} with type {mime_type!r}")
        raise UnsupportedFileTypeError(
            f"Unsupported file type: {mime_type or 'unknown'}",
            details="Supported formats: CSV, Excel (.xlsx/.xls), PDF, JPEG and PNG",
        )
    return file_format


def check_content(content: bytes, file_format: FileFormat) -> None:
    """Fail fast on empty buffers and PDFs without the %PDF- signature"""
    if not content:
        raise InvalidFileContentError("Uploaded file is empty")

    if file_format is FileFormat.PDF and content[:5] != PDF_SIGNATURE:
        logger.debug(f"PDF signature mismatch, first bytes: {content[:8].hex()}")
        raise InvalidFileContentError(
            "Invalid PDF format: missing PDF signature",
            details="The file is labelled as PDF but does not start with %PDF-",
        )
