from fastapi import APIRouter, Depends, UploadFile, File, Query
import asyncio
import logging

from fainatic.core.config import Settings, get_settings
from fainatic.core.deps import get_statement_parser, get_upload_store
from fainatic.core.exceptions import FileTooLargeError
from fainatic.schemas.statement import ProcessResponse, UploadResponse
from fainatic.services.format_detector import check_content, ensure_supported
from fainatic.services.statement_parser import StatementParser
from fainatic.services.upload_store import UploadStore

logger = logging.getLogger(__name__)

router = APIRouter()


async def read_upload(file: UploadFile, max_size: int) -> bytes:
    """Read at most max_size + 1 bytes so oversize uploads are rejected without buffering them whole"""
    content = await file.read(max_size + 1)
    if len(content) > max_size:
        raise FileTooLargeError(
            "File size exceeds limit",
            details=f"Maximum upload size is {max_size // (1024 * 1024)}MB",
        )
    return content


@router.post("/process", response_model=ProcessResponse)
async def process_file(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    parser: StatementParser = Depends(get_statement_parser),
):
    """Parse an uploaded statement and return its transactions"""
    logger.info(f"📄 Processing upload {file.filename!r} ({file.content_type})")
    file_format = ensure_supported(file.content_type, file.filename)
    content = await read_upload(file, settings.MAX_UPLOAD_SIZE_BYTES)

    transactions = await parser.parse(content, file_format)
    logger.info(f"✅ Extracted {len(transactions)} transactions from {file.filename!r}")
    return ProcessResponse(transactions=transactions)


@router.post("/upload", response_model=UploadResponse)
async def upload_file(
    file: UploadFile = File(...),
    settings: Settings = Depends(get_settings),
    store: UploadStore = Depends(get_upload_store),
):
    """Store a statement for later processing via GET /process"""
    file_format = ensure_supported(file.content_type, file.filename)
    content = await read_upload(file, settings.MAX_UPLOAD_SIZE_BYTES)
    check_content(content, file_format)

    file_id = await asyncio.to_thread(
        store.save, content, file.filename or f"upload.{file_format.value}", file.content_type or ""
    )
    logger.info(f"📥 Upload {file.filename!r} stored as {file_id}")
    return UploadResponse(file_id=file_id)


@router.get("/process", response_model=ProcessResponse)
async def process_stored_file(
    file_id: str = Query(...),
    parser: StatementParser = Depends(get_statement_parser),
    store: UploadStore = Depends(get_upload_store),
):
    """Parse a previously stored upload. The stored copy is removed whatever the outcome."""
    with store.open(file_id) as (metadata, content):
        logger.info(f"📄 Processing stored upload {file_id} ({metadata.original_name!r})")
        transactions = await parser.parse_upload(content, metadata.mime_type, metadata.original_name)

    logger.info(f"✅ Extracted {len(transactions)} transactions from stored upload {file_id}")
    return ProcessResponse(transactions=transactions)
