"""
Temporary storage for the upload-then-process flow.

Each upload is two files in UPLOAD_DIR: ``<id><ext>`` with the raw bytes and
``<id>.json`` with its metadata. Both are removed when the upload is opened
for processing, whatever the outcome.
"""

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, Optional, Tuple

from fainatic.core.exceptions import UploadNotFoundError
from fainatic.schemas.statement import UploadMetadata

logger = logging.getLogger(__name__)


class UploadStore:
    def __init__(self, upload_dir: str):
        self.root = Path(upload_dir)

    def _metadata_path(self, file_id: uuid.UUID) -> Path:
        return self.root / f"{file_id}.json"

    def _data_path(self, file_id: uuid.UUID, original_name: str) -> Path:
        return self.root / f"{file_id}{Path(original_name).suffix.lower()}"

    @staticmethod
    def _parse_id(file_id) -> uuid.UUID:
        """Only canonical UUIDs name a stored upload, which also rules out path tricks"""
        try:
            return uuid.UUID(str(file_id))
        except ValueError:
            raise UploadNotFoundError("File not found", details=f"Invalid file id: {file_id!r}")

    def save(self, content: bytes, original_name: str, mime_type: str) -> uuid.UUID:
        self.root.mkdir(parents=True, exist_ok=True)
        file_id = uuid.uuid4()
        metadata = UploadMetadata(
            original_name=original_name,
            mime_type=mime_type,
            size=len(content),
            uploaded_at=datetime.now(timezone.utc),
        )

        data_path = self._data_path(file_id, original_name)
        data_path.write_bytes(content)
        self._metadata_path(file_id).write_text(
            metadata.model_dump_json(by_alias=True), encoding="utf-8"
        )
        logger.info(f"Stored upload {file_id} ({len(content)} bytes)")
        return file_id

    @contextmanager
    def open(self, file_id) -> Iterator[Tuple[UploadMetadata, bytes]]:
        """
        Yield (metadata, content) for a stored upload, deleting both files on exit.

        Raises:
            UploadNotFoundError: unknown id, or the upload was already processed
        """
        upload_id = self._parse_id(file_id)
        metadata_path = self._metadata_path(upload_id)
        data_path: Optional[Path] = None
        try:
            try:
                metadata = UploadMetadata.model_validate_json(metadata_path.read_text(encoding="utf-8"))
                data_path = self._data_path(upload_id, metadata.original_name)
                content = data_path.read_bytes()
            except FileNotFoundError:
                raise UploadNotFoundError("File not found", details=f"No stored upload with id {upload_id}")
            yield metadata, content
        finally:
            for path in (data_path, metadata_path):
                if path is not None:
                    path.unlink(missing_ok=True)
            logger.debug(f"Removed stored upload {upload_id}")
