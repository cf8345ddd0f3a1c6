from pydantic import BaseModel, Field
from typing import List
from datetime import datetime
import uuid

from fainatic.schemas.transaction import Transaction


class UploadMetadata(BaseModel):
    """JSON sidecar stored next to an uploaded statement"""
    original_name: str = Field(alias="originalName")
    mime_type: str = Field(alias="mimeType")
    size: int
    uploaded_at: datetime = Field(alias="uploadedAt")

    class Config:
        populate_by_name = True


class UploadResponse(BaseModel):
    file_id: uuid.UUID


class ProcessResponse(BaseModel):
    transactions: List[Transaction]
