"""Schemas for completed files."""
from datetime import datetime

from pydantic import BaseModel, Field


class FileEntry(BaseModel):
    """A completed, user-visible file."""
    name: str = Field(..., description="Object key")
    size: int = Field(..., description="Size in bytes")
    uploaded_at: datetime


class FileUploadResponse(BaseModel):
    name: str
    size: int
    content_type: str
