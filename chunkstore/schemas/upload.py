"""Upload-related schemas."""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from chunkstore.core.types import ReassemblyStrategy
from chunkstore.models.upload_session import UploadStatus


class UploadPrepare(BaseModel):
    """Schema for declaring a new chunked upload."""
    filename: str = Field(..., description="Target filename")
    content_type: Optional[str] = Field(None, description="MIME type of the file")
    declared_size: Optional[int] = Field(None, description="Total file size in bytes (advisory)")


class UploadResponse(BaseModel):
    """Schema for a created upload session."""
    upload_id: str = Field(..., description="Upload session ID")
    filename: str
    content_type: str
    declared_size: int
    status: UploadStatus
    created_at: datetime


class ChunkAck(BaseModel):
    """Acknowledgement for one stored chunk."""
    upload_id: str
    part_index: int
    size: int = Field(..., description="Chunk size in bytes")


class UploadComplete(BaseModel):
    """Schema for upload completion."""
    chunk_count: int = Field(..., description="Number of chunks, indices 0..chunk_count-1")
    filename: Optional[str] = Field(None, description="Target filename; defaults to the session filename")


class UploadCompleteResponse(BaseModel):
    """Result of a successful completion."""
    upload_id: str
    filename: str
    size: int
    content_type: str
    strategy: ReassemblyStrategy
    status: UploadStatus
    cleanup_errors: Dict[str, str] = Field(default_factory=dict)


class UploadStatusResponse(BaseModel):
    """Progress of an in-flight upload."""
    upload_id: str
    filename: str
    content_type: str
    declared_size: int
    status: UploadStatus
    created_at: datetime
    received_chunks: List[int]
    received_bytes: int


class UploadAbandonResponse(BaseModel):
    upload_id: str
    status: str = "abandoned"
    deleted: int
    cleanup_errors: Dict[str, str] = Field(default_factory=dict)
