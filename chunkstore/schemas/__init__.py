"""Pydantic schemas for API requests and responses."""
from chunkstore.schemas.file import FileEntry, FileUploadResponse
from chunkstore.schemas.upload import (
    ChunkAck,
    UploadAbandonResponse,
    UploadComplete,
    UploadCompleteResponse,
    UploadPrepare,
    UploadResponse,
    UploadStatusResponse,
)

__all__ = [
    # File schemas
    "FileEntry",
    "FileUploadResponse",
    # Upload schemas
    "UploadPrepare",
    "UploadResponse",
    "ChunkAck",
    "UploadComplete",
    "UploadCompleteResponse",
    "UploadStatusResponse",
    "UploadAbandonResponse"
]
