"""Data models persisted in the object store."""
from chunkstore.models.upload_session import UploadSession, UploadStatus

__all__ = [
    "UploadSession",
    "UploadStatus"
]
