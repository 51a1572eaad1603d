"""Upload session model."""
from datetime import datetime, timezone
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class UploadStatus(str, Enum):
    """Lifecycle state of an upload session."""
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class UploadSession(BaseModel):
    """Bookkeeping record for one chunked upload, stored as ``{upload_id}.meta``."""
    upload_id: str = Field(..., min_length=32, max_length=32, description="Upload session ID")
    filename: str = Field(..., min_length=1, description="Target object key on completion")
    content_type: str = Field("application/octet-stream", description="MIME type of the final object")
    declared_size: int = Field(0, ge=0, description="Client-reported size in bytes (advisory)")
    status: UploadStatus = Field(UploadStatus.IN_PROGRESS, description="Upload status")
    created_at: datetime = Field(default_factory=_utcnow)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "upload_id": "3f2b8c1e9a7d4e0f8b6c5a4d3e2f1a0b",
                "filename": "report.pdf",
                "content_type": "application/pdf",
                "declared_size": 25000000,
                "status": "in-progress",
                "created_at": "2024-01-01T00:00:00Z"
            }
        }
    )

    def to_bytes(self) -> bytes:
        return self.model_dump_json().encode("utf-8")

    @classmethod
    def from_bytes(cls, data: bytes) -> "UploadSession":
        return cls.model_validate_json(data)
