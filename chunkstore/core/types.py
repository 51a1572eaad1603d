"""Value types shared between the object store layer and the upload services."""
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal, Optional

ReassemblyStrategy = Literal["concatenate", "multipart"]


@dataclass(frozen=True)
class ObjectInfo:
    """Listing/stat entry for a stored object."""
    key: str
    size: int
    uploaded_at: datetime
    content_type: Optional[str] = None


@dataclass(frozen=True)
class MultipartHandle:
    """Opaque reference to an in-progress store-native multipart upload."""
    key: str
    upload_id: str
    content_type: str


@dataclass(frozen=True, order=True)
class PartToken:
    """Receipt for one uploaded part; ordered by part number."""
    part_number: int
    etag: str = field(compare=False)
