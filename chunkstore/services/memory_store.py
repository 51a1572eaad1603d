"""In-memory object store, used for local development and the test suite."""
import asyncio
import hashlib
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from chunkstore.core.exceptions import StorageException
from chunkstore.core.types import MultipartHandle, ObjectInfo, PartToken
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


@dataclass
class StoredObject:
    data: bytes
    content_type: str
    uploaded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class InMemoryObjectStore:
    """Dict-backed ObjectStore.

    Multipart uploads are staged per handle and only become visible once
    completed, mirroring S3 semantics. Abandoned multipart uploads stay in
    ``pending_multipart`` until the store is discarded.
    """

    def __init__(self):
        self.objects: Dict[str, StoredObject] = {}
        self.pending_multipart: Dict[str, Dict[int, bytes]] = {}
        self._lock = asyncio.Lock()

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        async with self._lock:
            self.objects[key] = StoredObject(data=bytes(data), content_type=content_type)

    async def get(self, key: str) -> Optional[bytes]:
        stored = self.objects.get(key)
        return stored.data if stored else None

    async def get_info(self, key: str) -> Optional[ObjectInfo]:
        stored = self.objects.get(key)
        if stored is None:
            return None
        return ObjectInfo(
            key=key,
            size=len(stored.data),
            uploaded_at=stored.uploaded_at,
            content_type=stored.content_type
        )

    async def delete(self, key: str) -> None:
        async with self._lock:
            self.objects.pop(key, None)

    async def list(self, prefix: Optional[str] = None) -> List[ObjectInfo]:
        return [
            ObjectInfo(key=key, size=len(stored.data), uploaded_at=stored.uploaded_at)
            for key, stored in sorted(self.objects.items())
            if prefix is None or key.startswith(prefix)
        ]

    async def begin_multipart(self, key: str, content_type: str) -> MultipartHandle:
        handle = MultipartHandle(key=key, upload_id=uuid.uuid4().hex, content_type=content_type)
        self.pending_multipart[handle.upload_id] = {}
        return handle

    async def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> PartToken:
        parts = self.pending_multipart.get(handle.upload_id)
        if parts is None:
            raise StorageException("Unknown multipart upload", operation="upload_part", key=handle.key)
        if part_number < 1:
            raise StorageException(
                f"Invalid part number: {part_number}",
                operation="upload_part",
                key=handle.key,
                details={"part_number": part_number}
            )
        parts[part_number] = bytes(data)
        return PartToken(part_number=part_number, etag=hashlib.md5(data).hexdigest())

    async def complete_multipart(self, handle: MultipartHandle, parts: List[PartToken]) -> None:
        staged = self.pending_multipart.get(handle.upload_id)
        if staged is None:
            raise StorageException("Unknown multipart upload", operation="complete_multipart", key=handle.key)

        ordered = sorted(parts)
        for token in ordered:
            data = staged.get(token.part_number)
            if data is None or hashlib.md5(data).hexdigest() != token.etag:
                raise StorageException(
                    f"Part {token.part_number} does not match an uploaded part",
                    operation="complete_multipart",
                    key=handle.key,
                    details={"part_number": token.part_number}
                )

        body = b"".join(staged[token.part_number] for token in ordered)
        async with self._lock:
            self.objects[handle.key] = StoredObject(data=body, content_type=handle.content_type)
            del self.pending_multipart[handle.upload_id]
        logger.debug("Completed in-memory multipart upload for %s (%d parts)", handle.key, len(ordered))
