"""Chunk receiver: validates and persists one chunk at a time."""
import logging
from dataclasses import dataclass
from typing import Optional

from chunkstore.core.exceptions import InvalidRequestException
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.utils.keys import chunk_key
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

CHUNK_CONTENT_TYPE = "application/octet-stream"


@dataclass(frozen=True)
class ChunkReceipt:
    upload_id: str
    part_index: int
    size: int


class ChunkReceiver:
    """Stores chunks as transient objects keyed by (upload id, part index)."""

    def __init__(
        self,
        store: ObjectStore,
        registry: UploadSessionRegistry,
        max_chunk_size: Optional[int] = None
    ):
        self.store = store
        self.registry = registry
        self.max_chunk_size = max_chunk_size

    async def receive_chunk(self, upload_id: str, part_index: int, data: bytes) -> ChunkReceipt:
        """
        Persist one chunk, replacing any earlier bytes at the same index.

        No upper bound is placed on ``part_index`` here; contiguity is checked
        when the upload is completed.

        Raises:
            InvalidRequestException: Negative/non-integer index or oversized chunk.
            SessionNotFoundException: The upload id does not resolve.
        """
        if isinstance(part_index, bool) or not isinstance(part_index, int) or part_index < 0:
            raise InvalidRequestException(
                "Part index must be a non-negative integer",
                field="part_index",
                details={"part_index": part_index}
            )
        if self.max_chunk_size is not None and len(data) > self.max_chunk_size:
            raise InvalidRequestException(
                f"Chunk exceeds maximum size of {self.max_chunk_size} bytes",
                field="chunk",
                details={"size": len(data), "max_chunk_size": self.max_chunk_size}
            )

        # Orphan chunks are refused rather than stored
        await self.registry.get_session(upload_id)

        await self.store.put(chunk_key(upload_id, part_index), data, CHUNK_CONTENT_TYPE)
        logger.info("Chunk %d stored for upload %s (%d bytes)", part_index, upload_id, len(data))
        return ChunkReceipt(upload_id=upload_id, part_index=part_index, size=len(data))
