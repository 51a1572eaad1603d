"""Reassembly engine: turns a complete set of chunks into the final object."""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from chunkstore.core.exceptions import (
    ChunkStoreException,
    InvalidRequestException,
    MissingChunkException,
    ReassemblyFailedException,
)
from chunkstore.core.patterns import BatchFailure, run_batch
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.core.types import MultipartHandle, PartToken, ReassemblyStrategy
from chunkstore.models.upload_session import UploadSession, UploadStatus
from chunkstore.services.cleanup import CleanupReport, CleanupSweeper
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.utils.file_utils import validate_filename
from chunkstore.utils.keys import chunk_key, chunk_prefix, parse_chunk_index
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_MULTIPART_THRESHOLD = 100 * 1024 * 1024


@dataclass
class CompletionResult:
    upload_id: str
    filename: str
    size: int
    content_type: str
    strategy: ReassemblyStrategy
    status: UploadStatus = UploadStatus.COMPLETED
    cleanup: Optional[CleanupReport] = None

    @property
    def cleanup_errors(self) -> Dict[str, str]:
        return dict(self.cleanup.failed) if self.cleanup else {}


class ReassemblyEngine:
    """
    Completes chunked uploads.

    Small uploads (declared size below ``multipart_threshold``) are concatenated
    in memory and written with one put. Larger uploads are streamed through
    the store's native multipart upload, one part per chunk, so the process
    never holds more than ``max_part_workers`` chunks at a time.

    Completion is not re-entrant: callers must not complete the same upload id
    concurrently.
    """

    def __init__(
        self,
        store: ObjectStore,
        registry: UploadSessionRegistry,
        sweeper: CleanupSweeper,
        multipart_threshold: int = DEFAULT_MULTIPART_THRESHOLD,
        max_part_workers: int = 8
    ):
        self.store = store
        self.registry = registry
        self.sweeper = sweeper
        self.multipart_threshold = multipart_threshold
        self.max_part_workers = max_part_workers

    def select_strategy(self, session: UploadSession) -> ReassemblyStrategy:
        if session.declared_size >= self.multipart_threshold:
            return "multipart"
        return "concatenate"

    async def complete_upload(
        self,
        upload_id: str,
        filename: Optional[str],
        chunk_count: int
    ) -> CompletionResult:
        """
        Reassemble chunks ``0..chunk_count-1`` into ``filename``.

        Args:
            upload_id: Upload session ID.
            filename: Target object key; the session's filename when None.
            chunk_count: Number of chunks the client sent.

        Returns:
            CompletionResult describing the stored object.

        Raises:
            SessionNotFoundException: Unknown or already completed upload.
            InvalidRequestException: Bad chunk count or filename.
            MissingChunkException: An index in ``[0, chunk_count)`` has no chunk.
            ReassemblyFailedException: The store failed while building the object.
        """
        session = await self.registry.get_session(upload_id)

        if isinstance(chunk_count, bool) or not isinstance(chunk_count, int) or chunk_count < 1:
            raise InvalidRequestException(
                "Chunk count must be a positive integer",
                field="chunk_count",
                details={"chunk_count": chunk_count}
            )
        target = validate_filename(filename) if filename is not None else session.filename

        await self._verify_chunks(upload_id, chunk_count)
        strategy = self.select_strategy(session)
        logger.info(
            "Completing upload %s -> %s: %d chunk(s), strategy=%s",
            upload_id, target, chunk_count, strategy
        )

        if strategy == "multipart":
            size = await self._reassemble_multipart(session, target, chunk_count)
        else:
            size = await self._reassemble_in_memory(session, target, chunk_count)

        logger.info("Upload %s stored as %s (%d bytes)", upload_id, target, size)

        # Runs before returning so a success response means no transient state is left
        report = await self.sweeper.cleanup(upload_id, chunk_count)
        if not report.ok:
            failure = report.to_exception()
            logger.warning("%s", failure.message, extra={"error_details": failure.to_dict()})

        return CompletionResult(
            upload_id=upload_id,
            filename=target,
            size=size,
            content_type=session.content_type,
            strategy=strategy,
            cleanup=report
        )

    async def _verify_chunks(self, upload_id: str, chunk_count: int) -> Dict[int, int]:
        """Return index -> size for chunks ``0..chunk_count-1``; raise on the first gap."""
        try:
            listed = await self.store.list(chunk_prefix(upload_id))
        except Exception as e:
            raise ReassemblyFailedException(
                f"Could not list chunks: {e}",
                upload_id=upload_id,
                original_error=e
            )

        sizes: Dict[int, int] = {}
        for obj in listed:
            index = parse_chunk_index(upload_id, obj.key)
            if index is not None and index < chunk_count:
                sizes[index] = obj.size

        for index in range(chunk_count):
            if index not in sizes:
                raise MissingChunkException(upload_id, index, chunk_count)
        return sizes

    async def _read_chunk(self, upload_id: str, index: int) -> bytes:
        data = await self.store.get(chunk_key(upload_id, index))
        if data is None:
            raise ReassemblyFailedException(
                f"Chunk {index} disappeared during reassembly",
                upload_id=upload_id,
                details={"chunk_index": index}
            )
        return data

    async def _reassemble_in_memory(self, session: UploadSession, target: str, chunk_count: int) -> int:
        upload_id = session.upload_id
        try:
            buffer = bytearray()
            for index in range(chunk_count):
                buffer.extend(await self._read_chunk(upload_id, index))
            await self.store.put(target, bytes(buffer), session.content_type)
        except ReassemblyFailedException:
            raise
        except Exception as e:
            raise ReassemblyFailedException(
                f"Failed to write {target}: {e}",
                upload_id=upload_id,
                strategy="concatenate",
                original_error=e
            )
        return len(buffer)

    async def _transfer_part(self, handle: MultipartHandle, upload_id: str, index: int) -> Tuple[PartToken, int]:
        data = await self._read_chunk(upload_id, index)
        token = await self.store.upload_part(handle, index + 1, data)
        return token, len(data)

    async def _reassemble_multipart(self, session: UploadSession, target: str, chunk_count: int) -> int:
        upload_id = session.upload_id
        try:
            handle = await self.store.begin_multipart(target, session.content_type)
        except Exception as e:
            raise ReassemblyFailedException(
                f"Failed to start multipart upload for {target}: {e}",
                upload_id=upload_id,
                strategy="multipart",
                original_error=e
            )

        try:
            results = await run_batch(
                [self._transfer_part(handle, upload_id, index) for index in range(chunk_count)],
                max_concurrency=self.max_part_workers
            )
        except BatchFailure as e:
            failed_parts: List[int] = sorted(index + 1 for index in e.failures)
            logger.error(
                "Multipart upload %s for %s aborted: parts %s failed; left for store expiry",
                handle.upload_id, target, failed_parts
            )
            first = e.first
            raise ReassemblyFailedException(
                f"Failed to upload {len(failed_parts)} part(s) of {target}: "
                f"{first.message if isinstance(first, ChunkStoreException) else first}",
                upload_id=upload_id,
                strategy="multipart",
                details={"failed_parts": failed_parts},
                original_error=first if isinstance(first, Exception) else None
            )

        tokens = [token for token, _ in results]
        size = sum(part_size for _, part_size in results)

        try:
            await self.store.complete_multipart(handle, sorted(tokens))
        except Exception as e:
            logger.error(
                "Finalizing multipart upload %s for %s failed; left for store expiry: %s",
                handle.upload_id, target, e
            )
            raise ReassemblyFailedException(
                f"Failed to finalize {target}: {e}",
                upload_id=upload_id,
                strategy="multipart",
                original_error=e
            )
        return size
