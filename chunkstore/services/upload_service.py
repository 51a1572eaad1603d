"""Upload coordinator: the operation surface of the chunked upload protocol."""
import logging
from typing import List, Optional, Tuple

from chunkstore.config import settings
from chunkstore.core.config import StorageBackend, UploadConfig
from chunkstore.core.decorators import async_performance_monitor
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.models.upload_session import UploadSession
from chunkstore.schemas.file import FileEntry, FileUploadResponse
from chunkstore.schemas.upload import UploadStatusResponse
from chunkstore.services.catalog import CatalogReader
from chunkstore.services.chunk_receiver import ChunkReceipt, ChunkReceiver
from chunkstore.services.cleanup import CleanupReport, CleanupSweeper
from chunkstore.services.reassembly import CompletionResult, ReassemblyEngine
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.utils.file_utils import guess_content_type, validate_filename
from chunkstore.utils.keys import chunk_prefix, parse_chunk_index
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


def build_object_store() -> ObjectStore:
    """Create the object store selected by ``storage_backend``."""
    if settings.storage_backend == StorageBackend.MEMORY:
        from chunkstore.services.memory_store import InMemoryObjectStore
        logger.warning("Using in-memory object store; uploads are lost on restart")
        return InMemoryObjectStore()

    from chunkstore.services.minio_service import MinioObjectStore
    return MinioObjectStore()


class UploadService:
    """
    Coordinates chunked uploads against one object store.

    All durable state lives in the store; the service itself holds none between
    requests, so any number of instances can serve the same bucket.
    """

    def __init__(self, store: ObjectStore, config: Optional[UploadConfig] = None):
        """
        Wire the upload components around ``store``.

        Args:
            store: Object store collaborator.
            config: Upload tuning (defaults to application settings).
        """
        self.store = store
        self.config = config or settings.get_upload_config()

        self.registry = UploadSessionRegistry(store, default_content_type=self.config.default_content_type)
        self.receiver = ChunkReceiver(store, self.registry, max_chunk_size=self.config.max_chunk_size)
        self.sweeper = CleanupSweeper(store, self.registry, max_concurrency=self.config.max_delete_workers)
        self.reassembly = ReassemblyEngine(
            store,
            self.registry,
            self.sweeper,
            multipart_threshold=self.config.multipart_threshold,
            max_part_workers=self.config.max_part_workers
        )
        self.catalog = CatalogReader(store, default_content_type=self.config.default_content_type)

    @async_performance_monitor("upload.prepare")
    async def prepare(
        self,
        filename: Optional[str],
        content_type: Optional[str] = None,
        declared_size: Optional[int] = None
    ) -> UploadSession:
        return await self.registry.create_session(filename, content_type, declared_size)

    @async_performance_monitor("upload.chunk")
    async def upload_chunk(self, upload_id: str, part_index: int, data: bytes) -> ChunkReceipt:
        return await self.receiver.receive_chunk(upload_id, part_index, data)

    @async_performance_monitor("upload.complete")
    async def complete(self, upload_id: str, chunk_count: int, filename: Optional[str] = None) -> CompletionResult:
        return await self.reassembly.complete_upload(upload_id, filename, chunk_count)

    @async_performance_monitor("upload.status")
    async def status(self, upload_id: str) -> UploadStatusResponse:
        """Session details plus the chunk indices received so far."""
        session = await self.registry.get_session(upload_id)
        received = {}
        for obj in await self.store.list(chunk_prefix(upload_id)):
            index = parse_chunk_index(upload_id, obj.key)
            if index is not None:
                received[index] = obj.size

        return UploadStatusResponse(
            upload_id=session.upload_id,
            filename=session.filename,
            content_type=session.content_type,
            declared_size=session.declared_size,
            status=session.status,
            created_at=session.created_at,
            received_chunks=sorted(received),
            received_bytes=sum(received.values())
        )

    @async_performance_monitor("upload.abandon")
    async def abandon(self, upload_id: str) -> CleanupReport:
        return await self.sweeper.abandon(upload_id)

    @async_performance_monitor("files.list")
    async def list_files(self) -> List[FileEntry]:
        return await self.catalog.list_final_objects()

    @async_performance_monitor("files.download")
    async def download(self, filename: str) -> Tuple[bytes, str]:
        return await self.catalog.download(filename)

    @async_performance_monitor("files.put")
    async def put_file(self, filename: Optional[str], data: bytes, content_type: Optional[str] = None) -> FileUploadResponse:
        """Store a whole file in one request, bypassing the chunked protocol."""
        filename = validate_filename(filename)
        content_type = content_type or guess_content_type(filename, self.config.default_content_type)
        await self.store.put(filename, data, content_type)
        logger.info("File %s uploaded directly (%d bytes)", filename, len(data))
        return FileUploadResponse(name=filename, size=len(data), content_type=content_type)
