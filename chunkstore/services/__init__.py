"""Service modules for business logic."""
from chunkstore.services.catalog import CatalogReader
from chunkstore.services.chunk_receiver import ChunkReceipt, ChunkReceiver
from chunkstore.services.cleanup import CleanupReport, CleanupSweeper
from chunkstore.services.memory_store import InMemoryObjectStore
from chunkstore.services.reassembly import CompletionResult, ReassemblyEngine
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.services.upload_service import UploadService, build_object_store

__all__ = [
    "CatalogReader",
    "ChunkReceipt",
    "ChunkReceiver",
    "CleanupReport",
    "CleanupSweeper",
    "CompletionResult",
    "InMemoryObjectStore",
    "ReassemblyEngine",
    "UploadSessionRegistry",
    "UploadService",
    "build_object_store",
]
