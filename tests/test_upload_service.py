"""Tests for the upload coordinator."""
import pytest

from chunkstore.core.config import StorageBackend
from chunkstore.core.exceptions import InvalidRequestException, SessionNotFoundException
from chunkstore.models.upload_session import UploadStatus
from chunkstore.services import upload_service as upload_service_module
from chunkstore.services.memory_store import InMemoryObjectStore
from chunkstore.services.upload_service import build_object_store


class TestUploadService:
    """Test suite for UploadService."""

    @pytest.mark.asyncio
    async def test_full_protocol(self, service, transient_keys):
        session = await service.prepare("notes.txt", "text/plain", 11)
        await service.upload_chunk(session.upload_id, 1, b"world")
        await service.upload_chunk(session.upload_id, 0, b"hello ")

        result = await service.complete(session.upload_id, 2)

        assert result.filename == "notes.txt"
        assert result.size == 11
        assert result.strategy == "concatenate"
        assert [entry.name for entry in await service.list_files()] == ["notes.txt"]
        assert await service.download("notes.txt") == (b"hello world", "text/plain")
        assert transient_keys() == []

    @pytest.mark.asyncio
    async def test_large_declared_size_uses_multipart(self, service, store, upload_config):
        session = await service.prepare("big.bin", declared_size=upload_config.multipart_threshold)
        await service.upload_chunk(session.upload_id, 0, b"a" * 600)
        await service.upload_chunk(session.upload_id, 1, b"b" * 600)

        result = await service.complete(session.upload_id, 2)

        assert result.strategy == "multipart"
        assert store.objects["big.bin"].data == b"a" * 600 + b"b" * 600

    @pytest.mark.asyncio
    async def test_status(self, service):
        session = await service.prepare("a.bin", declared_size=9)
        await service.upload_chunk(session.upload_id, 2, b"ccc")
        await service.upload_chunk(session.upload_id, 0, b"a")

        status = await service.status(session.upload_id)

        assert status.upload_id == session.upload_id
        assert status.status == UploadStatus.IN_PROGRESS
        assert status.received_chunks == [0, 2]
        assert status.received_bytes == 4

    @pytest.mark.asyncio
    async def test_abandon(self, service, transient_keys):
        session = await service.prepare("a.bin")
        await service.upload_chunk(session.upload_id, 0, b"a")

        report = await service.abandon(session.upload_id)

        assert report.ok
        assert transient_keys() == []
        with pytest.raises(SessionNotFoundException):
            await service.status(session.upload_id)

    @pytest.mark.asyncio
    async def test_put_file(self, service, store):
        response = await service.put_file("docs/manual.pdf", b"%PDF", None)

        assert response.name == "docs/manual.pdf"
        assert response.size == 4
        assert response.content_type == "application/pdf"
        assert store.objects["docs/manual.pdf"].data == b"%PDF"

    @pytest.mark.asyncio
    async def test_put_file_rejects_reserved_names(self, service, store):
        with pytest.raises(InvalidRequestException):
            await service.put_file("f" * 32 + ".chunk.0", b"x", None)

        assert store.objects == {}


class TestBuildObjectStore:
    """Test suite for build_object_store."""

    def test_memory_backend(self, monkeypatch):
        monkeypatch.setattr(upload_service_module.settings, "storage_backend", StorageBackend.MEMORY)

        assert isinstance(build_object_store(), InMemoryObjectStore)

    def test_minio_backend(self, monkeypatch):
        from chunkstore.services.minio_service import MinioObjectStore

        monkeypatch.setattr(upload_service_module.settings, "storage_backend", StorageBackend.MINIO)

        store = build_object_store()

        assert isinstance(store, MinioObjectStore)
        assert store.bucket_name == upload_service_module.settings.minio_bucket_name
