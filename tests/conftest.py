"""Pytest fixtures for chunkstore tests."""
import pytest
from fastapi.testclient import TestClient

from chunkstore.core.config import UploadConfig
from chunkstore.services.cleanup import CleanupSweeper
from chunkstore.services.memory_store import InMemoryObjectStore
from chunkstore.services.reassembly import ReassemblyEngine
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.services.upload_service import UploadService
from chunkstore.utils.keys import is_transient_key


@pytest.fixture
def store():
    """Empty in-memory object store."""
    return InMemoryObjectStore()


@pytest.fixture
def registry(store):
    return UploadSessionRegistry(store)


@pytest.fixture
def sweeper(store, registry):
    return CleanupSweeper(store, registry, max_concurrency=4)


@pytest.fixture
def engine(store, registry, sweeper):
    """Reassembly engine with the default 100 MiB multipart threshold."""
    return ReassemblyEngine(store, registry, sweeper)


@pytest.fixture
def upload_config():
    """Upload tuning with a tiny multipart threshold so tests can hit both paths."""
    return UploadConfig(
        multipart_threshold=1024,
        max_part_workers=4,
        max_delete_workers=4,
        max_chunk_size=64 * 1024
    )


@pytest.fixture
def service(store, upload_config):
    return UploadService(store, upload_config)


@pytest.fixture
def client(store, upload_config):
    """HTTP client against an application serving from the in-memory store."""
    from chunkstore.main import create_application

    app = create_application(object_store=store)
    app.state.upload_service = UploadService(store, upload_config)
    return TestClient(app)


@pytest.fixture
def transient_keys(store):
    """Returns a callable listing chunk and session keys still present in the store."""
    def _keys():
        return sorted(key for key in store.objects if is_transient_key(key))
    return _keys
