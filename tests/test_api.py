"""HTTP API tests."""
import pytest
from fastapi.testclient import TestClient

from chunkstore.core.exceptions import StorageException
from chunkstore.main import create_application
from chunkstore.services.memory_store import InMemoryObjectStore

API = "/api/v1"


def start_upload(client, filename="report.pdf", **extra):
    response = client.post(f"{API}/uploads", json={"filename": filename, **extra})
    assert response.status_code == 201
    return response.json()["upload_id"]


def put_chunk(client, upload_id, index, data):
    return client.put(f"{API}/uploads/{upload_id}/chunks/{index}", content=data)


class TestUploadEndpoints:
    """Chunked upload protocol over HTTP."""

    def test_report_pdf_round_trip(self, client, transient_keys):
        upload_id = start_upload(client, content_type="application/pdf", declared_size=300)
        chunks = [b"A" * 100, b"B" * 100, b"C" * 100]
        for index, data in enumerate(chunks):
            response = put_chunk(client, upload_id, index, data)
            assert response.status_code == 200
            assert response.json() == {"upload_id": upload_id, "part_index": index, "size": 100}

        response = client.post(f"{API}/uploads/{upload_id}/complete", json={"chunk_count": 3})

        assert response.status_code == 200
        body = response.json()
        assert body["filename"] == "report.pdf"
        assert body["size"] == 300
        assert body["status"] == "completed"
        assert body["strategy"] == "concatenate"
        assert body["cleanup_errors"] == {}
        assert transient_keys() == []

        listing = client.get(f"{API}/files").json()
        assert [(entry["name"], entry["size"]) for entry in listing] == [("report.pdf", 300)]

        download = client.get(f"{API}/files/report.pdf")
        assert download.status_code == 200
        assert download.content == b"".join(chunks)
        assert download.headers["content-type"] == "application/pdf"
        assert download.headers["content-disposition"] == 'attachment; filename="report.pdf"'

    def test_prepare_response(self, client):
        response = client.post(f"{API}/uploads", json={"filename": "a.bin"})

        body = response.json()
        assert response.status_code == 201
        assert len(body["upload_id"]) == 32
        assert body["content_type"] == "application/octet-stream"
        assert body["declared_size"] == 0
        assert body["status"] == "in-progress"

    def test_empty_filename_is_400(self, client, store):
        response = client.post(f"{API}/uploads", json={"filename": ""})

        assert response.status_code == 400
        error = response.json()["error"]
        assert error["code"] == "INVALID_REQUEST"
        assert error["category"] == "validation"
        assert error["details"]["field"] == "filename"
        assert error["path"] == f"{API}/uploads"
        assert store.objects == {}

    def test_missing_body_is_422(self, client):
        response = client.post(f"{API}/uploads", json={})

        assert response.status_code == 422
        assert response.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_missing_chunk_is_409(self, client):
        upload_id = start_upload(client, filename="x.bin")
        put_chunk(client, upload_id, 0, b"zero")
        put_chunk(client, upload_id, 2, b"two")

        response = client.post(f"{API}/uploads/{upload_id}/complete", json={"chunk_count": 3, "filename": "x.bin"})

        assert response.status_code == 409
        error = response.json()["error"]
        assert error["code"] == "MISSING_CHUNK"
        assert error["details"]["chunk_index"] == 1

        status = client.get(f"{API}/uploads/{upload_id}").json()
        assert status["received_chunks"] == [0, 2]
        assert client.get(f"{API}/files").json() == []

    def test_unknown_session_is_404(self, client):
        unknown = "0" * 32

        assert put_chunk(client, unknown, 0, b"x").status_code == 404
        response = client.post(f"{API}/uploads/{unknown}/complete", json={"chunk_count": 1})
        assert response.status_code == 404
        assert response.json()["error"]["code"] == "SESSION_NOT_FOUND"
        assert client.get(f"{API}/uploads/{unknown}").status_code == 404
        assert client.delete(f"{API}/uploads/{unknown}").status_code == 404

    def test_negative_part_index_is_400(self, client):
        upload_id = start_upload(client)

        response = put_chunk(client, upload_id, -1, b"x")

        assert response.status_code == 400
        assert response.json()["error"]["details"]["field"] == "part_index"

    def test_non_integer_part_index_is_422(self, client):
        upload_id = start_upload(client)

        assert put_chunk(client, upload_id, "first", b"x").status_code == 422

    def test_oversized_chunk_is_400(self, client, upload_config):
        upload_id = start_upload(client)

        response = put_chunk(client, upload_id, 0, b"x" * (upload_config.max_chunk_size + 1))

        assert response.status_code == 400

    def test_zero_chunk_count_is_400(self, client):
        upload_id = start_upload(client)
        put_chunk(client, upload_id, 0, b"x")

        response = client.post(f"{API}/uploads/{upload_id}/complete", json={"chunk_count": 0})

        assert response.status_code == 400

    def test_abandon(self, client, transient_keys):
        upload_id = start_upload(client)
        put_chunk(client, upload_id, 0, b"x")
        put_chunk(client, upload_id, 1, b"y")

        response = client.delete(f"{API}/uploads/{upload_id}")

        assert response.status_code == 200
        assert response.json() == {"upload_id": upload_id, "status": "abandoned", "deleted": 3, "cleanup_errors": {}}
        assert transient_keys() == []

    def test_large_upload_uses_multipart(self, client, store, upload_config):
        upload_id = start_upload(client, filename="big.bin", declared_size=upload_config.multipart_threshold * 2)
        put_chunk(client, upload_id, 1, b"2" * 1024)
        put_chunk(client, upload_id, 0, b"1" * 1024)

        response = client.post(f"{API}/uploads/{upload_id}/complete", json={"chunk_count": 2})

        assert response.json()["strategy"] == "multipart"
        assert store.objects["big.bin"].data == b"1" * 1024 + b"2" * 1024


class TestFileEndpoints:
    """Listing, download and one-shot upload."""

    def test_listing_hides_in_flight_uploads(self, client):
        upload_id = start_upload(client, filename="pending.bin")
        put_chunk(client, upload_id, 0, b"x")

        assert client.get(f"{API}/files").json() == []

    def test_download_missing_is_404(self, client):
        response = client.get(f"{API}/files/nope.txt")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "FILE_NOT_FOUND"

    def test_download_chunk_key_is_404(self, client):
        upload_id = start_upload(client)
        put_chunk(client, upload_id, 0, b"x")

        assert client.get(f"{API}/files/{upload_id}.chunk.0").status_code == 404
        assert client.get(f"{API}/files/{upload_id}.meta").status_code == 404

    def test_one_shot_upload_and_nested_download(self, client):
        response = client.post(
            f"{API}/files",
            files={"file": ("local.pdf", b"%PDF-1.7", "application/pdf")},
            data={"filename": "docs/2024/guide.pdf"}
        )

        assert response.status_code == 201
        assert response.json() == {"name": "docs/2024/guide.pdf", "size": 8, "content_type": "application/pdf"}

        download = client.get(f"{API}/files/docs/2024/guide.pdf")
        assert download.content == b"%PDF-1.7"
        assert download.headers["content-disposition"] == 'attachment; filename="guide.pdf"'

    def test_one_shot_upload_defaults_to_uploaded_name(self, client):
        response = client.post(f"{API}/files", files={"file": ("photo.png", b"\x89PNG", "image/png")})

        assert response.status_code == 201
        assert response.json()["name"] == "photo.png"


class FailingPutStore(InMemoryObjectStore):
    """Accepts sessions and chunks but refuses to write any final object."""

    async def put(self, key, data, content_type):
        if ".chunk." not in key and not key.endswith(".meta"):
            raise StorageException("bucket is read-only", operation="put", key=key)
        return await super().put(key, data, content_type)


class BrokenListStore(InMemoryObjectStore):
    async def list(self, prefix=None):
        raise RuntimeError("unexpected")


class TestErrorEnvelope:
    """Error mapping for store failures."""

    def test_reassembly_failure_is_502_and_keeps_chunks(self):
        store = FailingPutStore()
        client = TestClient(create_application(object_store=store))
        upload_id = start_upload(client, filename="x.bin")
        put_chunk(client, upload_id, 0, b"x")

        response = client.post(f"{API}/uploads/{upload_id}/complete", json={"chunk_count": 1})

        assert response.status_code == 502
        error = response.json()["error"]
        assert error["code"] == "REASSEMBLY_FAILED"
        assert error["severity"] == "high"
        assert f"{upload_id}.chunk.0" in store.objects
        assert f"{upload_id}.meta" in store.objects

    def test_direct_upload_storage_failure_is_502(self):
        client = TestClient(create_application(object_store=FailingPutStore()))

        response = client.post(f"{API}/files", files={"file": ("a.txt", b"x", "text/plain")})

        assert response.status_code == 502
        assert response.json()["error"]["code"] == "STORAGE_ERROR"

    def test_unhandled_error_is_500(self):
        client = TestClient(create_application(object_store=BrokenListStore()), raise_server_exceptions=False)

        response = client.get(f"{API}/files")

        assert response.status_code == 500
        assert response.json()["error"]["code"] == "INTERNAL_SERVER_ERROR"

    def test_unknown_route_is_404_envelope(self, client):
        response = client.get("/api/v1/nowhere")

        assert response.status_code == 404
        assert response.json()["error"]["code"] == "HTTP_404"


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json()["status"] == "ok"
