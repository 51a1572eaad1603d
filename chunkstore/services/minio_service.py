"""MinIO-backed object store.

The MinIO SDK is blocking, so every call is pushed onto the default executor
to keep the event loop free. Transient failures (5xx responses, dropped
connections) are retried with exponential backoff using the policy in the
store's MinioConfig; once retries are exhausted they surface as StorageException.
Multipart completion is never retried since it is not idempotent.
"""
import asyncio
import io
import logging
from datetime import datetime, timezone
from functools import partial
from typing import Any, Callable, List, Optional

from minio import Minio
from minio.datatypes import Part
from minio.error import S3Error, ServerError
from urllib3.exceptions import HTTPError as Urllib3HTTPError

from chunkstore.config import settings
from chunkstore.core.config import MinioConfig
from chunkstore.core.decorators import async_retry
from chunkstore.core.exceptions import StorageException
from chunkstore.core.types import MultipartHandle, ObjectInfo, PartToken
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

_NOT_FOUND_CODES = {"NoSuchKey", "NoSuchObject", "NotFound"}
_RETRYABLE_ERRORS = (ServerError, Urllib3HTTPError, ConnectionError, TimeoutError)
_STORE_ERRORS = (S3Error,) + _RETRYABLE_ERRORS


def _is_not_found(error: Exception) -> bool:
    return isinstance(error, S3Error) and error.code in _NOT_FOUND_CODES


class MinioObjectStore:
    """ObjectStore implementation over a single MinIO/S3 bucket."""

    def __init__(self, config: Optional[MinioConfig] = None, client: Optional[Minio] = None):
        """
        Initialize the store.

        Args:
            config: Connection settings (defaults to application settings).
            client: Pre-built MinIO client, mainly for tests.
        """
        self.config = config or settings.get_minio_config()
        self.bucket_name = self.config.bucket_name
        self.client = client or Minio(
            self.config.endpoint,
            access_key=self.config.access_key,
            secret_key=self.config.secret_key,
            secure=self.config.secure
        )
        self._run_with_retry = async_retry(
            max_attempts=self.config.max_retries + 1,
            delay=self.config.retry_delay,
            exceptions=_RETRYABLE_ERRORS
        )(self._run)
        logger.info("MinIO object store configured: endpoint=%s bucket=%s", self.config.endpoint, self.bucket_name)

    async def _run(self, func: Callable[..., Any], *args, **kwargs) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, partial(func, *args, **kwargs))

    async def _call(self, func: Callable[..., Any], *args, retry: bool = True, **kwargs) -> Any:
        runner = self._run_with_retry if retry else self._run
        return await runner(func, *args, **kwargs)

    async def ensure_bucket_exists(self) -> None:
        """Create the target bucket if it does not already exist."""
        try:
            if not await self._call(self.client.bucket_exists, bucket_name=self.bucket_name):
                logger.info("Creating MinIO bucket: %s", self.bucket_name)
                await self._call(self.client.make_bucket, bucket_name=self.bucket_name)
            else:
                logger.info("Bucket '%s' already exists", self.bucket_name)
        except _STORE_ERRORS as e:
            raise StorageException(
                f"Failed to create bucket '{self.bucket_name}': {e}",
                operation="ensure_bucket",
                original_error=e
            )

    def _put_object(self, key: str, data: bytes, content_type: str) -> None:
        # A fresh stream per attempt; a retried upload must start from byte 0
        self.client.put_object(
            bucket_name=self.bucket_name,
            object_name=key,
            data=io.BytesIO(data),
            length=len(data),
            content_type=content_type
        )

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        try:
            await self._call(self._put_object, key, data, content_type)
        except _STORE_ERRORS as e:
            raise StorageException(f"Upload failed: {e}", operation="put", key=key, original_error=e)

    def _read_object(self, key: str) -> Optional[bytes]:
        try:
            response = self.client.get_object(bucket_name=self.bucket_name, object_name=key)
        except S3Error as e:
            if _is_not_found(e):
                return None
            raise
        try:
            return response.read()
        finally:
            response.close()
            response.release_conn()

    async def get(self, key: str) -> Optional[bytes]:
        try:
            return await self._call(self._read_object, key)
        except _STORE_ERRORS as e:
            raise StorageException(f"Download failed: {e}", operation="get", key=key, original_error=e)

    async def get_info(self, key: str) -> Optional[ObjectInfo]:
        try:
            stat = await self._call(self.client.stat_object, bucket_name=self.bucket_name, object_name=key)
        except _STORE_ERRORS as e:
            if _is_not_found(e):
                return None
            raise StorageException(f"Stat failed: {e}", operation="stat", key=key, original_error=e)
        return ObjectInfo(
            key=key,
            size=stat.size or 0,
            uploaded_at=stat.last_modified or datetime.now(timezone.utc),
            content_type=stat.content_type
        )

    async def delete(self, key: str) -> None:
        try:
            await self._call(self.client.remove_object, bucket_name=self.bucket_name, object_name=key)
        except _STORE_ERRORS as e:
            if _is_not_found(e):
                return
            raise StorageException(f"Delete failed: {e}", operation="delete", key=key, original_error=e)

    def _list_objects(self, prefix: Optional[str]) -> List[ObjectInfo]:
        objects = []
        for obj in self.client.list_objects(bucket_name=self.bucket_name, prefix=prefix, recursive=True):
            if obj.is_dir:
                continue
            objects.append(ObjectInfo(
                key=obj.object_name,
                size=obj.size or 0,
                uploaded_at=obj.last_modified or datetime.now(timezone.utc)
            ))
        return objects

    async def list(self, prefix: Optional[str] = None) -> List[ObjectInfo]:
        try:
            return await self._call(self._list_objects, prefix)
        except _STORE_ERRORS as e:
            raise StorageException(f"Listing failed: {e}", operation="list", original_error=e)

    # Multipart primitives. The public SDK only exposes multipart through
    # put_object on streams, so the low-level calls are used directly.

    async def begin_multipart(self, key: str, content_type: str) -> MultipartHandle:
        try:
            upload_id = await self._call(
                self.client._create_multipart_upload,
                bucket_name=self.bucket_name,
                object_name=key,
                headers={"Content-Type": content_type}
            )
        except _STORE_ERRORS as e:
            raise StorageException(f"Multipart start failed: {e}", operation="begin_multipart", key=key, original_error=e)
        logger.debug("Opened multipart upload %s for %s", upload_id, key)
        return MultipartHandle(key=key, upload_id=upload_id, content_type=content_type)

    async def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> PartToken:
        try:
            etag = await self._call(
                self.client._upload_part,
                bucket_name=self.bucket_name,
                object_name=handle.key,
                data=data,
                headers=None,
                upload_id=handle.upload_id,
                part_number=part_number
            )
        except _STORE_ERRORS as e:
            raise StorageException(
                f"Part {part_number} upload failed: {e}",
                operation="upload_part",
                key=handle.key,
                details={"part_number": part_number},
                original_error=e
            )
        return PartToken(part_number=part_number, etag=etag)

    async def complete_multipart(self, handle: MultipartHandle, parts: List[PartToken]) -> None:
        minio_parts = [Part(token.part_number, token.etag) for token in sorted(parts)]
        try:
            await self._call(
                self.client._complete_multipart_upload,
                retry=False,
                bucket_name=self.bucket_name,
                object_name=handle.key,
                upload_id=handle.upload_id,
                parts=minio_parts
            )
        except _STORE_ERRORS as e:
            raise StorageException(
                f"Multipart completion failed: {e}",
                operation="complete_multipart",
                key=handle.key,
                original_error=e
            )
