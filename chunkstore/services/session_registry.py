"""Upload session registry.

Sessions are persisted in the object store itself as small JSON objects, so
no separate database is needed. The registry is write-once-then-delete.
"""
import logging
from typing import Optional

from pydantic import ValidationError

from chunkstore.core.exceptions import (
    InvalidRequestException,
    SessionNotFoundException,
    StorageException,
)
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.models.upload_session import UploadSession, UploadStatus
from chunkstore.utils.file_utils import validate_filename
from chunkstore.utils.keys import is_valid_upload_id, meta_key, new_upload_id
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

SESSION_CONTENT_TYPE = "application/json"


class UploadSessionRegistry:
    """Creates, resolves and deletes upload sessions."""

    def __init__(self, store: ObjectStore, default_content_type: str = "application/octet-stream"):
        self.store = store
        self.default_content_type = default_content_type

    async def create_session(
        self,
        filename: Optional[str],
        content_type: Optional[str] = None,
        declared_size: Optional[int] = None
    ) -> UploadSession:
        """
        Persist a new in-progress session.

        Args:
            filename: Target filename for the completed object.
            content_type: MIME type of the final object (generic binary if absent).
            declared_size: Client-reported size in bytes; advisory only.

        Returns:
            UploadSession: The stored session, carrying its fresh upload id.

        Raises:
            InvalidRequestException: Empty/reserved filename or negative size.
        """
        filename = validate_filename(filename)

        if declared_size is None:
            declared_size = 0
        elif isinstance(declared_size, bool) or not isinstance(declared_size, int) or declared_size < 0:
            raise InvalidRequestException(
                "Declared size must be a non-negative integer",
                field="declared_size",
                details={"declared_size": declared_size}
            )

        session = UploadSession(
            upload_id=new_upload_id(),
            filename=filename,
            content_type=(content_type or "").strip() or self.default_content_type,
            declared_size=declared_size,
            status=UploadStatus.IN_PROGRESS,
        )

        await self.store.put(meta_key(session.upload_id), session.to_bytes(), SESSION_CONTENT_TYPE)
        logger.info(
            "Created upload session %s for %s (%d bytes declared)",
            session.upload_id, filename, declared_size
        )
        return session

    async def get_session(self, upload_id: str) -> UploadSession:
        """
        Resolve an upload id.

        Raises:
            SessionNotFoundException: Unknown, malformed or already completed upload id.
        """
        if not is_valid_upload_id(upload_id):
            raise SessionNotFoundException(upload_id)

        data = await self.store.get(meta_key(upload_id))
        if data is None:
            raise SessionNotFoundException(upload_id)

        try:
            return UploadSession.from_bytes(data)
        except ValidationError as e:
            raise StorageException(
                f"Corrupt session metadata for {upload_id}",
                operation="get_session",
                key=meta_key(upload_id),
                original_error=e
            )

    async def delete_session(self, upload_id: str) -> None:
        await self.store.delete(meta_key(upload_id))
        logger.debug("Deleted session metadata for %s", upload_id)
