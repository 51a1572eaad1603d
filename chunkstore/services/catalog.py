"""Catalog reader for completed, user-visible files."""
import logging
from typing import List, Tuple

from chunkstore.core.exceptions import FileNotFoundException
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.schemas.file import FileEntry
from chunkstore.utils.keys import is_transient_key
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


class CatalogReader:
    """Lists and serves final objects, hiding chunk and session metadata objects."""

    def __init__(self, store: ObjectStore, default_content_type: str = "application/octet-stream"):
        self.store = store
        self.default_content_type = default_content_type

    async def list_final_objects(self) -> List[FileEntry]:
        objects = await self.store.list()
        entries = [
            FileEntry(name=obj.key, size=obj.size, uploaded_at=obj.uploaded_at)
            for obj in objects
            if not is_transient_key(obj.key)
        ]
        entries.sort(key=lambda entry: entry.name)
        logger.debug("Catalog lists %d of %d stored object(s)", len(entries), len(objects))
        return entries

    async def download(self, filename: str) -> Tuple[bytes, str]:
        """
        Return the bytes and recorded content type of a completed file.

        Raises:
            FileNotFoundException: No such file, or ``filename`` names transient state.
        """
        if not filename or is_transient_key(filename):
            raise FileNotFoundException(filename)

        info = await self.store.get_info(filename)
        data = await self.store.get(filename)
        if data is None:
            raise FileNotFoundException(filename)

        content_type = (info.content_type if info else None) or self.default_content_type
        return data, content_type
