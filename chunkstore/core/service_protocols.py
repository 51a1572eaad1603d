"""Service interface protocol definitions."""
from typing import List, Optional, Protocol, runtime_checkable

from chunkstore.core.types import MultipartHandle, ObjectInfo, PartToken


@runtime_checkable
class ObjectStore(Protocol):
    """Protocol describing the object store the upload services run against.

    Every component takes an ObjectStore explicitly; there is no module-level
    store binding.
    """

    async def put(self, key: str, data: bytes, content_type: str) -> None:
        """Store ``data`` under ``key``, replacing any existing object."""
        ...

    async def get(self, key: str) -> Optional[bytes]:
        """Return the object's bytes, or None when the key does not exist."""
        ...

    async def get_info(self, key: str) -> Optional[ObjectInfo]:
        """Return size/content type for ``key``, or None when it does not exist."""
        ...

    async def delete(self, key: str) -> None:
        """Delete ``key``. Deleting a missing key is not an error."""
        ...

    async def list(self, prefix: Optional[str] = None) -> List[ObjectInfo]:
        """List objects, optionally restricted to keys starting with ``prefix``."""
        ...

    async def begin_multipart(self, key: str, content_type: str) -> MultipartHandle:
        """Open a store-native multipart upload for ``key``."""
        ...

    async def upload_part(self, handle: MultipartHandle, part_number: int, data: bytes) -> PartToken:
        """Upload one part. Part numbers are 1-based."""
        ...

    async def complete_multipart(self, handle: MultipartHandle, parts: List[PartToken]) -> None:
        """Commit the multipart upload; the object becomes visible atomically."""
        ...
