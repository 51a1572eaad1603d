"""Cleanup sweeper for transient upload objects."""
import logging
from dataclasses import dataclass, field
from typing import Dict, List

from chunkstore.core.exceptions import CleanupFailedException
from chunkstore.core.patterns import run_batch
from chunkstore.core.service_protocols import ObjectStore
from chunkstore.services.session_registry import UploadSessionRegistry
from chunkstore.utils.keys import chunk_key, chunk_prefix, meta_key, parse_chunk_index
from chunkstore.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)


@dataclass
class CleanupReport:
    """Outcome of a sweep. ``failed`` maps key to error message."""
    upload_id: str
    deleted: List[str] = field(default_factory=list)
    failed: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def to_exception(self) -> CleanupFailedException:
        return CleanupFailedException(self.upload_id, self.failed)


class CleanupSweeper:
    """Deletes chunk objects and session metadata with a best-effort, full-sweep policy."""

    def __init__(self, store: ObjectStore, registry: UploadSessionRegistry, max_concurrency: int = 16):
        self.store = store
        self.registry = registry
        self.max_concurrency = max_concurrency

    async def _stray_chunk_keys(self, upload_id: str) -> List[str]:
        try:
            listed = await self.store.list(chunk_prefix(upload_id))
        except Exception as e:
            # The known keys are still swept
            logger.warning("Could not list chunks of %s during cleanup: %s", upload_id, e)
            return []
        return [
            obj.key for obj in listed
            if parse_chunk_index(upload_id, obj.key) is not None
        ]

    async def _sweep(self, upload_id: str, keys: List[str]) -> CleanupReport:
        report = CleanupReport(upload_id=upload_id)
        results = await run_batch(
            [self.store.delete(key) for key in keys],
            max_concurrency=self.max_concurrency,
            return_exceptions=True
        )
        for key, result in zip(keys, results):
            if isinstance(result, Exception):
                report.failed[key] = str(result) or type(result).__name__
            else:
                report.deleted.append(key)

        if report.failed:
            logger.warning(
                "Cleanup of %s left %d/%d object(s) behind: %s",
                upload_id, len(report.failed), len(keys), sorted(report.failed)
            )
        else:
            logger.info("Cleaned up %d transient object(s) for %s", len(keys), upload_id)
        return report

    async def cleanup(self, upload_id: str, chunk_count: int) -> CleanupReport:
        """
        Delete chunks ``0..chunk_count-1``, any stray chunks of the upload and its metadata.

        Every deletion is attempted even if others fail. Failures are reported,
        never raised.
        """
        keys = [chunk_key(upload_id, index) for index in range(max(chunk_count, 0))]
        known = set(keys)
        keys.extend(key for key in await self._stray_chunk_keys(upload_id) if key not in known)
        keys.append(meta_key(upload_id))
        return await self._sweep(upload_id, keys)

    async def abandon(self, upload_id: str) -> CleanupReport:
        """
        Explicitly abandon an in-progress upload and sweep everything it wrote.

        Raises:
            SessionNotFoundException: The upload id does not resolve.
        """
        await self.registry.get_session(upload_id)
        keys = await self._stray_chunk_keys(upload_id)
        keys.append(meta_key(upload_id))
        logger.info("Abandoning upload %s (%d chunk(s))", upload_id, len(keys) - 1)
        return await self._sweep(upload_id, keys)
