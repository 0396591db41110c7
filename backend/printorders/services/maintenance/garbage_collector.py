"""Garbage collection of abandoned uploads.

A file is garbage when it is temporary, unattached and older than the
retention window. Each file is collected in its own transaction: the row is
re-locked with the same predicate (SKIP LOCKED), so a file that a linker is
attaching right now, or that was attached since selection, is skipped rather
than deleted.
"""

from dataclasses import dataclass, field
from datetime import datetime, timedelta

import structlog

from printorders.config import settings
from printorders.db.row_lock import RowNotFoundError
from printorders.db.session import Database
from printorders.models.base import utc_now
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.storage.file_store import FileStore

logger = structlog.get_logger(__name__)


@dataclass
class FileCollectionError:
    file_id: int
    error: str


@dataclass
class GarbageCollectionReport:
    deleted_count: int = 0
    skipped_count: int = 0
    errors: list[FileCollectionError] = field(default_factory=list)


class GarbageCollector:
    """Deletes stale temporary uploads (blob, ModelData and row)."""

    def __init__(self, db: Database, store: FileStore, retention: timedelta | None = None):
        self.db = db
        self.store = store
        self.retention = retention or timedelta(seconds=settings.temp_file_retention_seconds)

    async def run(self, retention: timedelta | None = None, *, now: datetime | None = None) -> GarbageCollectionReport:
        """Collect every file that was temporary and unattached before `now - retention`.

        Never touches non-temporary files. A failure on one file is logged and
        reported; the sweep continues with the next file.
        """
        cutoff = (now or utc_now()) - (retention or self.retention)
        report = GarbageCollectionReport()

        async with self.db.session() as session:
            file_ids = await UploadedFileRepository(session).stale_file_ids(cutoff)

        logger.info("Garbage collection started", candidates=len(file_ids), cutoff=cutoff.isoformat())

        for file_id in file_ids:
            try:
                if await self._collect(file_id, cutoff):
                    report.deleted_count += 1
                else:
                    report.skipped_count += 1
            except Exception as e:
                logger.error("Failed to collect file", file_id=file_id, error=str(e), exc_info=True)
                report.errors.append(FileCollectionError(file_id=file_id, error=str(e)))

        logger.info(
            "Garbage collection finished",
            deleted=report.deleted_count,
            skipped=report.skipped_count,
            errors=len(report.errors),
        )
        return report

    async def _collect(self, file_id: int, cutoff: datetime) -> bool:
        """Delete one file. False if it no longer qualifies or is locked by a linker."""
        async with self.db.transaction() as session:
            files = UploadedFileRepository(session)
            try:
                async with files.stale_file_locker(file_id, cutoff).acquire() as lock:
                    file = lock.record
                    assert file is not None

                    await self.store.delete(file.path)
                    if file.thumbnail_path:
                        await self.store.delete(file.thumbnail_path)

                    await files.delete_model_data_if_unattached(file_id)
                    deleted = await files.delete_if_unattached(file_id)
            except RowNotFoundError:
                logger.debug("File no longer collectable, skipping", file_id=file_id)
                return False

        if deleted:
            logger.info("Collected abandoned upload", file_id=file_id, path=file.path)
        return deleted
