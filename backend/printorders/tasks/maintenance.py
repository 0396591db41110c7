"""Maintenance background tasks: upload garbage collection and reconciliation.

The schedule that enqueues these actors lives outside this package (cron,
dramatiq-crontab, ...). A Redis lock per sweep kind keeps two workers from
running the same sweep at once; GC and reconciliation may overlap.
"""

import asyncio
from datetime import timedelta

import dramatiq
import structlog

from printorders.db.session import Database
from printorders.services.maintenance.garbage_collector import GarbageCollectionReport, GarbageCollector
from printorders.services.maintenance.reconciler import ReconciliationReport, Reconciler
from printorders.services.storage.storage_service import S3FileStore
from printorders.utils.redis_lock import RedisLock

logger = structlog.get_logger(__name__)

GC_LOCK_KEY = "maintenance:garbage-collection"
RECONCILE_LOCK_KEY = "maintenance:reconciliation"
SWEEP_LOCK_TTL = 30 * 60  # seconds


async def run_garbage_collection(retention_seconds: int | None = None) -> GarbageCollectionReport:
    """One GC sweep against the configured database and S3 bucket."""
    db = Database.from_settings()
    try:
        collector = GarbageCollector(db, S3FileStore())
        retention = timedelta(seconds=retention_seconds) if retention_seconds is not None else None
        return await collector.run(retention)
    finally:
        await db.dispose()


async def run_reconciliation() -> ReconciliationReport:
    """One reconciliation pass against the configured database."""
    db = Database.from_settings()
    try:
        return await Reconciler(db).run()
    finally:
        await db.dispose()


@dramatiq.actor(max_retries=0, time_limit=SWEEP_LOCK_TTL * 1000)
def collect_abandoned_uploads(retention_seconds: int | None = None) -> None:
    """Background task deleting temporary uploads never attached to an order."""
    with RedisLock(GC_LOCK_KEY, ttl=SWEEP_LOCK_TTL) as acquired:
        if not acquired:
            logger.debug("Garbage collection already running, skipping")
            return
        report = asyncio.run(run_garbage_collection(retention_seconds))
        if report.errors:
            logger.error("Garbage collection finished with errors", errors=len(report.errors))


@dramatiq.actor(max_retries=0, time_limit=SWEEP_LOCK_TTL * 1000)
def reconcile_order_files() -> None:
    """Background task repairing file/order association inconsistencies."""
    with RedisLock(RECONCILE_LOCK_KEY, ttl=SWEEP_LOCK_TTL) as acquired:
        if not acquired:
            logger.debug("Reconciliation already running, skipping")
            return
        asyncio.run(run_reconciliation())
