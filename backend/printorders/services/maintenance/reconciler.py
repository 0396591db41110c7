"""Audit-and-repair pass over order/file associations.

Fixes two classes of inconsistency left behind by older code paths:

- Class A: custom options of a *catalog* item that reference an uploaded file.
  The reference (and its cached URL) is cleared on that row only.
- Class B: a file attached to an order that has items but no custom item,
  so nothing in the order can consume it. If a custom item elsewhere
  references the file, the file is moved to that item's order; otherwise it
  is detached and marked temporary, and the next GC pass collects it.

Rows are scanned in id order in batches, one transaction per batch. Every
repair is a conditional update that re-checks the state it was selected on,
so running concurrently with order creation, GC or another reconciler is
safe and a second run finds nothing to do.
"""

from dataclasses import dataclass

import structlog

from printorders.config import settings
from printorders.db.session import Database
from printorders.repositories.order_repository import OrderRepository
from printorders.repositories.uploaded_file_repository import UploadedFileRepository

logger = structlog.get_logger(__name__)


@dataclass
class ReconciliationReport:
    class_a_fixed: int = 0
    class_b_fixed: int = 0

    @property
    def total_fixed(self) -> int:
        return self.class_a_fixed + self.class_b_fixed


class Reconciler:
    def __init__(self, db: Database, batch_size: int | None = None):
        self.db = db
        self.batch_size = batch_size or settings.reconcile_batch_size

    async def run(self) -> ReconciliationReport:
        report = ReconciliationReport()
        report.class_a_fixed = await self._fix_catalog_attachments()
        report.class_b_fixed = await self._fix_misattached_files()
        logger.info(
            "Reconciliation finished",
            class_a_fixed=report.class_a_fixed,
            class_b_fixed=report.class_b_fixed,
        )
        return report

    async def _fix_catalog_attachments(self) -> int:
        fixed = 0
        last_id = 0
        while True:
            async with self.db.transaction() as session:
                orders = OrderRepository(session)
                batch = await orders.catalog_options_with_file(after_id=last_id, limit=self.batch_size)
                for options_id, file_id in batch:
                    if await orders.clear_catalog_options_file(options_id, file_id):
                        fixed += 1
                        logger.warning(
                            "Cleared file reference from catalog item options",
                            custom_options_id=options_id,
                            file_id=file_id,
                        )
            if not batch:
                return fixed
            last_id = batch[-1][0]

    async def _fix_misattached_files(self) -> int:
        fixed = 0
        last_id = 0
        while True:
            async with self.db.transaction() as session:
                files = UploadedFileRepository(session)
                batch = await files.misattached_files(after_id=last_id, limit=self.batch_size)
                for file_id, order_id in batch:
                    target_order_id = await files.referencing_custom_order_id(file_id, exclude_order_id=order_id)
                    if target_order_id is not None:
                        if await files.repoint_misattached(file_id, order_id, target_order_id):
                            fixed += 1
                            logger.warning(
                                "Moved file to the order whose custom item references it",
                                file_id=file_id,
                                from_order_id=order_id,
                                to_order_id=target_order_id,
                            )
                    elif await files.detach_misattached(file_id, order_id):
                        fixed += 1
                        logger.warning(
                            "Detached file from order without custom items",
                            file_id=file_id,
                            from_order_id=order_id,
                        )
            if not batch:
                return fixed
            last_id = batch[-1][0]
