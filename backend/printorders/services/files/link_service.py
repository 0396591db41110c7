"""File-to-order linking protocol.

An uploaded file is attached to at most one order, exactly once:

    UPDATE uploaded_files SET order_id = :o, temporary = false, processing_complete = true
    WHERE id = :f AND order_id IS NULL

The affected-row count decides the outcome. Concurrent linkers of the same
file serialize on the row; the first commit wins and every other caller sees
zero affected rows and gets a `conflict` (or `already-linked` when it was the
same order). Nothing here takes an in-process lock.

Linking outcomes are reported, not raised: a conflict or a missing file never
aborts the surrounding order transaction. Genuine database errors propagate.
"""

from dataclasses import dataclass
from enum import StrEnum

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from printorders.db.row_lock import RowNotFoundError
from printorders.db.verified_write import WriteNotVerified, verify_write
from printorders.models.uploaded_file import UploadedFile
from printorders.repositories.order_repository import OrderRepository
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.exceptions import LinkVerificationFailed
from printorders.services.files.exceptions import CatalogItemAttachment, UploadedFileNotFound
from printorders.services.orders.exceptions import OrderItemNotFound, OrderNotFound

logger = structlog.get_logger(__name__)


class LinkOutcome(StrEnum):
    LINKED = "linked"
    ALREADY_LINKED = "already-linked"
    CONFLICT = "conflict"
    NOT_FOUND = "not-found"


@dataclass
class LinkResult:
    """Result of one link attempt.

    `current_order_id` is the order the file belongs to after the attempt
    (the other order on conflict, None when the file does not exist).
    `verified` is False only when the read-back never showed the link.
    """

    outcome: LinkOutcome
    file_id: int
    order_id: int
    current_order_id: int | None = None
    verified: bool = True

    @property
    def attached(self) -> bool:
        return self.outcome in (LinkOutcome.LINKED, LinkOutcome.ALREADY_LINKED)


class FileLinkService:
    """Attach uploaded files to orders.

    `attach` runs inside the caller's transaction (order creation).
    `link_file`, `reassign_file` and `associate_files` are standalone
    operations and commit their own transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session
        self.files = UploadedFileRepository(session)
        self.orders = OrderRepository(session)

    async def attach(self, file_id: int, order_id: int, order_item_id: int) -> LinkResult:
        """Idempotently attach a file to an order and point the item's custom options at it."""
        linked = await self.files.link_if_unattached(file_id, order_id)
        state = await self.files.get_link_state(file_id)

        if state is None:
            logger.warning(
                "Data integrity: order references a file that does not exist",
                file_id=file_id,
                order_id=order_id,
                order_item_id=order_item_id,
            )
            return LinkResult(outcome=LinkOutcome.NOT_FOUND, file_id=file_id, order_id=order_id)

        if linked:
            outcome = LinkOutcome.LINKED
        elif state.order_id == order_id:
            outcome = LinkOutcome.ALREADY_LINKED
        else:
            logger.warning(
                "File already linked to another order, leaving it untouched",
                file_id=file_id,
                order_id=order_id,
                current_order_id=state.order_id,
            )
            return LinkResult(
                outcome=LinkOutcome.CONFLICT,
                file_id=file_id,
                order_id=order_id,
                current_order_id=state.order_id,
            )

        await self.orders.upsert_custom_options_file(order_item_id, file_id, state.file_url)

        result = LinkResult(outcome=outcome, file_id=file_id, order_id=order_id, current_order_id=order_id)
        try:
            await verify_write(
                write=lambda: self.files.link_if_unattached(file_id, order_id),
                read=lambda: self.files.get_order_id(file_id),
                matches=lambda current: current == order_id,
            )
        except WriteNotVerified as e:
            error = LinkVerificationFailed(file_id=file_id, expected=order_id, actual=e.actual)  # type: ignore[arg-type]
            logger.error("File link verification failed", file_id=file_id, order_id=order_id, error=str(error))
            result.verified = False
            result.current_order_id = e.actual  # type: ignore[assignment]

        logger.info("File linked to order", file_id=file_id, order_id=order_id, outcome=outcome.value)
        return result

    async def link_file(self, file_id: int, order_id: int, order_item_id: int) -> LinkResult:
        """Standalone link of a file to a custom item of an existing order."""
        item = await self.orders.get_item(order_id, order_item_id)
        if item is None:
            raise OrderItemNotFound(f"Order item {order_item_id} not found in order {order_id}")
        if not item.is_custom:
            raise CatalogItemAttachment(f"Order item {order_item_id} is a catalog item")

        result = await self.attach(file_id, order_id, order_item_id)
        await self.session.commit()
        return result

    async def _force_attach(self, file_id: int, order_id: int) -> UploadedFile | None:
        """Admin override: move the file to `order_id` whatever it is linked to now."""
        try:
            async with self.files.locker(file_id).acquire() as lock:
                file = lock.record
                assert file is not None
                previous_order_id = file.order_id
                await lock.update_record(order_id=order_id, temporary=False, processing_complete=True)
        except RowNotFoundError:
            return None

        cleared = await self.orders.clear_file_references(file_id, except_order_id=order_id)

        item = await self.orders.first_custom_item(order_id)
        if item is not None:
            assert item.id is not None
            await self.orders.upsert_custom_options_file(item.id, file_id, file.file_url)

        try:
            await verify_write(
                write=lambda: self.files.assign_order(file_id, order_id),
                read=lambda: self.files.get_order_id(file_id),
                matches=lambda current: current == order_id,
            )
        except WriteNotVerified as e:
            raise LinkVerificationFailed(file_id=file_id, expected=order_id, actual=e.actual) from e  # type: ignore[arg-type]

        logger.warning(
            "Admin override: file reassigned",
            file_id=file_id,
            order_id=order_id,
            previous_order_id=previous_order_id,
            cleared_references=cleared,
            order_item_id=item.id if item else None,
        )
        return file

    async def reassign_file(self, file_id: int, order_id: int) -> UploadedFile:
        """Explicitly move a file to another order (admin only)."""
        if await self.orders.get(order_id) is None:
            raise OrderNotFound(f"Order {order_id} not found")

        file = await self._force_attach(file_id, order_id)
        if file is None:
            raise UploadedFileNotFound(f"Uploaded file {file_id} not found")

        await self.session.commit()
        refreshed = await self.files.get(file_id, refresh=True)
        assert refreshed is not None
        return refreshed

    async def associate_files(self, order_id: int, file_ids: list[int]) -> list[UploadedFile]:
        """Attach several files to one order in a single transaction (admin only).

        Unknown file ids are skipped.
        """
        if await self.orders.get(order_id) is None:
            raise OrderNotFound(f"Order {order_id} not found")

        associated_ids: list[int] = []
        for file_id in dict.fromkeys(file_ids):
            file = await self._force_attach(file_id, order_id)
            if file is None:
                logger.warning("Skipping unknown file", file_id=file_id, order_id=order_id)
                continue
            associated_ids.append(file_id)

        await self.session.commit()

        files = []
        for file_id in associated_ids:
            refreshed = await self.files.get(file_id, refresh=True)
            if refreshed is not None:
                files.append(refreshed)
        return files
