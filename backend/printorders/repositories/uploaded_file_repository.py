"""Uploaded file data access, including the conditional-update primitives used for linking."""

from datetime import datetime
from typing import NamedTuple

import structlog
from sqlalchemy import delete, exists, func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select

from printorders.db.row_lock import RowLocker
from printorders.models.enums import FileType
from printorders.models.order import CustomOptions, OrderItem
from printorders.models.uploaded_file import ModelData, UploadedFile

logger = structlog.get_logger(__name__)


class FileLinkState(NamedTuple):
    """Columns of an uploaded file that the linking protocol decides on."""

    order_id: int | None
    temporary: bool
    file_url: str


class UploadedFileRepository:
    """Queries and conditional writes over UploadedFile and ModelData.

    Never commits: the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, file_id: int, *, refresh: bool = False) -> UploadedFile | None:
        statement = (
            select(UploadedFile)
            .options(selectinload(UploadedFile.model_data))  # type: ignore[arg-type]
            .where(UploadedFile.id == file_id)
        )
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    def locker(self, file_id: int) -> RowLocker[UploadedFile]:
        return RowLocker(self.session, UploadedFile, UploadedFile.id == file_id)

    async def get_link_state(self, file_id: int) -> FileLinkState | None:
        """Fresh read of the link columns, bypassing the identity map. None if the row is gone."""
        statement = select(UploadedFile.order_id, UploadedFile.temporary, UploadedFile.file_url).where(
            UploadedFile.id == file_id
        )
        row = (await self.session.execute(statement)).first()
        if row is None:
            return None
        return FileLinkState(order_id=row.order_id, temporary=row.temporary, file_url=row.file_url)

    async def get_order_id(self, file_id: int) -> int | None:
        state = await self.get_link_state(file_id)
        return state.order_id if state else None

    async def link_if_unattached(self, file_id: int, order_id: int) -> bool:
        """First-writer-wins attach. True if this call moved order_id from NULL to `order_id`."""
        statement = (
            update(UploadedFile)
            .where(UploadedFile.id == file_id, UploadedFile.order_id.is_(None))  # type: ignore[union-attr]
            .values(order_id=order_id, temporary=False, processing_complete=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def assign_order(self, file_id: int, order_id: int) -> bool:
        """Unconditional attach, for explicit admin reassignment only."""
        statement = (
            update(UploadedFile)
            .where(UploadedFile.id == file_id)
            .values(order_id=order_id, temporary=False, processing_complete=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def add(self, uploaded_file: UploadedFile, model_data: ModelData | None = None) -> UploadedFile:
        self.session.add(uploaded_file)
        await self.session.flush()
        if model_data is not None:
            assert uploaded_file.id is not None
            model_data.file_id = uploaded_file.id
            self.session.add(model_data)
            await self.session.flush()
        return uploaded_file

    async def delete(self, file_id: int) -> bool:
        result = await self.session.execute(
            delete(UploadedFile).where(UploadedFile.id == file_id).execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def list_files(
        self,
        *,
        user_id: int | None = None,
        order_id: int | None = None,
        file_type: FileType | None = None,
        temporary: bool | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[UploadedFile], int]:
        """Filtered listing, newest first. Returns (files, total_count)."""
        filters = []
        if user_id is not None:
            filters.append(UploadedFile.user_id == user_id)
        if order_id is not None:
            filters.append(UploadedFile.order_id == order_id)
        if file_type is not None:
            filters.append(UploadedFile.file_type == file_type)
        if temporary is not None:
            filters.append(UploadedFile.temporary == temporary)

        statement = (
            select(UploadedFile)
            .options(selectinload(UploadedFile.model_data))  # type: ignore[arg-type]
            .where(*filters)
            .order_by(UploadedFile.created_at.desc(), UploadedFile.id.desc())  # type: ignore[attr-defined, union-attr]
            .offset(skip)
            .limit(limit)
        )
        files = list((await self.session.execute(statement)).scalars().all())

        count_statement = select(func.count()).select_from(UploadedFile).where(*filters)
        total = (await self.session.execute(count_statement)).scalar() or 0
        return files, total

    async def files_for_order(self, order_id: int) -> list[UploadedFile]:
        """Files attached to the order plus files its custom items reference."""
        referenced = (
            select(CustomOptions.uploaded_file_id)
            .join(OrderItem, OrderItem.id == CustomOptions.order_item_id)  # type: ignore[arg-type]
            .where(
                OrderItem.order_id == order_id,
                OrderItem.product_id.is_(None),  # type: ignore[union-attr]
                CustomOptions.uploaded_file_id.is_not(None),  # type: ignore[union-attr]
            )
        )
        statement = (
            select(UploadedFile)
            .options(selectinload(UploadedFile.model_data))  # type: ignore[arg-type]
            .where((UploadedFile.order_id == order_id) | UploadedFile.id.in_(referenced))  # type: ignore[union-attr]
            .order_by(UploadedFile.id)
        )
        return list((await self.session.execute(statement)).scalars().all())

    # Garbage collection

    @staticmethod
    def _stale_predicates(cutoff: datetime) -> tuple:  # type: ignore[type-arg]
        return (
            UploadedFile.temporary.is_(True),  # type: ignore[attr-defined]
            UploadedFile.order_id.is_(None),  # type: ignore[union-attr]
            UploadedFile.created_at < cutoff,
        )

    async def stale_file_ids(self, cutoff: datetime) -> list[int]:
        """Ids of temporary, unattached files created before `cutoff`."""
        statement = select(UploadedFile.id).where(*self._stale_predicates(cutoff)).order_by(UploadedFile.id)
        return [row[0] for row in (await self.session.execute(statement)).all()]

    def stale_file_locker(self, file_id: int, cutoff: datetime) -> RowLocker[UploadedFile]:
        """Lock on one stale file that skips the row if a linker currently holds it."""
        return RowLocker(
            self.session,
            UploadedFile,
            UploadedFile.id == file_id,
            *self._stale_predicates(cutoff),
            skip_locked=True,
        )

    async def delete_model_data_if_unattached(self, file_id: int) -> int:
        unattached = exists().where(UploadedFile.id == file_id, UploadedFile.order_id.is_(None))  # type: ignore[union-attr]
        result = await self.session.execute(
            delete(ModelData).where(ModelData.file_id == file_id, unattached).execution_options(synchronize_session=False)
        )
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def delete_if_unattached(self, file_id: int) -> bool:
        result = await self.session.execute(
            delete(UploadedFile)
            .where(UploadedFile.id == file_id, UploadedFile.order_id.is_(None))  # type: ignore[union-attr]
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1  # type: ignore[attr-defined]

    # Reconciliation

    @staticmethod
    def _on_order_without_custom_items():  # type: ignore[no-untyped-def]
        has_items = exists().where(OrderItem.order_id == UploadedFile.order_id)
        has_custom_items = exists().where(
            OrderItem.order_id == UploadedFile.order_id,
            OrderItem.product_id.is_(None),  # type: ignore[union-attr]
        )
        return (UploadedFile.order_id.is_not(None), has_items, ~has_custom_items)  # type: ignore[union-attr]

    async def misattached_files(self, after_id: int, limit: int) -> list[tuple[int, int]]:
        """(file_id, order_id) of files attached to orders that have items but no custom item."""
        statement = (
            select(UploadedFile.id, UploadedFile.order_id)
            .where(UploadedFile.id > after_id, *self._on_order_without_custom_items())
            .order_by(UploadedFile.id)
            .limit(limit)
        )
        return [(row.id, row.order_id) for row in (await self.session.execute(statement)).all()]

    async def referencing_custom_order_id(self, file_id: int, exclude_order_id: int) -> int | None:
        """Order of a custom item (other than on `exclude_order_id`) whose options reference the file."""
        statement = (
            select(OrderItem.order_id)
            .join(CustomOptions, CustomOptions.order_item_id == OrderItem.id)  # type: ignore[arg-type]
            .where(
                CustomOptions.uploaded_file_id == file_id,
                OrderItem.product_id.is_(None),  # type: ignore[union-attr]
                OrderItem.order_id != exclude_order_id,
            )
            .order_by(OrderItem.id)
            .limit(1)
        )
        return (await self.session.execute(statement)).scalar()

    async def repoint_misattached(self, file_id: int, from_order_id: int, to_order_id: int) -> bool:
        """Move a misattached file, re-checking it is still on the custom-less order."""
        statement = (
            update(UploadedFile)
            .where(
                UploadedFile.id == file_id,
                UploadedFile.order_id == from_order_id,
                *self._on_order_without_custom_items(),
            )
            .values(order_id=to_order_id, temporary=False)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1  # type: ignore[attr-defined]

    async def detach_misattached(self, file_id: int, from_order_id: int) -> bool:
        """Release a misattached file back to the temporary pool so GC can collect it."""
        statement = (
            update(UploadedFile)
            .where(
                UploadedFile.id == file_id,
                UploadedFile.order_id == from_order_id,
                *self._on_order_without_custom_items(),
            )
            .values(order_id=None, temporary=True)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1  # type: ignore[attr-defined]
