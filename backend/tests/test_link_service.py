"""Standalone linking, read-back verification and admin reassignment."""

import pytest
from sqlmodel import select

from conftest import MakeFile, catalog_item, custom_item, order_input
from printorders.db.session import Database
from printorders.db.verified_write import WriteNotVerified, verify_write
from printorders.models.order import CustomOptions
from printorders.models.uploaded_file import UploadedFile
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.files.exceptions import CatalogItemAttachment, UploadedFileNotFound
from printorders.services.files.link_service import FileLinkService, LinkOutcome
from printorders.services.orders.exceptions import OrderItemNotFound, OrderNotFound
from printorders.services.orders.order_creation_service import OrderCreationService


async def _file(db: Database, file_id: int) -> UploadedFile:
    async with db.session() as session:
        uploaded = await session.get(UploadedFile, file_id)
        assert uploaded is not None
        return uploaded


async def _options_for_file(db: Database, file_id: int) -> list[CustomOptions]:
    async with db.session() as session:
        result = await session.execute(select(CustomOptions).where(CustomOptions.uploaded_file_id == file_id))
        return list(result.scalars().all())


async def test_link_is_idempotent(db: Database, creator: OrderCreationService, make_file: MakeFile) -> None:
    created = await creator.create_order(order_input(custom_item()))
    order_id = created.order.id
    item_id = created.order.items[0].id
    assert order_id is not None and item_id is not None
    file_id = await make_file()

    async with db.session() as session:
        first = await FileLinkService(session).link_file(file_id, order_id, item_id)
    after_first = await _file(db, file_id)

    async with db.session() as session:
        second = await FileLinkService(session).link_file(file_id, order_id, item_id)
    after_second = await _file(db, file_id)

    assert first.outcome == LinkOutcome.LINKED
    assert second.outcome == LinkOutcome.ALREADY_LINKED
    assert second.verified is True
    assert (after_first.order_id, after_first.temporary) == (after_second.order_id, after_second.temporary)
    assert after_second.order_id == order_id

    [options] = await _options_for_file(db, file_id)
    assert options.order_item_id == item_id
    assert options.file_url == after_second.file_url


async def test_link_rejects_catalog_item(
    db: Database, creator: OrderCreationService, make_file: MakeFile, product_id: int
) -> None:
    created = await creator.create_order(order_input(catalog_item(product_id)))
    file_id = await make_file()

    async with db.session() as session:
        with pytest.raises(CatalogItemAttachment):
            await FileLinkService(session).link_file(file_id, created.order.id, created.order.items[0].id)  # type: ignore[arg-type]

    assert (await _file(db, file_id)).order_id is None


async def test_link_rejects_item_from_another_order(
    db: Database, creator: OrderCreationService, make_file: MakeFile
) -> None:
    order_a = (await creator.create_order(order_input(custom_item()))).order
    order_b = (await creator.create_order(order_input(custom_item()))).order
    file_id = await make_file()

    async with db.session() as session:
        with pytest.raises(OrderItemNotFound):
            await FileLinkService(session).link_file(file_id, order_a.id, order_b.items[0].id)  # type: ignore[arg-type]


async def test_unverified_link_is_reported_not_raised(
    db: Database, creator: OrderCreationService, make_file: MakeFile, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def never_visible(self: UploadedFileRepository, file_id: int) -> int | None:
        return None

    monkeypatch.setattr(UploadedFileRepository, "get_order_id", never_visible)
    file_id = await make_file()

    result = await creator.create_order(order_input(custom_item(file_id)))

    [link] = result.link_results
    assert link.outcome == LinkOutcome.LINKED
    assert link.verified is False
    assert result.unlinked == [link]
    assert (await _file(db, file_id)).order_id == result.order.id


async def test_verify_write_retries_once() -> None:
    reads = iter([None, 5])
    writes: list[int] = []

    async def write() -> None:
        writes.append(1)

    async def read() -> int | None:
        return next(reads)

    assert await verify_write(write, read, lambda v: v == 5) == 5
    assert len(writes) == 1


async def test_verify_write_gives_up_after_retries() -> None:
    writes: list[int] = []

    async def write() -> None:
        writes.append(1)

    async def read() -> int:
        return 3

    with pytest.raises(WriteNotVerified) as exc_info:
        await verify_write(write, read, lambda v: v == 5, retries=1)

    assert exc_info.value.actual == 3
    assert exc_info.value.attempts == 2
    assert len(writes) == 1


async def test_reassign_moves_file_and_clears_old_reference(
    db: Database, creator: OrderCreationService, make_file: MakeFile
) -> None:
    file_id = await make_file()
    order_a = (await creator.create_order(order_input(custom_item(file_id)))).order
    order_b = (await creator.create_order(order_input(custom_item()))).order

    async with db.session() as session:
        moved = await FileLinkService(session).reassign_file(file_id, order_b.id)  # type: ignore[arg-type]

    assert moved.order_id == order_b.id
    assert moved.temporary is False
    assert (await _file(db, file_id)).order_id == order_b.id

    [options] = await _options_for_file(db, file_id)
    assert options.order_item_id == order_b.items[0].id
    assert options.order_item_id != order_a.items[0].id


async def test_reassign_unknown_file_or_order(
    db: Database, creator: OrderCreationService, make_file: MakeFile
) -> None:
    order = (await creator.create_order(order_input(custom_item()))).order
    file_id = await make_file()

    async with db.session() as session:
        with pytest.raises(UploadedFileNotFound):
            await FileLinkService(session).reassign_file(987654, order.id)  # type: ignore[arg-type]

    async with db.session() as session:
        with pytest.raises(OrderNotFound):
            await FileLinkService(session).reassign_file(file_id, 987654)

    assert (await _file(db, file_id)).order_id is None


async def test_associate_files_skips_unknown_ids(
    db: Database, creator: OrderCreationService, make_file: MakeFile
) -> None:
    order = (await creator.create_order(order_input(custom_item()))).order
    file_ids = [await make_file(), await make_file()]

    async with db.session() as session:
        files = await FileLinkService(session).associate_files(order.id, [file_ids[0], 555555, file_ids[1]])  # type: ignore[arg-type]

    assert [f.id for f in files] == file_ids
    for file_id in file_ids:
        uploaded = await _file(db, file_id)
        assert uploaded.order_id == order.id
        assert uploaded.temporary is False
