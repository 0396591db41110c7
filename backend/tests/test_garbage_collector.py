"""Garbage collection of abandoned uploads."""

from datetime import datetime, timedelta

import pytest
from sqlalchemy import func
from sqlmodel import select

from conftest import NOW, FakeFileStore, MakeFile, custom_item, order_input
from printorders.db.session import Database
from printorders.models.uploaded_file import ModelData, UploadedFile
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.maintenance.garbage_collector import GarbageCollector
from printorders.services.orders.order_creation_service import OrderCreationService

RETENTION = timedelta(hours=1)


async def _get(db: Database, file_id: int) -> UploadedFile | None:
    async with db.session() as session:
        return await session.get(UploadedFile, file_id)


async def test_collects_stale_temporary_files_only(db: Database, store: FakeFileStore, make_file: MakeFile) -> None:
    stale = await make_file(with_model_data=True)
    fresh = await make_file(created_at=NOW + timedelta(minutes=40))
    permanent = await make_file(temporary=False)

    report = await GarbageCollector(db, store, RETENTION).run(now=NOW + timedelta(minutes=70))

    assert report.deleted_count == 1
    assert report.errors == []
    assert await _get(db, stale) is None
    assert await _get(db, fresh) is not None
    assert await _get(db, permanent) is not None

    async with db.session() as session:
        remaining = (await session.execute(select(func.count()).select_from(ModelData))).scalar_one()
    assert remaining == 0
    assert len(store.deleted) == 1


async def test_linked_file_survives_past_retention(
    db: Database, store: FakeFileStore, make_file: MakeFile, creator: OrderCreationService
) -> None:
    """Upload at T, order at T+5min, sweep at T+70min: the linked file stays."""
    file_id = await make_file()
    result = await creator.create_order(order_input(custom_item(file_id)))

    report = await GarbageCollector(db, store, RETENTION).run(now=NOW + timedelta(minutes=70))

    assert report.deleted_count == 0
    uploaded = await _get(db, file_id)
    assert uploaded is not None
    assert uploaded.order_id == result.order.id
    assert uploaded.path in store.blobs


async def test_retention_override(db: Database, store: FakeFileStore, make_file: MakeFile) -> None:
    file_id = await make_file()
    collector = GarbageCollector(db, store, RETENTION)

    assert (await collector.run(now=NOW + timedelta(minutes=10))).deleted_count == 0
    assert (await collector.run(timedelta(minutes=5), now=NOW + timedelta(minutes=10))).deleted_count == 1
    assert await _get(db, file_id) is None


async def test_thumbnail_blob_is_removed(db: Database, store: FakeFileStore, make_file: MakeFile) -> None:
    file_id = await make_file(thumbnail=True)
    uploaded = await _get(db, file_id)
    assert uploaded is not None and uploaded.thumbnail_path is not None

    await GarbageCollector(db, store, RETENTION).run(now=NOW + timedelta(hours=2))

    assert uploaded.path not in store.blobs
    assert uploaded.thumbnail_path not in store.blobs


async def test_storage_failure_is_isolated_per_file(db: Database, store: FakeFileStore, make_file: MakeFile) -> None:
    broken = await make_file()
    healthy = await make_file()
    broken_file = await _get(db, broken)
    assert broken_file is not None
    store.fail_on_delete.add(broken_file.path)

    report = await GarbageCollector(db, store, RETENTION).run(now=NOW + timedelta(hours=2))

    assert report.deleted_count == 1
    assert [e.file_id for e in report.errors] == [broken]
    assert await _get(db, broken) is not None
    assert await _get(db, healthy) is None


async def test_second_sweep_finds_nothing(db: Database, store: FakeFileStore, make_file: MakeFile) -> None:
    await make_file()
    collector = GarbageCollector(db, store, RETENTION)

    first = await collector.run(now=NOW + timedelta(hours=2))
    second = await collector.run(now=NOW + timedelta(hours=2))

    assert (first.deleted_count, second.deleted_count, second.skipped_count) == (1, 0, 0)


async def test_file_linked_after_selection_is_skipped(
    db: Database,
    store: FakeFileStore,
    make_file: MakeFile,
    creator: OrderCreationService,
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    """A checkout that links the file between selection and delete wins."""
    file_id = await make_file()
    select_candidates = UploadedFileRepository.stale_file_ids
    linked_orders: list[int | None] = []

    async def select_then_checkout(self: UploadedFileRepository, cutoff: datetime) -> list[int]:
        candidates = await select_candidates(self, cutoff)
        result = await creator.create_order(order_input(custom_item(file_id)))
        linked_orders.append(result.order.id)
        return candidates

    monkeypatch.setattr(UploadedFileRepository, "stale_file_ids", select_then_checkout)

    report = await GarbageCollector(db, store, RETENTION).run(now=NOW + timedelta(minutes=70))

    assert (report.deleted_count, report.skipped_count, report.errors) == (0, 1, [])
    uploaded = await _get(db, file_id)
    assert uploaded is not None
    assert uploaded.order_id == linked_orders[0]
    assert uploaded.path in store.blobs
    assert store.deleted == []
