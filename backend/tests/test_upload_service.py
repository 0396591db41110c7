"""Upload registration, classification and explicit deletion."""

import re

import pytest
from sqlalchemy.exc import IntegrityError

from conftest import FakeFileStore, custom_item, order_input
from printorders.db.session import Database
from printorders.models.enums import FileStatus, FileType
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.files.exceptions import UploadedFileNotFound
from printorders.services.files.schemas import ModelDataInput
from printorders.services.files.upload_service import UploadService, classify_upload
from printorders.services.orders.order_creation_service import OrderCreationService
from printorders.services.orders.order_service import OrderService


@pytest.mark.parametrize(
    ("name", "mimetype", "expected"),
    [
        ("photo.JPG", "image/jpeg", FileType.IMAGE),
        ("logo.svg", "image/svg+xml", FileType.IMAGE),
        ("bracket.STL", "application/octet-stream", FileType.MODEL_3D),
        ("vase.3mf", "application/vnd.ms-package.3dmanufacturing-3dmodel+xml", FileType.MODEL_3D),
        ("mesh.obj", "text/plain", FileType.MODEL_3D),
        ("notes.pdf", "application/pdf", FileType.OTHER),
    ],
)
def test_classify_upload(name: str, mimetype: str, expected: FileType) -> None:
    assert classify_upload(name, mimetype) == expected


async def test_register_model_upload(db: Database, store: FakeFileStore) -> None:
    async with db.session() as session:
        uploaded = await UploadService(session, store).register_upload(
            b"solid bracket",
            "Bracket.STL",
            "application/octet-stream",
            user_id=3,
            model_data=ModelDataInput(volume=12.0, weight=14.5, x=10, y=20, z=5, printTime=2.5),
            preview=b"png",
        )

    assert re.fullmatch(r"uploads/\d{4}/\d{2}/[0-9a-f]{32}\.stl", uploaded.path)
    assert store.blobs[uploaded.path] == b"solid bracket"
    assert uploaded.file_url == store.public_url(uploaded.path)
    assert uploaded.file_type == FileType.MODEL_3D
    assert uploaded.status == FileStatus.PROCESSED
    assert uploaded.temporary is True
    assert uploaded.order_id is None
    assert uploaded.processing_complete is True
    assert uploaded.size == len(b"solid bracket")
    assert uploaded.thumbnail_path is not None and uploaded.thumbnail_path in store.blobs
    assert uploaded.model_data is not None
    assert uploaded.model_data.print_time == 2.5


async def test_register_image_upload_uses_file_as_thumbnail(db: Database, store: FakeFileStore) -> None:
    async with db.session() as session:
        uploaded = await UploadService(session, store).register_upload(
            b"\x89PNG",
            "sign.png",
            "image/png",
            model_data=ModelDataInput(volume=1.0),
        )

    assert uploaded.file_type == FileType.IMAGE
    assert uploaded.thumbnail_url == uploaded.file_url
    assert uploaded.processing_complete is False
    assert uploaded.model_data is None


async def test_failed_insert_removes_blob(
    db: Database, store: FakeFileStore, monkeypatch: pytest.MonkeyPatch
) -> None:
    async def failing_add(self: UploadedFileRepository, *args: object) -> None:
        raise IntegrityError("INSERT INTO uploaded_files", {}, Exception("boom"))

    monkeypatch.setattr(UploadedFileRepository, "add", failing_add)

    async with db.session() as session:
        with pytest.raises(IntegrityError):
            await UploadService(session, store).register_upload(b"data", "part.stl", "model/stl")

    assert store.blobs == {}


async def test_delete_file_removes_blob_and_reference(
    db: Database, store: FakeFileStore, creator: OrderCreationService
) -> None:
    async with db.session() as session:
        uploaded = await UploadService(session, store).register_upload(b"solid", "part.stl", "model/stl")
    assert uploaded.id is not None
    order = (await creator.create_order(order_input(custom_item(uploaded.id)))).order
    assert order.id is not None

    async with db.session() as session:
        await UploadService(session, store).delete_file(uploaded.id)

    assert uploaded.path not in store.blobs
    async with db.session() as session:
        with pytest.raises(UploadedFileNotFound):
            await UploadService(session, store).get_file(uploaded.id)
        reloaded = await OrderService(session).get_order(order.id)
    options = reloaded.items[0].custom_options
    assert options is not None
    assert options.uploaded_file_id is None


async def test_list_files_filters(db: Database, store: FakeFileStore) -> None:
    async with db.session() as session:
        service = UploadService(session, store)
        await service.register_upload(b"a", "a.stl", "model/stl", user_id=1)
        await service.register_upload(b"b", "b.png", "image/png", user_id=1)
        await service.register_upload(b"c", "c.stl", "model/stl", user_id=2)

        mine, total = await service.list_files(user_id=1)
        models, model_total = await service.list_files(file_type=FileType.MODEL_3D, temporary=True)

    assert total == 2
    assert {f.original_name for f in mine} == {"a.stl", "b.png"}
    assert model_total == 2
    assert {f.original_name for f in models} == {"a.stl", "c.stl"}
