"""Shared fixtures: a throwaway SQLite database, fake blob store and recording notifier."""

import uuid
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any

import pytest
from sqlalchemy import event
from sqlmodel import SQLModel

from printorders.db.session import Database
from printorders.models.enums import FileType, OrderStatus, ProductCategory
from printorders.models.order import Order, Product
from printorders.models.uploaded_file import ModelData, UploadedFile
from printorders.services.orders.order_creation_service import OrderCreationService
from printorders.services.orders.schemas import OrderCreate

NOW = datetime(2026, 10, 18, 12, 0, tzinfo=UTC)


class FakeFileStore:
    """In-memory FileStore."""

    def __init__(self) -> None:
        self.blobs: dict[str, bytes] = {}
        self.deleted: list[str] = []
        self.fail_on_delete: set[str] = set()

    async def put(self, path: str, data: bytes, content_type: str) -> None:
        self.blobs[path] = data

    async def get(self, path: str) -> bytes:
        return self.blobs[path]

    async def delete(self, path: str) -> None:
        if path in self.fail_on_delete:
            raise OSError(f"storage unavailable for {path}")
        self.blobs.pop(path, None)
        self.deleted.append(path)

    def public_url(self, path: str) -> str:
        return f"https://cdn.test/{path}"


class RecordingNotifier:
    """Notifier that records calls and can be told to fail."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.created: list[Order] = []
        self.status_changes: list[tuple[int | None, OrderStatus]] = []

    async def order_created(self, order: Order) -> None:
        self.created.append(order)
        if self.fail:
            raise RuntimeError("smtp down")

    async def order_status_changed(self, order: Order, status: OrderStatus) -> None:
        self.status_changes.append((order.id, status))
        if self.fail:
            raise RuntimeError("smtp down")


@pytest.fixture
async def db(tmp_path: Path) -> AsyncGenerator[Database]:
    database = Database(f"sqlite+aiosqlite:///{tmp_path / 'orders.db'}")

    @event.listens_for(database.engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with database.engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)

    yield database
    await database.dispose()


@pytest.fixture
def store() -> FakeFileStore:
    return FakeFileStore()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def creator(db: Database, notifier: RecordingNotifier) -> OrderCreationService:
    return OrderCreationService(db, notifier=notifier)


@pytest.fixture
async def product_id(db: Database) -> int:
    async with db.transaction() as session:
        product = Product(name="Dragon figurine", price=Decimal("199.00"), category=ProductCategory.READY_MADE)
        session.add(product)
        await session.flush()
        assert product.id is not None
        return product.id


MakeFile = Callable[..., Awaitable[int]]


@pytest.fixture
def make_file(db: Database, store: FakeFileStore) -> MakeFile:
    """Insert an UploadedFile (and its blob) directly; returns the file id."""

    async def _make(
        *,
        created_at: datetime = NOW,
        temporary: bool = True,
        order_id: int | None = None,
        file_type: FileType = FileType.MODEL_3D,
        with_model_data: bool = False,
        thumbnail: bool = False,
    ) -> int:
        path = f"uploads/2026/10/{uuid.uuid4().hex}.stl"
        await store.put(path, b"solid part", "model/stl")
        thumbnail_path = None
        if thumbnail:
            thumbnail_path = f"{path}.preview.png"
            await store.put(thumbnail_path, b"png", "image/png")

        async with db.transaction() as session:
            uploaded = UploadedFile(
                original_name="part.stl",
                filename=path.rsplit("/", 1)[-1],
                path=path,
                file_url=store.public_url(path),
                thumbnail_path=thumbnail_path,
                size=10,
                mimetype="model/stl",
                file_type=file_type,
                temporary=temporary,
                order_id=order_id,
                processing_complete=order_id is not None,
                created_at=created_at,
                updated_at=created_at,
            )
            session.add(uploaded)
            await session.flush()
            assert uploaded.id is not None
            if with_model_data:
                session.add(ModelData(file_id=uploaded.id, volume=12.5, weight=15.0, x=1, y=2, z=3, print_time=1.5))
            return uploaded.id

    return _make


def custom_item(file_id: int | None = None, **options: Any) -> dict[str, Any]:
    """Storefront-shaped custom item (camelCase, placeholder product token)."""
    custom_options: dict[str, Any] = {"type": "3d-printing", "material": "PLA", "color": "red", **options}
    if file_id is not None:
        custom_options["uploadedFileId"] = file_id
    return {
        "product": "custom-1700000000",
        "name": "Custom print",
        "quantity": 1,
        "price": "149.00",
        "customOptions": custom_options,
    }


def catalog_item(product_id: int, **extra: Any) -> dict[str, Any]:
    return {"product": product_id, "name": "Dragon figurine", "quantity": 2, "price": "199.00", **extra}


def order_input(*items: dict[str, Any], **fields: Any) -> OrderCreate:
    payload: dict[str, Any] = {
        "userId": 7,
        "orderItems": list(items),
        "shippingAddress": {
            "fullName": "Kari Nordmann",
            "address": "Storgata 1",
            "city": "Oslo",
            "postalCode": "0155",
            "country": "Norway",
            "email": "kari@example.com",
        },
        "paymentMethod": "vipps",
        "itemsPrice": "149.00",
        "taxPrice": "37.25",
        "shippingPrice": "99.00",
        "totalPrice": "285.25",
        **fields,
    }
    return OrderCreate.model_validate(payload)
