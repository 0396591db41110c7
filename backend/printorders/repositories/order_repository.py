"""Order graph data access."""

from typing import Any

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload
from sqlmodel import select

from printorders.models.enums import OrderStatus
from printorders.models.order import CustomOptions, Order, OrderItem, PaymentResult, ShippingAddress


def order_graph_options() -> list[Any]:
    """Eager-load options for a fully populated order."""
    return [
        selectinload(Order.items).selectinload(OrderItem.custom_options),  # type: ignore[arg-type]
        selectinload(Order.shipping_address),  # type: ignore[arg-type]
        selectinload(Order.payment_result),  # type: ignore[arg-type]
    ]


class OrderRepository:
    """Queries and writes over Order and its children.

    Never commits: the caller owns the transaction.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def add(self, entity: Any) -> Any:
        """Insert any order-graph row and flush so its id is assigned."""
        self.session.add(entity)
        await self.session.flush()
        return entity

    async def get(self, order_id: int) -> Order | None:
        return await self.session.get(Order, order_id)

    async def get_loaded(self, order_id: int, *, refresh: bool = False) -> Order | None:
        """Order with items, custom options, shipping address and payment result."""
        statement = select(Order).options(*order_graph_options()).where(Order.id == order_id)
        if refresh:
            statement = statement.execution_options(populate_existing=True)
        result = await self.session.execute(statement)
        return result.scalars().first()

    async def list_orders(
        self,
        *,
        user_id: int | None = None,
        status: OrderStatus | None = None,
        is_paid: bool | None = None,
        skip: int = 0,
        limit: int = 10,
    ) -> tuple[list[Order], int]:
        """List orders with pagination, newest first. Returns (orders, total_count)."""
        filters = []
        if user_id is not None:
            filters.append(Order.user_id == user_id)
        if status is not None:
            filters.append(Order.status == status)
        if is_paid is not None:
            filters.append(Order.is_paid == is_paid)

        orders_statement = (
            select(Order)
            .options(*order_graph_options())
            .where(*filters)
            .order_by(Order.created_at.desc(), Order.id.desc())  # type: ignore[attr-defined, union-attr]
            .offset(skip)
            .limit(limit)
        )
        orders = list((await self.session.execute(orders_statement)).scalars().all())

        # Get total count (efficient - uses SQL COUNT)
        count_statement = select(func.count()).select_from(Order).where(*filters)
        total = (await self.session.execute(count_statement)).scalar() or 0
        return orders, total

    async def get_item(self, order_id: int, order_item_id: int) -> OrderItem | None:
        """Order item, only if it belongs to the given order."""
        statement = select(OrderItem).where(OrderItem.id == order_item_id, OrderItem.order_id == order_id)
        return (await self.session.execute(statement)).scalars().first()

    async def first_custom_item(self, order_id: int) -> OrderItem | None:
        statement = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id, OrderItem.product_id.is_(None))  # type: ignore[union-attr]
            .order_by(OrderItem.id)
            .limit(1)
        )
        return (await self.session.execute(statement)).scalars().first()

    async def get_custom_options(self, order_item_id: int) -> CustomOptions | None:
        statement = select(CustomOptions).where(CustomOptions.order_item_id == order_item_id)
        return (await self.session.execute(statement)).scalars().first()

    async def upsert_custom_options_file(self, order_item_id: int, file_id: int, file_url: str | None) -> CustomOptions:
        """Point an item's custom options at a file, creating the options row if it does not exist."""
        options = await self.get_custom_options(order_item_id)
        if options is None:
            options = CustomOptions(order_item_id=order_item_id)
            self.session.add(options)
        options.uploaded_file_id = file_id
        options.file_url = file_url
        await self.session.flush()
        return options

    async def clear_custom_options_file_url(self, options: CustomOptions) -> None:
        options.file_url = None
        await self.session.flush()

    async def clear_file_references(self, file_id: int, *, except_order_id: int) -> int:
        """Drop references to a file from custom options of every other order."""
        other_items = select(OrderItem.id).where(OrderItem.order_id != except_order_id)
        statement = (
            update(CustomOptions)
            .where(
                CustomOptions.uploaded_file_id == file_id,
                CustomOptions.order_item_id.in_(other_items),  # type: ignore[attr-defined]
            )
            .values(uploaded_file_id=None, file_url=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount  # type: ignore[attr-defined, no-any-return]

    async def get_shipping_address(self, order_id: int) -> ShippingAddress | None:
        statement = select(ShippingAddress).where(ShippingAddress.order_id == order_id)
        return (await self.session.execute(statement)).scalars().first()

    async def get_payment_result(self, order_id: int) -> PaymentResult | None:
        statement = select(PaymentResult).where(PaymentResult.order_id == order_id)
        return (await self.session.execute(statement)).scalars().first()

    # Reconciliation

    async def catalog_options_with_file(self, after_id: int, limit: int) -> list[tuple[int, int]]:
        """(options_id, uploaded_file_id) of catalog items' custom options that still carry a file."""
        statement = (
            select(CustomOptions.id, CustomOptions.uploaded_file_id)
            .join(OrderItem, OrderItem.id == CustomOptions.order_item_id)  # type: ignore[arg-type]
            .where(
                CustomOptions.id > after_id,  # type: ignore[operator]
                OrderItem.product_id.is_not(None),  # type: ignore[union-attr]
                CustomOptions.uploaded_file_id.is_not(None),  # type: ignore[union-attr]
            )
            .order_by(CustomOptions.id)
            .limit(limit)
        )
        return [(row.id, row.uploaded_file_id) for row in (await self.session.execute(statement)).all()]

    async def clear_catalog_options_file(self, options_id: int, file_id: int) -> bool:
        """Clear the file reference, re-checking the row is still a catalog item pointing at `file_id`."""
        catalog_items = select(OrderItem.id).where(OrderItem.product_id.is_not(None))  # type: ignore[union-attr]
        statement = (
            update(CustomOptions)
            .where(
                CustomOptions.id == options_id,
                CustomOptions.uploaded_file_id == file_id,
                CustomOptions.order_item_id.in_(catalog_items),  # type: ignore[attr-defined]
            )
            .values(uploaded_file_id=None, file_url=None)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(statement)
        return result.rowcount == 1  # type: ignore[attr-defined]
