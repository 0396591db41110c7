"""Order reads and post-creation updates."""

from datetime import date

import pytest

from conftest import MakeFile, RecordingNotifier, catalog_item, custom_item, order_input
from printorders.db.session import Database
from printorders.models.enums import OrderStatus
from printorders.services.orders.exceptions import OrderNotFound
from printorders.services.orders.order_creation_service import OrderCreationService
from printorders.services.orders.order_service import OrderService
from printorders.services.orders.schemas import PaymentResultInput


async def _create(creator: OrderCreationService, *items: dict, **fields: object) -> int:  # type: ignore[type-arg]
    order = (await creator.create_order(order_input(*(items or (custom_item(),)), **fields))).order
    assert order.id is not None
    return order.id


async def test_get_order_loads_full_graph(db: Database, creator: OrderCreationService, product_id: int) -> None:
    order_id = await _create(creator, custom_item(), catalog_item(product_id))

    async with db.session() as session:
        order = await OrderService(session).get_order(order_id)

    assert [i.is_custom for i in order.items] == [True, False]
    assert order.items[0].custom_options is not None
    assert order.shipping_address is not None
    assert order.payment_result is None


async def test_get_order_not_found(db: Database) -> None:
    async with db.session() as session:
        with pytest.raises(OrderNotFound):
            await OrderService(session).get_order(404)


async def test_list_orders_filters_and_counts(db: Database, creator: OrderCreationService) -> None:
    first = await _create(creator, userId=1)
    second = await _create(creator, userId=1)
    await _create(creator, userId=2)

    async with db.session() as session:
        service = OrderService(session)
        orders, total = await service.list_orders(user_id=1)
        paid, paid_total = await service.list_orders(is_paid=True)

    assert total == 2
    assert {o.id for o in orders} == {first, second}
    assert (paid, paid_total) == ([], 0)


async def test_delivered_status_sets_delivery_flag(
    db: Database, creator: OrderCreationService, notifier: RecordingNotifier
) -> None:
    order_id = await _create(creator)

    async with db.session() as session:
        order = await OrderService(session, notifier=notifier).update_status(order_id, OrderStatus.DELIVERED)

    assert order.status == OrderStatus.DELIVERED
    assert order.is_delivered is True
    assert order.delivered_at is not None
    assert notifier.status_changes == [(order_id, OrderStatus.DELIVERED)]


async def test_other_status_leaves_delivery_flag(db: Database, creator: OrderCreationService) -> None:
    order_id = await _create(creator)

    async with db.session() as session:
        order = await OrderService(session).update_status(order_id, OrderStatus.CANCELLED)

    assert order.status == OrderStatus.CANCELLED
    assert order.is_delivered is False


async def test_mark_paid_records_payment_result(db: Database, creator: OrderCreationService) -> None:
    order_id = await _create(creator)
    payment = PaymentResultInput(id="vipps-123", status="CAPTURED", updateTime="2026-10-18T12:00:00Z")

    async with db.session() as session:
        order = await OrderService(session).mark_paid(order_id, payment)

    assert order.is_paid is True
    assert order.paid_at is not None
    assert order.status == OrderStatus.PROCESSING
    assert order.payment_result is not None
    assert order.payment_result.payment_id == "vipps-123"
    # Defaults to the shipping email when the gateway does not report one
    assert order.payment_result.email_address == "kari@example.com"


async def test_mark_paid_twice_keeps_one_payment_result(db: Database, creator: OrderCreationService) -> None:
    order_id = await _create(creator)

    async with db.session() as session:
        service = OrderService(session)
        await service.mark_paid(order_id, PaymentResultInput(id="first"))
        order = await service.mark_paid(order_id, PaymentResultInput(id="second", emailAddress="payer@example.com"))

    assert order.payment_result is not None
    assert order.payment_result.payment_id == "second"
    assert order.payment_result.email_address == "payer@example.com"


async def test_update_tracking_ships_order(
    db: Database, creator: OrderCreationService, notifier: RecordingNotifier
) -> None:
    order_id = await _create(creator)

    async with db.session() as session:
        order = await OrderService(session, notifier=notifier).update_tracking(
            order_id, "TRK-42", estimated_delivery_date=date(2026, 10, 25)
        )

    assert order.status == OrderStatus.SHIPPED
    assert order.tracking_number == "TRK-42"
    assert order.estimated_delivery_date == date(2026, 10, 25)
    assert notifier.status_changes == [(order_id, OrderStatus.SHIPPED)]


async def test_status_notifier_failure_is_swallowed(db: Database, creator: OrderCreationService) -> None:
    order_id = await _create(creator)

    async with db.session() as session:
        order = await OrderService(session, notifier=RecordingNotifier(fail=True)).update_status(
            order_id, OrderStatus.PROCESSING
        )

    assert order.status == OrderStatus.PROCESSING
    async with db.session() as session:
        assert (await OrderService(session).get_order(order_id)).status == OrderStatus.PROCESSING


async def test_list_order_files(db: Database, creator: OrderCreationService, make_file: MakeFile) -> None:
    linked = await make_file()
    unrelated = await make_file()
    order_id = await _create(creator, custom_item(linked))

    async with db.session() as session:
        files = await OrderService(session).list_order_files(order_id)

    assert [f.id for f in files] == [linked]
    assert unrelated not in [f.id for f in files]
