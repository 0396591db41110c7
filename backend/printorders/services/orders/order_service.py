"""Order management service.

Reads and the explicit post-creation updates (status, payment, tracking).
Order totals and items are never modified here.
"""

from datetime import date

import structlog
from sqlalchemy.ext.asyncio import AsyncSession

from printorders.models.base import utc_now
from printorders.models.enums import OrderStatus
from printorders.models.order import Order, PaymentResult
from printorders.models.uploaded_file import UploadedFile
from printorders.repositories.order_repository import OrderRepository
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.notifications.notifier import LoggingNotifier, Notifier, notify_safely
from printorders.services.orders.exceptions import OrderNotFound
from printorders.services.orders.schemas import PaymentResultInput
from printorders.utils.background_tasks import BackgroundTasks

logger = structlog.get_logger(__name__)


class OrderService:
    """Service for order management operations.

    Update methods commit, then notify. The notifier runs after the commit and
    its failures are only logged.
    """

    def __init__(
        self,
        session: AsyncSession,
        notifier: Notifier | None = None,
        bg_tasks: BackgroundTasks | None = None,
    ):
        self.session = session
        self.notifier: Notifier = notifier or LoggingNotifier()
        self.bg_tasks = bg_tasks
        self.orders = OrderRepository(session)
        self.files = UploadedFileRepository(session)

    async def get_order(self, order_id: int) -> Order:
        """Get order with items, custom options, shipping address and payment result."""
        order = await self.orders.get_loaded(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")
        return order

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
        return await self.orders.list_orders(user_id=user_id, status=status, is_paid=is_paid, skip=skip, limit=limit)

    async def update_status(self, order_id: int, status: OrderStatus) -> Order:
        """Set the fulfilment status; `delivered` also records the delivery time."""
        order = await self.orders.get(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")

        previous = order.status
        order.status = status
        if status == OrderStatus.DELIVERED:
            order.is_delivered = True
            order.delivered_at = utc_now()
        await self.session.commit()

        logger.info("Order status updated", order_id=order_id, previous=previous.value, status=status.value)
        return await self._notify_status_changed(order_id, status)

    async def mark_paid(self, order_id: int, payment_result: PaymentResultInput | None = None) -> Order:
        """Record a successful payment and move the order to processing."""
        order = await self.orders.get(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")

        order.is_paid = True
        order.paid_at = utc_now()
        order.status = OrderStatus.PROCESSING

        if payment_result is not None:
            row = await self.orders.get_payment_result(order_id)
            if row is None:
                row = PaymentResult(order_id=order_id)
                self.session.add(row)
            row.payment_id = payment_result.id
            row.status = payment_result.status
            row.update_time = payment_result.update_time
            row.email_address = payment_result.email_address
            if row.email_address is None:
                address = await self.orders.get_shipping_address(order_id)
                row.email_address = address.email if address else None

        await self.session.commit()

        logger.info("Order marked as paid", order_id=order_id, payment_id=payment_result.id if payment_result else None)
        return await self._notify_status_changed(order_id, OrderStatus.PROCESSING)

    async def update_tracking(
        self,
        order_id: int,
        tracking_number: str,
        estimated_delivery_date: date | None = None,
    ) -> Order:
        """Store shipment tracking and mark the order as shipped."""
        order = await self.orders.get(order_id)
        if not order:
            raise OrderNotFound(f"Order {order_id} not found")

        order.tracking_number = tracking_number
        order.estimated_delivery_date = estimated_delivery_date
        order.status = OrderStatus.SHIPPED
        await self.session.commit()

        logger.info("Order tracking updated", order_id=order_id, tracking_number=tracking_number)
        return await self._notify_status_changed(order_id, OrderStatus.SHIPPED)

    async def list_order_files(self, order_id: int) -> list[UploadedFile]:
        """Files attached to the order or referenced by its custom items.

        Read-only: inconsistencies are left for the reconciler.
        """
        if await self.orders.get(order_id) is None:
            raise OrderNotFound(f"Order {order_id} not found")
        return await self.files.files_for_order(order_id)

    async def _notify_status_changed(self, order_id: int, status: OrderStatus) -> Order:
        order = await self.orders.get_loaded(order_id, refresh=True)
        assert order is not None

        notification = notify_safely("order_status_changed", order_id, self.notifier.order_status_changed(order, status))
        if self.bg_tasks is not None:
            self.bg_tasks.run(notification, label="order_status_changed")
        else:
            await notification
        return order
