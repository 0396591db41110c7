"""Post-commit order notifications.

Notifications are fire-and-forget: they run only after the order transaction
has committed, and a failing notifier never affects the stored order.
"""

from collections.abc import Awaitable
from typing import Protocol

import structlog

from printorders.models.enums import OrderStatus
from printorders.models.order import Order

logger = structlog.get_logger(__name__)


class Notifier(Protocol):
    """Receiver of committed order events (email, admin alerts, ...)."""

    async def order_created(self, order: Order) -> None: ...

    async def order_status_changed(self, order: Order, status: OrderStatus) -> None: ...


class LoggingNotifier:
    """Default notifier that only records events in the log."""

    async def order_created(self, order: Order) -> None:
        logger.info("Order created", order_id=order.id, items=len(order.items), total=str(order.total_price))

    async def order_status_changed(self, order: Order, status: OrderStatus) -> None:
        logger.info("Order status changed", order_id=order.id, status=status.value)


async def notify_safely(event: str, order_id: int | None, notification: Awaitable[None]) -> None:
    """Await a notifier call, logging (never raising) its failure."""
    try:
        await notification
    except Exception as e:
        logger.error("Order notification failed", notification=event, order_id=order_id, error=str(e))
