"""Atomic order creation.

One transaction writes the order, its shipping address, its items and their
custom options, and links each custom item's uploaded file. Either all of it
commits or none of it does. Notifications run only after the commit.
"""

from dataclasses import dataclass, field

import structlog
from sqlalchemy.exc import SQLAlchemyError

from printorders.db.session import Database
from printorders.models.order import CustomOptions, Order, OrderItem, ShippingAddress
from printorders.repositories.order_repository import OrderRepository
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.exceptions import CreationStage, OrderCreationFailed
from printorders.services.files.link_service import FileLinkService, LinkResult
from printorders.services.notifications.notifier import LoggingNotifier, Notifier, notify_safely
from printorders.services.orders.exceptions import EmptyOrder
from printorders.services.orders.schemas import CustomOptionsInput, OrderCreate, OrderItemInput
from printorders.utils.background_tasks import BackgroundTasks

logger = structlog.get_logger(__name__)


@dataclass
class OrderCreationResult:
    """The committed, fully loaded order plus the outcome of every file link attempt."""

    order: Order
    link_results: list[LinkResult] = field(default_factory=list)
    # False when the post-commit reload failed; `order` then has no relationships loaded
    loaded: bool = True

    @property
    def unlinked(self) -> list[LinkResult]:
        """Link attempts that did not end with the file attached to this order."""
        return [r for r in self.link_results if not r.attached or not r.verified]


def _custom_options_row(order_item_id: int, options: CustomOptionsInput, file_url: str | None) -> CustomOptions:
    return CustomOptions(
        order_item_id=order_item_id,
        type=options.type,
        material=options.material,
        color=options.color,
        quality=options.quality,
        infill=options.infill,
        notes=options.notes,
        file_url=file_url,
        uploaded_file_id=None,  # set only by the linking protocol
    )


class OrderCreationService:
    """Creates orders; owns its transaction through the injected Database."""

    def __init__(self, db: Database, notifier: Notifier | None = None):
        self.db = db
        self.notifier: Notifier = notifier or LoggingNotifier()

    async def create_order(
        self,
        data: OrderCreate,
        *,
        bg_tasks: BackgroundTasks | None = None,
    ) -> OrderCreationResult:
        """Create an order with all of its children in one transaction.

        Args:
            data: Validated order input
            bg_tasks: If provided, the post-commit notification is scheduled
                      via bg_tasks.run() instead of being awaited inline.

        Raises:
            EmptyOrder: no items (raised before any database work)
            OrderCreationFailed: a database error rolled everything back

        A failure to reload the order after the commit does not raise: the
        result comes back with `loaded=False` and no notification is sent.
        """
        if not data.order_items:
            raise EmptyOrder("Order must contain at least one item")

        link_results: list[LinkResult] = []
        stage = CreationStage.ORDER

        async with self.db.session() as session:
            orders = OrderRepository(session)
            files = UploadedFileRepository(session)
            linker = FileLinkService(session)

            try:
                order = await orders.add(
                    Order(
                        user_id=data.user_id,
                        payment_method=data.payment_method,
                        items_price=data.items_price,
                        tax_price=data.tax_price,
                        shipping_price=data.shipping_price,
                        total_price=data.total_price,
                        status=data.status,
                    )
                )
                assert order.id is not None
                order_id = order.id

                if data.shipping_address is not None:
                    stage = CreationStage.SHIPPING_ADDRESS
                    await orders.add(ShippingAddress(order_id=order_id, **data.shipping_address.model_dump()))

                for item_data in data.order_items:
                    stage = CreationStage.ORDER_ITEM
                    item = await orders.add(self._order_item_row(order_id, item_data))
                    item_id = item.id
                    assert item_id is not None
                    options = item_data.custom_options
                    if options is None:
                        continue

                    stage = CreationStage.CUSTOM_OPTIONS
                    if not item_data.is_custom:
                        # Catalog items keep the informational fields only
                        await orders.add(_custom_options_row(item_id, options, file_url=None))
                        continue

                    file_id = options.uploaded_file_id
                    if file_id is None:
                        await orders.add(_custom_options_row(item_id, options, file_url=options.file_url))
                        continue

                    # The stored file URL is authoritative; the client copy is ignored
                    state = await files.get_link_state(file_id)
                    options_row = await orders.add(
                        _custom_options_row(item_id, options, file_url=state.file_url if state else None)
                    )

                    stage = CreationStage.FILE_LINK
                    result = await linker.attach(file_id, order_id, item_id)
                    link_results.append(result)
                    if not result.attached and options_row.file_url is not None:
                        await orders.clear_custom_options_file_url(options_row)

                stage = CreationStage.COMMIT
                await session.commit()

            except SQLAlchemyError as e:
                await session.rollback()
                logger.error("Order creation failed, rolled back", stage=stage.value, error=str(e))
                raise OrderCreationFailed(stage, detail=str(e)) from e

        logger.info(
            "Order created",
            order_id=order_id,
            items=len(data.order_items),
            linked_files=sum(1 for r in link_results if r.attached),
            unlinked_files=sum(1 for r in link_results if not r.attached),
        )

        try:
            async with self.db.session() as session:
                loaded = await OrderRepository(session).get_loaded(order_id)
        except SQLAlchemyError as e:
            # Already committed: hand back the written row and skip the notification
            logger.error("Created order could not be reloaded", order_id=order_id, error=str(e))
            return OrderCreationResult(order=order, link_results=link_results, loaded=False)
        assert loaded is not None

        notification = notify_safely("order_created", order_id, self.notifier.order_created(loaded))
        if bg_tasks is not None:
            bg_tasks.run(notification, label="order_created")
        else:
            await notification

        return OrderCreationResult(order=loaded, link_results=link_results)

    @staticmethod
    def _order_item_row(order_id: int, item_data: OrderItemInput) -> OrderItem:
        return OrderItem(
            order_id=order_id,
            product_id=item_data.product_id,
            name=item_data.name,
            quantity=item_data.quantity,
            price=item_data.price,
            image=item_data.image,
        )
