"""Input schemas for order operations.

Field aliases follow the storefront's camelCase JSON (e.g. `uploadedFileId`);
snake_case names are accepted too.
"""

from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from printorders.models.enums import CustomItemType, OrderStatus, PaymentMethod


class _Input(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CustomOptionsInput(_Input):
    """Production options for a custom item, optionally pointing at an upload."""

    uploaded_file_id: int | None = None
    type: CustomItemType | None = None
    material: str | None = None
    color: str | None = None
    quality: str | None = None
    infill: int | None = None
    notes: str | None = None
    file_url: str | None = None


class OrderItemInput(_Input):
    """One line item.

    `product` is a catalog product id, a numeric string, a client placeholder
    token such as "custom-1700000000", or None. Anything non-numeric marks a
    custom item.
    """

    product: int | str | None = None
    name: str
    quantity: int = Field(default=1, ge=1)
    price: Decimal
    image: str | None = None
    custom_options: CustomOptionsInput | None = None

    @property
    def product_id(self) -> int | None:
        """Catalog product id, or None for custom items (placeholders are stored as None)."""
        if self.product is None or isinstance(self.product, bool):
            return None
        if isinstance(self.product, int):
            return self.product
        token = self.product.strip()
        # str.isdigit() also accepts superscripts and other digits int() rejects
        return int(token) if token.isascii() and token.isdigit() else None

    @property
    def is_custom(self) -> bool:
        return self.product_id is None


class ShippingAddressInput(_Input):
    full_name: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = None
    country: str | None = None
    phone: str | None = None
    email: str | None = None


class PaymentResultInput(_Input):
    """Payment confirmation as reported by the payment gateway."""

    id: str | None = None
    status: str | None = None
    update_time: str | None = None
    email_address: str | None = None


class OrderCreate(_Input):
    """Everything needed to create an order in one transaction.

    Totals are precomputed by the caller and stored verbatim.
    """

    user_id: int | None = None
    order_items: list[OrderItemInput] = Field(default_factory=list)
    shipping_address: ShippingAddressInput | None = None
    payment_method: PaymentMethod | None = None
    items_price: Decimal = Decimal("0")
    tax_price: Decimal = Decimal("0")
    shipping_price: Decimal = Decimal("0")
    total_price: Decimal = Decimal("0")
    status: OrderStatus = OrderStatus.PENDING
