"""Order graph database models: Order, ShippingAddress, PaymentResult, OrderItem, CustomOptions."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from sqlalchemy import Column, Date, DateTime, ForeignKey, Integer, Numeric, Text
from sqlmodel import Field, Relationship, SQLModel

from printorders.models.base import utc_now
from printorders.models.enums import (
    CustomItemType,
    OrderStatus,
    PaymentMethod,
    ProductCategory,
    enum_type,
)


def _money_column(nullable: bool = False) -> Column:  # type: ignore[type-arg]
    return Column(Numeric(10, 2), nullable=nullable, default=Decimal("0"))


class Product(SQLModel, table=True):
    """Catalog product. Only the fields order items refer to are modelled here."""

    __tablename__ = "products"

    id: int | None = Field(default=None, primary_key=True)
    name: str
    price: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    category: ProductCategory = Field(
        sa_column=Column(enum_type(ProductCategory, "productcategory"), nullable=False),
    )


class Order(SQLModel, table=True):
    """Customer order. Totals are supplied by the caller and never recomputed."""

    __tablename__ = "orders"

    id: int | None = Field(default=None, primary_key=True)
    user_id: int | None = Field(default=None, index=True)  # None for guest checkout
    payment_method: PaymentMethod | None = Field(
        default=None,
        sa_column=Column(enum_type(PaymentMethod, "paymentmethod"), nullable=True),
    )

    items_price: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    tax_price: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    shipping_price: Decimal = Field(default=Decimal("0"), sa_column=_money_column())
    total_price: Decimal = Field(default=Decimal("0"), sa_column=_money_column())

    status: OrderStatus = Field(
        default=OrderStatus.PENDING,
        sa_column=Column(enum_type(OrderStatus, "orderstatus"), nullable=False, default=OrderStatus.PENDING),
    )
    is_paid: bool = False
    paid_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    is_delivered: bool = False
    delivered_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    tracking_number: str | None = Field(default=None, max_length=100)
    estimated_delivery_date: date | None = Field(default=None, sa_column=Column(Date, nullable=True))

    created_at: datetime = Field(default_factory=utc_now, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utc_now),
    )

    # Relationships
    items: list["OrderItem"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={
            "passive_deletes": True,
            "order_by": "OrderItem.id",
        },
    )
    shipping_address: Optional["ShippingAddress"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"uselist": False, "passive_deletes": True},
    )
    payment_result: Optional["PaymentResult"] = Relationship(
        back_populates="order",
        sa_relationship_kwargs={"uselist": False, "passive_deletes": True},
    )


class ShippingAddress(SQLModel, table=True):
    """Shipping address captured at checkout (one per order)."""

    __tablename__ = "order_shipping_addresses"

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True),
    )
    full_name: str | None = None
    address: str | None = None
    city: str | None = None
    postal_code: str | None = Field(default=None, max_length=50)
    country: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    email: str | None = None

    order: Order = Relationship(back_populates="shipping_address")


class PaymentResult(SQLModel, table=True):
    """Payment confirmation reported by the payment provider (one per order)."""

    __tablename__ = "order_payment_results"

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), nullable=False, unique=True),
    )
    payment_id: str | None = Field(default=None, max_length=100)
    status: str | None = Field(default=None, max_length=50)
    update_time: str | None = Field(default=None, max_length=50)
    email_address: str | None = None

    order: Order = Relationship(back_populates="payment_result")


class OrderItem(SQLModel, table=True):
    """Line item within an order.

    A null product_id marks a custom item (customer-supplied design); a
    non-null product_id marks a catalog item, which never carries a file.
    """

    __tablename__ = "order_items"

    id: int | None = Field(default=None, primary_key=True)
    order_id: int = Field(
        sa_column=Column(Integer, ForeignKey("orders.id", ondelete="CASCADE"), index=True, nullable=False),
    )
    product_id: int | None = Field(
        default=None,
        sa_column=Column(Integer, ForeignKey("products.id", ondelete="SET NULL"), nullable=True),
    )
    name: str
    quantity: int = 1
    price: Decimal = Field(sa_column=_money_column())
    image: str | None = Field(default=None, sa_column=Column(Text, nullable=True))

    # Relationships
    order: Order = Relationship(back_populates="items")
    custom_options: Optional["CustomOptions"] = Relationship(
        back_populates="order_item",
        sa_relationship_kwargs={"uselist": False, "passive_deletes": True},
    )

    @property
    def is_custom(self) -> bool:
        return self.product_id is None


class CustomOptions(SQLModel, table=True):
    """Production options for a custom line item, with its design file reference.

    file_url is a denormalized copy of the linked UploadedFile.file_url.
    """

    __tablename__ = "order_custom_options"

    id: int | None = Field(default=None, primary_key=True)
    order_item_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("order_items.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )
    type: CustomItemType | None = Field(
        default=None,
        sa_column=Column(enum_type(CustomItemType, "customitemtype"), nullable=True),
    )
    material: str | None = Field(default=None, max_length=100)
    color: str | None = Field(default=None, max_length=50)
    quality: str | None = Field(default=None, max_length=50)
    infill: int | None = None
    notes: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    file_url: str | None = None
    uploaded_file_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("uploaded_files.id", ondelete="SET NULL"),
            index=True,
            nullable=True,
        ),
    )

    order_item: OrderItem = Relationship(back_populates="custom_options")
