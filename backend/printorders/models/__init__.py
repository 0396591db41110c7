"""Database models."""

from sqlmodel import SQLModel

from printorders.models.enums import (
    CustomItemType,
    FileStatus,
    FileType,
    OrderStatus,
    PaymentMethod,
    ProductCategory,
)
from printorders.models.order import (
    CustomOptions,
    Order,
    OrderItem,
    PaymentResult,
    Product,
    ShippingAddress,
)
from printorders.models.uploaded_file import ModelData, UploadedFile

__all__ = [
    "SQLModel",
    "Product",
    "Order",
    "OrderItem",
    "ShippingAddress",
    "PaymentResult",
    "CustomOptions",
    "UploadedFile",
    "ModelData",
    "OrderStatus",
    "PaymentMethod",
    "ProductCategory",
    "CustomItemType",
    "FileType",
    "FileStatus",
]
