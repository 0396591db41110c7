"""Enum definitions for database models."""

from enum import StrEnum

from sqlalchemy import Enum


class OrderStatus(StrEnum):
    """Fulfilment status of an order."""

    PENDING = "pending"
    PROCESSING = "processing"
    SHIPPED = "shipped"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(StrEnum):
    """Payment method chosen at checkout."""

    CREDIT_CARD = "credit-card"
    PAYPAL = "paypal"
    STRIPE = "stripe"
    BANK_TRANSFER = "bank-transfer"
    VIPPS = "vipps"


class ProductCategory(StrEnum):
    """Catalog product category."""

    PRINTING_3D = "3d-printing"
    LASER_ENGRAVING = "laser-engraving"
    CUSTOM = "custom"
    READY_MADE = "ready-made"


class CustomItemType(StrEnum):
    """Production process requested for a custom line item."""

    PRINTING_3D = "3d-printing"
    LASER_ENGRAVING = "laser-engraving"


class FileType(StrEnum):
    """Kind of uploaded design file."""

    MODEL_3D = "3d-model"
    IMAGE = "image"
    OTHER = "other"


class FileStatus(StrEnum):
    """Processing status of an uploaded file."""

    PENDING = "pending"
    PROCESSED = "processed"
    ORDERED = "ordered"
    ERROR = "error"


def enum_type(enum_cls: type[StrEnum], name: str) -> Enum:
    """Database enum type storing member values (e.g. "3d-model"), not member names."""
    return Enum(enum_cls, values_callable=lambda e: [member.value for member in e], name=name)
