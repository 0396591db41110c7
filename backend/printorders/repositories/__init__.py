"""Data access layer for the order graph and uploaded files."""

from printorders.repositories.order_repository import OrderRepository
from printorders.repositories.uploaded_file_repository import UploadedFileRepository

__all__ = ["OrderRepository", "UploadedFileRepository"]
