"""UploadedFile and ModelData database models."""

from datetime import datetime
from typing import Optional

from sqlalchemy import Column, DateTime, ForeignKey, Integer
from sqlmodel import Field, Relationship, SQLModel

from printorders.models.base import utc_now
from printorders.models.enums import FileStatus, FileType, enum_type


class UploadedFile(SQLModel, table=True):
    """A customer-uploaded design file.

    Lifecycle: created temporary and unattached at upload time, then linked to
    exactly one order (temporary=False, order_id set), or garbage collected
    once it has stayed unattached past the retention window.
    """

    __tablename__ = "uploaded_files"

    id: int | None = Field(default=None, primary_key=True)
    original_name: str
    filename: str
    path: str  # FileStore key
    file_url: str
    thumbnail_url: str | None = None
    thumbnail_path: str | None = None  # FileStore key of a stored preview, if any
    size: int
    mimetype: str = Field(max_length=100)
    user_id: int | None = Field(default=None, index=True)
    file_type: FileType = Field(
        sa_column=Column(enum_type(FileType, "filetype"), nullable=False),
    )
    processing_complete: bool = False
    status: FileStatus = Field(
        default=FileStatus.PENDING,
        sa_column=Column(enum_type(FileStatus, "filestatus"), nullable=False, default=FileStatus.PENDING),
    )
    temporary: bool = Field(default=True, index=True)
    order_id: int | None = Field(
        default=None,
        sa_column=Column(
            Integer,
            ForeignKey("orders.id", ondelete="SET NULL"),
            index=True,
            nullable=True,
        ),
    )

    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, index=True),
    )
    updated_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False, onupdate=utc_now),
    )

    model_data: Optional["ModelData"] = Relationship(
        back_populates="file",
        sa_relationship_kwargs={"uselist": False, "passive_deletes": True},
    )


class ModelData(SQLModel, table=True):
    """Volumetric analysis of a 3D-model upload."""

    __tablename__ = "model_data"

    id: int | None = Field(default=None, primary_key=True)
    file_id: int = Field(
        sa_column=Column(
            Integer,
            ForeignKey("uploaded_files.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
    )
    volume: float | None = None  # cm3
    weight: float | None = None  # grams
    x: float | None = None
    y: float | None = None
    z: float | None = None
    print_time: float | None = None  # hours

    file: UploadedFile = Relationship(back_populates="model_data")
