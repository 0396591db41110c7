"""Upload registration and explicit file deletion.

A new upload is stored in the FileStore and recorded as a temporary,
unattached UploadedFile. It stays temporary until the linking protocol
attaches it to an order; otherwise the garbage collector removes it.
"""

from pathlib import PurePosixPath

import structlog
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from printorders.models.enums import FileStatus, FileType
from printorders.models.uploaded_file import ModelData, UploadedFile
from printorders.repositories.uploaded_file_repository import UploadedFileRepository
from printorders.services.files.exceptions import UploadedFileNotFound
from printorders.services.files.schemas import ModelDataInput
from printorders.services.storage.file_store import FileStore
from printorders.services.storage.paths import stored_filename, upload_path

logger = structlog.get_logger(__name__)

MODEL_EXTENSIONS = frozenset({".stl", ".obj", ".3mf"})


def classify_upload(original_name: str, mimetype: str) -> FileType:
    """Image by mimetype first, then 3D model by extension, else other."""
    if mimetype.lower().startswith("image/"):
        return FileType.IMAGE
    if PurePosixPath(original_name).suffix.lower() in MODEL_EXTENSIONS:
        return FileType.MODEL_3D
    return FileType.OTHER


class UploadService:
    """Registers uploads and deletes files on explicit request."""

    def __init__(self, session: AsyncSession, store: FileStore):
        self.session = session
        self.store = store
        self.files = UploadedFileRepository(session)

    async def register_upload(
        self,
        data: bytes,
        original_name: str,
        mimetype: str,
        *,
        user_id: int | None = None,
        model_data: ModelDataInput | None = None,
        preview: bytes | None = None,
    ) -> UploadedFile:
        """Store the blob and create a temporary, unattached UploadedFile.

        Args:
            data: File contents
            original_name: Client-side filename (used for classification and extension)
            mimetype: Content type reported by the client
            user_id: Uploading user, None for guests
            model_data: Slicer analysis; stored for 3D models only
            preview: Optional PNG preview rendered by the client for 3D models
        """
        file_type = classify_upload(original_name, mimetype)
        path = upload_path(original_name)
        await self.store.put(path, data, mimetype)
        file_url = self.store.public_url(path)

        thumbnail_path: str | None = None
        thumbnail_url: str | None = file_url if file_type == FileType.IMAGE else None
        if preview is not None and file_type == FileType.MODEL_3D:
            thumbnail_path = f"{path}.preview.png"
            await self.store.put(thumbnail_path, preview, "image/png")
            thumbnail_url = self.store.public_url(thumbnail_path)

        uploaded = UploadedFile(
            original_name=original_name,
            filename=stored_filename(path),
            path=path,
            file_url=file_url,
            thumbnail_url=thumbnail_url,
            thumbnail_path=thumbnail_path,
            size=len(data),
            mimetype=mimetype,
            user_id=user_id,
            file_type=file_type,
            processing_complete=file_type == FileType.MODEL_3D,
            status=FileStatus.PROCESSED,
            temporary=True,
            order_id=None,
        )
        model_row = None
        if file_type == FileType.MODEL_3D and model_data is not None:
            model_row = ModelData(file_id=0, **model_data.model_dump())

        try:
            await self.files.add(uploaded, model_row)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            logger.error("Failed to record upload, removing stored blob", path=path)
            await self.store.delete(path)
            if thumbnail_path:
                await self.store.delete(thumbnail_path)
            raise

        logger.info(
            "Upload registered",
            file_id=uploaded.id,
            file_type=file_type.value,
            size=len(data),
            user_id=user_id,
        )
        refreshed = await self.files.get(uploaded.id, refresh=True)  # type: ignore[arg-type]
        assert refreshed is not None
        return refreshed

    async def get_file(self, file_id: int) -> UploadedFile:
        file = await self.files.get(file_id)
        if file is None:
            raise UploadedFileNotFound(f"Uploaded file {file_id} not found")
        return file

    async def list_files(
        self,
        *,
        user_id: int | None = None,
        order_id: int | None = None,
        file_type: FileType | None = None,
        temporary: bool | None = None,
        skip: int = 0,
        limit: int = 50,
    ) -> tuple[list[UploadedFile], int]:
        """List files with filters, newest first. Returns (files, total_count)."""
        return await self.files.list_files(
            user_id=user_id,
            order_id=order_id,
            file_type=file_type,
            temporary=temporary,
            skip=skip,
            limit=limit,
        )

    async def delete_file(self, file_id: int) -> None:
        """Delete the blob, then the row (ModelData cascades, references are nulled)."""
        file = await self.get_file(file_id)

        await self.store.delete(file.path)
        if file.thumbnail_path:
            await self.store.delete(file.thumbnail_path)

        await self.files.delete(file_id)
        await self.session.commit()
        logger.info("File deleted", file_id=file_id, order_id=file.order_id)
