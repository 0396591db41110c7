"""Blob storage interface used by the upload service and the garbage collector."""

from typing import Protocol


class FileStore(Protocol):
    """Binary storage addressed by path (object key)."""

    async def put(self, path: str, data: bytes, content_type: str) -> None: ...

    async def get(self, path: str) -> bytes: ...

    async def delete(self, path: str) -> None:
        """Delete the blob. Deleting a missing blob is not an error."""
        ...

    def public_url(self, path: str) -> str: ...
