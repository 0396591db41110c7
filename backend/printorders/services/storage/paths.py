"""Storage path generation helpers."""

import uuid
from datetime import datetime
from pathlib import PurePosixPath

from printorders.models.base import utc_now


def upload_path(original_name: str, *, now: datetime | None = None) -> str:
    """Object key for a new upload: uploads/{yyyy}/{mm}/{uuid}{ext}.

    The extension is kept (lower-cased) so downstream tools can sniff the
    format; the stem is replaced to avoid collisions and path tricks.
    """
    now = now or utc_now()
    ext = PurePosixPath(original_name).suffix.lower()
    return f"uploads/{now:%Y}/{now:%m}/{uuid.uuid4().hex}{ext}"


def stored_filename(path: str) -> str:
    """Filename component of an object key."""
    return PurePosixPath(path).name
