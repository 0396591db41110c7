"""Uploaded file domain exceptions."""

from printorders.services.exceptions import NotFoundError, ValidationError


class UploadedFileNotFound(NotFoundError):
    """Uploaded file not found."""

    pass


class CatalogItemAttachment(ValidationError):
    """Files can only be attached to custom items, not catalog items."""

    pass
