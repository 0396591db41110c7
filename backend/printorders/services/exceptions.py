"""Base service exceptions.

These exceptions are raised by the service layer and should be caught
by the caller (HTTP layer, CLI, task) and converted to an appropriate response.
"""

from enum import StrEnum


class ServiceError(Exception):
    """Base service exception."""

    pass


class NotFoundError(ServiceError):
    """Resource not found."""

    pass


class ValidationError(ServiceError):
    """Validation error."""

    pass


class CreationStage(StrEnum):
    """Step of the order creation transaction that was running when it failed."""

    ORDER = "order"
    SHIPPING_ADDRESS = "shipping_address"
    ORDER_ITEM = "order_item"
    CUSTOM_OPTIONS = "custom_options"
    FILE_LINK = "file_link"
    COMMIT = "commit"


class OrderCreationFailed(ServiceError):
    """Order creation rolled back; nothing from it was persisted.

    `stage` names the step that raised; the underlying database error is
    chained as __cause__.
    """

    def __init__(self, stage: CreationStage, detail: str = ""):
        self.stage = stage
        self.detail = detail
        message = f"Order creation failed at stage {stage.value}"
        if detail:
            message = f"{message}: {detail}"
        super().__init__(message)


class LinkVerificationFailed(ServiceError):
    """A file link could not be confirmed by reading it back.

    Reported, never raised out of order creation: the order still commits.
    """

    def __init__(self, file_id: int, expected: int | None, actual: int | None):
        self.file_id = file_id
        self.expected = expected
        self.actual = actual
        super().__init__(f"File {file_id} expected order_id={expected}, read back order_id={actual}")
