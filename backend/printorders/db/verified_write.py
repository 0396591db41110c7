"""Write, re-read, retry-on-mismatch helper."""

from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class WriteNotVerified(Exception):
    """The value read back still does not match after all retries."""

    def __init__(self, actual: object, attempts: int):
        self.actual = actual
        self.attempts = attempts
        super().__init__(f"Write not visible after {attempts} attempt(s), read back {actual!r}")


async def verify_write(
    write: Callable[[], Awaitable[Any]],
    read: Callable[[], Awaitable[T]],
    matches: Callable[[T], bool],
    retries: int = 1,
) -> T:
    """Confirm a write that has already been issued by reading it back.

    On mismatch the write is re-issued and re-read, up to `retries` times.

    Usage:
        order_id = await verify_write(
            write=lambda: repo.link_if_unattached(file_id, order_id),
            read=lambda: repo.get_order_id(file_id),
            matches=lambda current: current == order_id,
        )

    Returns:
        The last value read (which matched)

    Raises:
        WriteNotVerified: if the read never matches
    """
    value = await read()
    attempt = 0
    while not matches(value):
        if attempt >= retries:
            raise WriteNotVerified(actual=value, attempts=attempt + 1)
        attempt += 1
        logger.debug("Write not visible on read-back, retrying", attempt=attempt, actual=value)
        await write()
        value = await read()
    return value
