"""Redis-based distributed locking utilities."""

from collections.abc import Generator
from contextlib import contextmanager

import redis

from printorders.utils.redis import redis_client


class LockUnavailable(Exception):
    """Raised when lock cannot be acquired and raise_exc=True."""

    pass


@contextmanager
def RedisLock(
    key: str,
    ttl: int = 60,
    *,
    client: redis.Redis | None = None,
    raise_exc: bool = False,
) -> Generator[bool, None, None]:
    """Distributed lock using Redis SET NX with TTL.

    Yields True if the lock was acquired, False otherwise; the caller skips
    its work when it did not get the lock:

        with RedisLock("maintenance:gc", ttl=900) as acquired:
            if not acquired:
                return
            run_sweep()

    With raise_exc=True a missed lock raises LockUnavailable instead.

    Args:
        key: Redis key for the lock (will be prefixed with "RedisLock:")
        ttl: Time-to-live in seconds; bounds how long a crashed holder blocks others
        client: Redis client, defaults to the shared one
        raise_exc: If True, raise LockUnavailable when lock not acquired.
    """
    r = client or redis_client
    full_key = f"RedisLock:{key}"
    acquired = bool(r.set(full_key, "1", nx=True, ex=ttl))

    if not acquired:
        if raise_exc:
            raise LockUnavailable(f"Could not acquire lock: {full_key}")
        yield False
        return

    try:
        yield True
    finally:
        r.delete(full_key)
