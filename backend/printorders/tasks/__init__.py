"""Dramatiq background tasks package."""

import dramatiq
from dramatiq.brokers.redis import RedisBroker

from printorders.config import settings
from printorders.logging import setup_logging

# Configure logging before anything else
setup_logging()

# Configure Redis broker
redis_broker = RedisBroker(url=settings.redis_url)  # type: ignore[no-untyped-call]
dramatiq.set_broker(redis_broker)

# Import all tasks to register them with Dramatiq (must be after broker setup)
import printorders.tasks.maintenance  # noqa: E402, F401
