"""Database engine and session configuration."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

import structlog
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

# Register all models with SQLAlchemy (required for relationship resolution)
import printorders.models  # noqa: F401
from printorders.config import Settings, settings

logger = structlog.get_logger(__name__)


class Database:
    """Owned engine + session maker, injected into every service.

    One unit of work (an order creation, one GC file, one reconciliation
    batch) gets one session and one transaction:

        async with db.transaction() as session:
            session.add(order)
        # committed here, rolled back if the block raised
    """

    def __init__(self, url: str, **engine_kwargs: Any) -> None:
        self.url = url
        self.engine: AsyncEngine = create_async_engine(
            url,
            echo=False,  # SQL logging controlled via structlog configuration
            future=True,
            **engine_kwargs,
        )
        self.session_maker = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @classmethod
    def from_settings(cls, config: Settings | None = None) -> "Database":
        """Create a pooled handle for the configured PostgreSQL database."""
        config = config or settings
        return cls(
            config.database_url,
            pool_size=config.database_pool_size,
            max_overflow=config.database_max_overflow,
            pool_pre_ping=True,  # Verify connections before use
            pool_recycle=300,  # Recycle connections after 5 minutes
        )

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession]:
        """Plain session; the caller decides when to commit."""
        async with self.session_maker() as session:
            yield session

    @asynccontextmanager
    async def transaction(self) -> AsyncGenerator[AsyncSession]:
        """Session that commits on success and rolls back on any exception."""
        async with self.session_maker() as session:
            try:
                yield session
                await session.commit()
            except BaseException:
                await session.rollback()
                raise

    async def dispose(self) -> None:
        """Dispose of the engine and release all connections.

        Should be called during application shutdown.
        """
        await self.engine.dispose()
