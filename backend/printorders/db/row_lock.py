"""Row-level locks (SELECT ... FOR UPDATE) scoped to the caller's transaction."""

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Generic, TypeVar

import structlog
from sqlalchemy import and_
from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement
from sqlmodel import SQLModel, select

logger = structlog.get_logger(__name__)

TModel = TypeVar("TModel", bound=SQLModel)


class RowLockError(Exception):
    """Base lock exception."""


class RowLockedError(RowLockError):
    """Row is locked by another transaction (nowait mode)."""


class RowNotFoundError(RowLockError):
    """No row matches the predicate, or every match is locked (skip_locked mode)."""


class LockNotAcquiredError(RowLockError):
    """Attempted to use lock without acquiring it first."""


@dataclass
class RowLock(Generic[TModel]):
    """Acquired lock on a database row.

    Unlike a savepoint-based lock this never commits: the lock is held until
    the surrounding transaction ends, so the caller's unit of work stays
    atomic. MUST be used as async context manager:

        async with locker.acquire() as lock:
            await lock.update_record(order_id=order_id)
    """

    session: AsyncSession
    model_class: type[TModel]
    predicate: ColumnElement[bool]
    nowait: bool = False
    skip_locked: bool = False

    record: TModel | None = field(default=None, init=False)
    _acquired: bool = field(default=False, init=False)

    @property
    def name(self) -> str:
        return self.model_class.__name__

    def _predicate_to_text(self) -> str:
        """Format predicate for error messages."""
        bind = self.session.get_bind()
        compiled = self.predicate.compile(
            dialect=bind.dialect,
            compile_kwargs={"render_postcompile": True},
        )
        return f"{compiled} | params={compiled.params}"

    def _check_acquired(self) -> None:
        if not self._acquired or self.record is None:
            raise LockNotAcquiredError(f"{self.name}: Lock must be used with 'async with locker.acquire() as lock:'")

    async def update_record(self, **fields: object) -> None:
        """Update record fields and flush (keeps transaction open)."""
        self._check_acquired()
        for key, value in fields.items():
            setattr(self.record, key, value)
        await self.session.flush()

    def __enter__(self) -> None:
        raise TypeError(f"{self.__class__.__name__} must be used with 'async with', not 'with'")

    def __exit__(self, *args: object) -> None:
        pass  # Never reached

    async def __aenter__(self) -> "RowLock[TModel]":
        stmt = (
            select(self.model_class)
            .where(self.predicate)
            .with_for_update(nowait=self.nowait, skip_locked=self.skip_locked)
            # Re-read the row even if an older copy sits in the identity map
            .execution_options(populate_existing=True)
        )
        try:
            res = await self.session.execute(stmt)
        except (OperationalError, DBAPIError) as e:
            txt = str(e).lower()
            if "lock" in txt:
                raise RowLockedError(f"{self.name}: {self._predicate_to_text()} locked by another transaction") from e
            raise

        self.record = res.scalars().first()
        if self.record is None:
            raise RowNotFoundError(f"{self.name}: {self._predicate_to_text()} not found")

        self._acquired = True
        return self

    async def __aexit__(self, exc_type: type[BaseException] | None, exc: BaseException | None, tb: object) -> None:
        self._acquired = False
        if exc_type is None:
            await self.session.flush()


class RowLocker(Generic[TModel]):
    """Reusable lock factory.

    Multiple predicates are AND-ed together:
        locker = RowLocker(
            session, UploadedFile,
            UploadedFile.id == file_id,
            UploadedFile.order_id.is_(None),
            skip_locked=True,
        )
        async with locker.acquire() as lock:
            ...
    """

    def __init__(
        self,
        session: AsyncSession,
        model_class: type[TModel],
        *predicates: ColumnElement[bool],
        predicate_factory: Callable[[type[TModel]], ColumnElement[bool]] | None = None,
        nowait: bool = False,
        skip_locked: bool = False,
    ) -> None:
        if nowait and skip_locked:
            raise TypeError("nowait and skip_locked are mutually exclusive")
        self._session = session
        self._model_class = model_class
        self._nowait = nowait
        self._skip_locked = skip_locked

        if predicate_factory is not None:
            if predicates:
                raise TypeError("Pass either predicate_factory or predicates, not both")
            self._predicate: ColumnElement[bool] = predicate_factory(model_class)
        else:
            if not predicates:
                raise TypeError("You must pass either predicate_factory or at least one predicate")
            self._predicate = predicates[0] if len(predicates) == 1 else and_(*predicates)

    def acquire(self) -> RowLock[TModel]:
        """Create a lock context manager for the row."""
        return RowLock(
            session=self._session,
            model_class=self._model_class,
            predicate=self._predicate,
            nowait=self._nowait,
            skip_locked=self._skip_locked,
        )
