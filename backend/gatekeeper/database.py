import functools
import logging
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager
from typing import Any, TypeVar, cast

from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from .config import Settings
from .errors import StoreUnavailableError

logger = logging.getLogger("gatekeeper.store")

F = TypeVar("F", bound=Callable[..., Awaitable[Any]])


def create_engine(settings: Settings) -> AsyncEngine:
    return create_async_engine(
        settings.database_url,
        echo=settings.debug,
        future=True,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        pool_recycle=settings.db_pool_recycle,
        pool_pre_ping=settings.db_pool_pre_ping,
    )


# expire_on_commit=False keeps ORM objects readable after commit without a
# round-trip. Their attributes reflect the state at commit time: re-query or
# session.refresh(obj) before relying on them after another writer may have
# touched the row.
def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


def is_unavailable(exc: BaseException) -> bool:
    if isinstance(exc, (OperationalError, InterfaceError)):
        return True
    return isinstance(exc, DBAPIError) and bool(exc.connection_invalidated)


@asynccontextmanager
async def store_errors(operation: str) -> AsyncIterator[None]:
    """Translate infrastructure failures raised by the driver into StoreUnavailableError.

    Everything else (integrity errors included) propagates unchanged so the
    caller can map it to a domain error.
    """
    try:
        yield
    except DBAPIError as exc:
        if not is_unavailable(exc):
            raise
        logger.error("store_unavailable operation=%s error=%s", operation, exc)
        raise StoreUnavailableError(
            f"Store unavailable during {operation}",
            details={"operation": operation},
        ) from exc


def store_operation(operation: str) -> Callable[[F], F]:
    """Decorator form of store_errors for repository coroutines."""

    def decorator(func: F) -> F:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Any:
            async with store_errors(operation):
                return await func(*args, **kwargs)

        return cast(F, wrapper)

    return decorator
