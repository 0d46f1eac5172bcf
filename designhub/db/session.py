"""Async database engine and session factory construction.

Nothing here is module-level state: `build_engine()` is called once by
the application context at startup and the engine is disposed at
shutdown. Request handlers receive sessions through `get_db`.
"""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy import text
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from designhub.core.config import Settings
from designhub.core.context import AppContext, get_context
from designhub.core.errors import StoreUnavailableError
from designhub.db.models import Base


def build_engine(settings: Settings) -> AsyncEngine:
    kwargs: dict = {"echo": False, "pool_pre_ping": True}
    if not settings.database_url.startswith("sqlite"):
        kwargs.update(pool_size=5, max_overflow=5, pool_timeout=15)
    return create_async_engine(settings.database_url, **kwargs)


def build_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def prepare_database(engine: AsyncEngine) -> None:
    """Ping the database and create missing tables. Raises when unreachable."""
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
        await conn.run_sync(Base.metadata.create_all)


async def get_db(
    ctx: AppContext = Depends(get_context),
) -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency that provides a request-scoped DB session.

    Answers 503 when the store was unreachable at startup. The session
    commits on success and rolls back on error.
    """
    require_store(ctx)
    async with ctx.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def require_store(ctx: AppContext = Depends(get_context)) -> None:
    """Route dependency: 503 unless the document store is connected."""
    if not ctx.store_available:
        raise StoreUnavailableError(
            "Database is not connected. Check DATABASE_URL and restart the server."
        )
