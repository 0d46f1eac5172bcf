"""Explicit application context.

Everything that holds a connection lives on one `AppContext`, built by
the FastAPI lifespan at startup, stored on `app.state.context`, and
closed at shutdown. It is never re-created while requests are served.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx
import structlog
from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker

from designhub.core.config import Settings

if TYPE_CHECKING:
    from designhub.exports.cache import ArtifactCache

logger = structlog.get_logger(__name__)


@dataclass
class AppContext:
    settings: Settings
    engine: AsyncEngine
    session_factory: async_sessionmaker[AsyncSession]
    http: httpx.AsyncClient
    cache: ArtifactCache
    store_available: bool = False

    async def aclose(self) -> None:
        await self.cache.aclose()
        await self.http.aclose()
        await self.engine.dispose()
        logger.info("context_closed")


async def build_context(settings: Settings) -> AppContext:
    """Connect to the document store, open the HTTP client and the export cache.

    An unreachable database does not abort startup: the context is
    marked `store_available=False` and the data endpoints answer 503.
    """
    from designhub.db.session import build_engine, build_session_factory, prepare_database
    from designhub.exports.cache import build_cache

    engine = build_engine(settings)
    ctx = AppContext(
        settings=settings,
        engine=engine,
        session_factory=build_session_factory(engine),
        http=httpx.AsyncClient(timeout=settings.remote_timeout_seconds),
        cache=build_cache(settings),
    )
    try:
        await prepare_database(engine)
        ctx.store_available = True
        logger.info("database_connected", url=engine.url.render_as_string(hide_password=True))
    except Exception as exc:
        logger.warning(
            "database_unavailable",
            error=str(exc),
            hint="the server keeps running without the document store",
        )
    return ctx


def get_context(request: Request) -> AppContext:
    """FastAPI dependency returning the context built at startup."""
    return request.app.state.context
