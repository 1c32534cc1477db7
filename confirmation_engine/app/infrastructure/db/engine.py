from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine

from confirmation_engine.app.config import settings


def create_app_async_engine(*, url: str | None = None, echo: bool = False) -> AsyncEngine:
    """
    AsyncEngine for the event store and block tracker tables.

    Defaults to settings.database_url (postgresql+asyncpg://...); pass `url`
    to point a task or script at another database, e.g. sqlite+aiosqlite.
    """
    return create_async_engine(
        url or settings.database_url,
        echo=echo,
        pool_pre_ping=True,
    )
