"""
Database configuration.

Async engine and session factory shared by the application.
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from injapan_affiliate.config.settings import settings


def create_engine(url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """Create async engine from settings."""
    return create_async_engine(
        url or settings.database_url,
        echo=settings.database_echo if echo is None else echo,
        pool_pre_ping=True,
    )


def create_session_maker(
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Create session maker bound to engine."""
    if engine is None:
        engine = create_engine()
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


async_engine = create_engine()
async_session_maker = create_session_maker(async_engine)
