"""
Database session management.

Provides the async SQLAlchemy engine, the session factory, and the
``get_db`` dependency used by the API routes.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from invtracker.core.config import Settings, settings


def build_engine(config: Settings) -> AsyncEngine:
    """Create the async engine for PostgreSQL or in-memory SQLite."""
    if config.USE_SQLITE:
        # StaticPool makes every connection share the same in-memory database;
        # otherwise each connection would see its own empty one.
        from sqlalchemy.pool import StaticPool

        return create_async_engine(
            config.DATABASE_URL,
            echo=config.DEBUG,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_async_engine(
        config.DATABASE_URL,
        echo=config.DEBUG,
        pool_size=config.DB_POOL_SIZE,
        max_overflow=config.DB_MAX_OVERFLOW,
        pool_timeout=config.DB_POOL_TIMEOUT,
        pool_recycle=config.DB_POOL_RECYCLE,
        pool_pre_ping=True,
    )


def build_sessionmaker(bind: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    # expire_on_commit=False: attributes stay readable after commit without
    # a lazy (sync) reload, which async sessions cannot do.
    return async_sessionmaker(bind=bind, class_=AsyncSession, expire_on_commit=False)


engine = build_engine(settings)
AsyncSessionLocal = build_sessionmaker(engine)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    FastAPI dependency that yields an async database session.

    The session is closed when the request finishes.
    """
    async with AsyncSessionLocal() as session:
        yield session
