"""
VCSFlow - Database Connection
=============================

Async SQLAlchemy setup with connection pooling.
"""

from collections.abc import AsyncGenerator

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from vcsflow.core.config import settings


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""
    pass


# ==========================================================================
# Engine Setup
# ==========================================================================

def create_engine() -> AsyncEngine:
    """Create async database engine with connection pooling."""
    # SQLite doesn't support pool_size/max_overflow
    if settings.is_sqlite:
        return create_async_engine(
            str(settings.DATABASE_URL),
            echo=settings.DATABASE_ECHO,
            connect_args={"check_same_thread": False},
        )
    return create_async_engine(
        str(settings.DATABASE_URL),
        pool_size=settings.DATABASE_POOL_SIZE,
        max_overflow=settings.DATABASE_MAX_OVERFLOW,
        echo=settings.DATABASE_ECHO,
        pool_pre_ping=True,
    )


engine = create_engine()


# ==========================================================================
# Session Factory
# ==========================================================================

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


# ==========================================================================
# Session Dependencies
# ==========================================================================

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency that provides a database session.

    Services commit their own units of work; anything left pending when
    the request ends is committed here, or rolled back if the request
    raised.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


# ==========================================================================
# Lifecycle
# ==========================================================================

async def init_db() -> None:
    """Initialize database (create tables if not exist)."""
    async with engine.begin() as conn:
        # Import all models to register them
        from vcsflow.core import models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Close database connections."""
    await engine.dispose()
