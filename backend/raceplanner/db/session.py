"""
Database Session Management

Provides the async engine used by the SQL record store.
"""

from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import StaticPool


def _get_async_url(url: str) -> str:
    """Convert sync database URL to async version."""
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///")
    elif url.startswith("sqlite://"):
        return url.replace("sqlite://", "sqlite+aiosqlite://")
    elif url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://")
    return url


def create_engine_for(database_url: str) -> AsyncEngine:
    """Create an async engine for ``database_url``."""
    async_url = _get_async_url(database_url)

    if async_url.startswith("sqlite"):
        if ":memory:" in async_url or async_url.endswith("://"):
            # One shared connection, otherwise every connection gets its own empty DB
            return create_async_engine(
                async_url,
                connect_args={"check_same_thread": False},
                poolclass=StaticPool,
            )
        return create_async_engine(
            async_url,
            connect_args={"check_same_thread": False}
        )
    elif async_url.startswith("postgresql"):
        # PostgreSQL with connection pool settings
        return create_async_engine(
            async_url,
            pool_size=5,
            max_overflow=10,
            pool_timeout=30,
            pool_recycle=1800,  # 30 minutes
        )
    return create_async_engine(async_url)


async def init_models(engine: AsyncEngine) -> None:
    """Create tables that don't exist yet."""
    from raceplanner.models import Base

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
