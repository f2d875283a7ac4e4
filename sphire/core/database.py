"""
Async SQLAlchemy engine, session factory and request-scoped sessions.
"""
from typing import AsyncGenerator, Any
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import NullPool

from sphire.core.config import settings


def _engine_options() -> dict[str, Any]:
    options: dict[str, Any] = {"echo": settings.DEBUG, "pool_pre_ping": True}
    if settings.ENVIRONMENT == "test":
        # Every test gets a fresh connection to the throwaway database
        options["poolclass"] = NullPool
    elif not settings.DATABASE_URL.startswith("sqlite"):
        options["pool_size"] = 10
        options["max_overflow"] = 20
    return options


engine = create_async_engine(settings.DATABASE_URL, **_engine_options())

AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency yielding one session per request.

    The session is committed when the endpoint returns normally and rolled
    back when it raises.

    Yields:
        AsyncSession: Database session
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create all tables registered on the model metadata."""
    import sphire.models  # noqa: F401  registers every table on Base.metadata

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def close_db() -> None:
    """Dispose of pooled connections."""
    await engine.dispose()
