"""Database engine and session factory setup."""

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel


def create_engine(db_url: str, pool_size: int = 20) -> AsyncEngine:
    """Create the async engine for the configured database.

    SQLite (used for local runs and tests) gets a single shared connection,
    since an in-memory database only lives as long as its connection.

    Args:
        db_url: SQLAlchemy async URL (postgresql+psycopg://... or sqlite+aiosqlite://...)
        pool_size: Maximum number of pooled connections for server databases

    Returns:
        Configured async engine
    """
    if db_url.startswith("sqlite"):
        return create_async_engine(
            db_url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
            echo=False,
        )

    return create_async_engine(
        db_url,
        pool_size=pool_size,
        max_overflow=0,
        pool_pre_ping=True,
        echo=False,  # SQL is not logged, structlog covers application events
    )


def setup_db_session(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create async session factory bound to an engine.

    Args:
        engine: Async engine from create_engine()

    Returns:
        Async session factory for creating database sessions
    """
    return async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,  # Prevent lazy loading issues after commit
    )


async def create_schema(engine: AsyncEngine) -> None:
    """Create any missing tables for the registered SQLModel entities."""
    # Register all tables on the metadata before creating them
    import attendify.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
