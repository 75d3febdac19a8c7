"""Database connection and session management using SQLAlchemy async ORM"""
import logging
from typing import AsyncGenerator, Optional

from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

logger = logging.getLogger(__name__)

# Base class for declarative models
Base = declarative_base()

# Initialized by init_engine() when the application is created
engine: Optional[AsyncEngine] = None
AsyncSessionLocal: Optional[async_sessionmaker] = None


def normalize_database_url(database_url: str) -> str:
    """
    Rewrite sync driver URLs to their async equivalents.

    postgresql:// becomes postgresql+asyncpg:// and sqlite:/// becomes
    sqlite+aiosqlite:///.
    """
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign keys off; cascades depend on them
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def init_engine(database_url: str) -> AsyncEngine:
    """
    Create the async engine and session factory.

    Args:
        database_url: SQLAlchemy URL (sync URLs are rewritten to async drivers)

    Returns:
        The new engine
    """
    global engine, AsyncSessionLocal

    url = normalize_database_url(database_url)

    if url.startswith("sqlite"):
        engine = create_async_engine(url, echo=False, connect_args={"timeout": 30})
        event.listen(engine.sync_engine, "connect", _enable_sqlite_foreign_keys)
    else:
        # pool_size=20 + max_overflow=30 caps the pool at 50 connections
        engine = create_async_engine(
            url,
            echo=False,
            pool_size=20,
            max_overflow=30,
            pool_recycle=3600,
            pool_pre_ping=True,
        )

    AsyncSessionLocal = async_sessionmaker(
        engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    logger.info(f"Database engine initialized ({engine.url.get_backend_name()})")
    return engine


def get_session_factory() -> async_sessionmaker:
    """Return the session factory, failing loudly if the engine is not set up"""
    if AsyncSessionLocal is None:
        raise RuntimeError("Database engine not initialized; call init_engine() first")
    return AsyncSessionLocal


async def create_all() -> None:
    """Create all tables and indexes that do not exist yet"""
    import coursehub.models  # noqa: F401  (registers models on Base.metadata)

    if engine is None:
        raise RuntimeError("Database engine not initialized; call init_engine() first")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def dispose_engine() -> None:
    """Close every pooled connection"""
    global engine, AsyncSessionLocal
    if engine is not None:
        await engine.dispose()
        logger.info("Database engine disposed")
    engine = None
    AsyncSessionLocal = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """
    Dependency for FastAPI endpoints to get database session.

    Usage in FastAPI:
        @router.get("/items")
        async def read_items(db: AsyncSession = Depends(get_db)):
            result = await db.execute(select(Item))
            return result.scalars().all()
    """
    async with get_session_factory()() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()
