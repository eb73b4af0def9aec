import logging
from typing import AsyncGenerator, Optional
from sqlalchemy.ext.asyncio import create_async_engine, AsyncEngine, AsyncSession, async_sessionmaker
from core.settings import settings

logger = logging.getLogger(__name__)


class DatabaseConnection:
    """Singleton database connection manager."""

    _async_engine: Optional[AsyncEngine] = None
    _async_session_factory: Optional[async_sessionmaker] = None

    @classmethod
    def get_async_engine(cls) -> AsyncEngine:
        """Get or create asynchronous SQLAlchemy engine."""
        if cls._async_engine is None:
            db_url = settings.async_database_url
            options = {"echo": settings.DB_ECHO, "pool_pre_ping": True}
            if not db_url.startswith("sqlite"):
                options.update(
                    pool_size=settings.DB_POOL_SIZE,
                    max_overflow=settings.DB_MAX_OVERFLOW,
                    pool_recycle=3600,
                )

            cls._async_engine = create_async_engine(db_url, **options)
            logger.info("Asynchronous database engine created")

        return cls._async_engine

    @classmethod
    def get_async_session_factory(cls) -> async_sessionmaker:
        """Get or create asynchronous session factory."""
        if cls._async_session_factory is None:
            engine = cls.get_async_engine()
            cls._async_session_factory = make_session_factory(engine)
            logger.info("Asynchronous session factory created")

        return cls._async_session_factory

    @classmethod
    async def close_async_engine(cls):
        """Close async engine properly."""
        if cls._async_engine:
            await cls._async_engine.dispose()
            cls._async_engine = None
            cls._async_session_factory = None
            logger.info("Asynchronous engine disposed")


def make_session_factory(engine: AsyncEngine) -> async_sessionmaker:
    """Session factory with the settings every repository expects."""
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        autoflush=False,
        expire_on_commit=False
    )


async def get_async_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Get an asynchronous database session.

    Example:
        async for session in get_async_session():
            # Use session
    """
    AsyncSessionLocal = DatabaseConnection.get_async_session_factory()
    async with AsyncSessionLocal() as session:
        yield session
