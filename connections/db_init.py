"""
Schema bootstrap and health check for the BOQ database.
"""
import logging
from typing import List, Optional
from sqlalchemy import text, inspect
from sqlalchemy.ext.asyncio import AsyncEngine
from connections.postgres_connection import DatabaseConnection
from models import Base

logger = logging.getLogger(__name__)


async def check_db_connection_async(engine: Optional[AsyncEngine] = None) -> bool:
    """Return True when ``SELECT 1`` succeeds on the engine."""
    engine = engine or DatabaseConnection.get_async_engine()
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except Exception as e:
        logger.error(f"Database connection failed: {e}")
        return False


async def missing_tables_async(engine: Optional[AsyncEngine] = None) -> List[str]:
    """Tables declared on the ORM metadata that the database does not have."""
    engine = engine or DatabaseConnection.get_async_engine()
    async with engine.connect() as conn:
        existing = await conn.run_sync(
            lambda sync_conn: set(inspect(sync_conn).get_table_names())
        )
    return sorted(name for name in Base.metadata.tables if name not in existing)


async def init_db_async(create_tables: bool = False, engine: Optional[AsyncEngine] = None) -> List[str]:
    """
    Verify the BOQ schema, optionally creating it.

    Args:
        create_tables: run ``create_all`` for projects, catalog,
            configuration and BOQ version tables before checking
        engine: engine to use instead of the shared one

    Returns:
        Names of tables still missing afterwards (empty when the schema is complete)
    """
    engine = engine or DatabaseConnection.get_async_engine()
    if not await check_db_connection_async(engine):
        raise RuntimeError("Cannot connect to database")

    try:
        if create_tables:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
            logger.info(f"Ensured {len(Base.metadata.tables)} BOQ tables")

        missing = await missing_tables_async(engine)
    except Exception as e:
        logger.error(f"Database initialization failed: {e}", exc_info=True)
        raise

    if missing:
        logger.warning(f"BOQ schema incomplete, missing tables: {', '.join(missing)}")
    else:
        logger.info("BOQ schema ready")
    return missing
