"""
Shared session handling for repositories.
"""
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from connections.postgres_connection import DatabaseConnection
from core.exceptions import BackendUnavailable

logger = logging.getLogger(__name__)

UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, OSError)


class AsyncRepository:
    """Base for async repositories; uses the shared factory unless one is given."""

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.AsyncSessionLocal = session_factory or DatabaseConnection.get_async_session_factory()

    @asynccontextmanager
    async def session(self, operation: str) -> AsyncIterator[AsyncSession]:
        """Open a session, turning connectivity failures into ``BackendUnavailable``."""
        try:
            async with self.AsyncSessionLocal() as session:
                yield session
        except UNAVAILABLE_ERRORS as e:
            logger.error(f"Backend unavailable during {operation}: {e}")
            raise BackendUnavailable(operation, e) from e
