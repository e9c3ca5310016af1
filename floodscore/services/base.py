"""
Base service class for FloodScore.

Provides async database session management and the optimistic retry loop
shared by every transactional operation.
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Awaitable, Callable, Optional, TypeVar

from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError

from floodscore.constants import RetryConstants
from floodscore.utils.exceptions import DatabaseError, TransactionError, TransactionTimeoutError

logger = logging.getLogger(__name__)

T = TypeVar('T')

# Concurrent writers on the same rows surface as one of these
RETRYABLE_ERRORS = (StaleDataError, IntegrityError, OperationalError)


class BaseService:
    """Base class for all services with async database session management."""

    def __init__(self, session_factory, max_retries: int = 3, timeout: Optional[float] = None):
        """
        Initialize base service with session factory.

        Args:
            session_factory: Async session factory from Database class
            max_retries: Attempts made by execute_with_retry before giving up
            timeout: Per-attempt time box in seconds, None for no limit
        """
        self.session_factory = session_factory
        self.max_retries = max_retries
        self.timeout = timeout

    @asynccontextmanager
    async def get_session(self) -> AsyncGenerator[AsyncSession, None]:
        """Provide a transactional scope for async database operations."""
        session = self.session_factory()
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def execute_with_retry(self, func: Callable[[], Awaitable[T]], operation: str) -> T:
        """
        Run a transactional unit, retrying it when a concurrent writer wins.

        Each call of func must open its own session so a retry starts from a
        fresh read.

        Raises:
            TransactionError: retries exhausted
            TransactionTimeoutError: an attempt exceeded the time box
            DatabaseError: any other store failure
        """
        for attempt in range(self.max_retries):
            try:
                if self.timeout is not None:
                    return await asyncio.wait_for(func(), timeout=self.timeout)
                return await func()
            except asyncio.TimeoutError:
                logger.error(f"{operation} timed out after {self.timeout}s")
                raise TransactionTimeoutError(operation, self.timeout)
            except RETRYABLE_ERRORS as e:
                if attempt == self.max_retries - 1:
                    logger.error(f"{operation} failed after {self.max_retries} attempts: {e}")
                    raise TransactionError(operation, self.max_retries) from e
                delay = min(
                    RetryConstants.BASE_DELAY_SECONDS * (2 ** attempt),
                    RetryConstants.MAX_DELAY_SECONDS,
                )
                logger.warning(f"Retry attempt {attempt + 1} for {operation}: {e}")
                await asyncio.sleep(delay)
            except SQLAlchemyError as e:
                logger.error(f"Database error during {operation}: {e}", exc_info=True)
                raise DatabaseError(operation, str(e)) from e
