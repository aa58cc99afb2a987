"""PostgreSQL database connection and queries."""
import asyncpg
from typing import Optional, List
import logging

from services.shared import Citizen, Candidate

logger = logging.getLogger(__name__)


class Database:
    """Async PostgreSQL access to the durable election tables."""

    def __init__(self, dsn: str, min_size: int = 2, max_size: int = 10):
        self.dsn = dsn
        self.min_size = min_size
        self.max_size = max_size
        self.pool: Optional[asyncpg.Pool] = None

    async def initialize(self):
        """Initialize database connection pool."""
        try:
            self.pool = await asyncpg.create_pool(
                self.dsn,
                min_size=self.min_size,
                max_size=self.max_size,
                command_timeout=60
            )
            logger.info("PostgreSQL connection pool initialized successfully")

            # Verify connection
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                logger.info("PostgreSQL connection verified")

        except Exception as e:
            logger.error(f"Failed to initialize PostgreSQL connection pool: {e}")
            raise

    async def get_candidates(self) -> List[Candidate]:
        """
        Get every candidate.

        Returns:
            List of candidates ordered by id
        """
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM candidates ORDER BY id")
                return [Candidate.from_row(row) for row in rows]
        except Exception as e:
            logger.error(f"Error getting candidates: {e}")
            raise

    async def get_user(self, mynumber: str) -> Optional[Citizen]:
        """
        Get a citizen by identification number.

        Args:
            mynumber: National identification number

        Returns:
            Citizen or None if not registered
        """
        try:
            async with self.pool.acquire() as conn:
                row = await conn.fetchrow(
                    "SELECT * FROM users WHERE mynumber = $1",
                    mynumber
                )
                return Citizen.from_row(row) if row else None
        except Exception as e:
            logger.error(f"Error getting user {mynumber}: {e}")
            raise

    async def get_users(self) -> List[Citizen]:
        """Get every registered citizen (cache warm-up only)."""
        try:
            async with self.pool.acquire() as conn:
                rows = await conn.fetch("SELECT * FROM users")
                return [Citizen.from_row(row) for row in rows]
        except Exception as e:
            logger.error(f"Error getting users: {e}")
            raise

    async def delete_votes(self) -> None:
        """Delete every row from the legacy votes table."""
        try:
            async with self.pool.acquire() as conn:
                result = await conn.execute("DELETE FROM votes")
                logger.info(f"Cleared votes table: {result}")
        except Exception as e:
            logger.error(f"Error clearing votes table: {e}")
            raise

    async def check_health(self) -> bool:
        """
        Check PostgreSQL connection health.

        Returns:
            bool: True if healthy, False otherwise
        """
        try:
            if not self.pool:
                return False
            async with self.pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
                return True
        except Exception as e:
            logger.error(f"PostgreSQL health check failed: {e}")
            return False

    async def close(self):
        """Close database connection pool."""
        try:
            if self.pool:
                await self.pool.close()
                logger.info("PostgreSQL connection pool closed successfully")
        except Exception as e:
            logger.error(f"Error closing PostgreSQL connection pool: {e}")
