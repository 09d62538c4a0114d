import asyncpg
from .config import settings

# Global connection pool
pool: asyncpg.Pool = None


async def create_db_pool():
    """Create database connection pool"""
    global pool
    pool = await asyncpg.create_pool(
        settings.database_url,
        min_size=1,
        max_size=max(settings.lookback_days, 2) + 1,
        command_timeout=settings.query_timeout
    )


async def close_db_pool():
    """Close database connection pool"""
    global pool
    if pool:
        await pool.close()
        pool = None


def get_pool() -> asyncpg.Pool:
    """Return the live pool, failing loudly if the app has not started it"""
    if pool is None:
        raise RuntimeError("Database pool not initialized")
    return pool

