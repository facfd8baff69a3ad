"""Async SQLAlchemy engine setup for the flow collector database.

Uses asyncpg for PostgreSQL with connection pooling. The engine is
owned by the runtime that creates it and disposed on shutdown.
"""

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.pool import NullPool

from flowmap.common.config import Settings, get_settings
from flowmap.common.logging import get_logger

logger = get_logger(__name__)


def create_engine(settings: Settings | None = None) -> AsyncEngine:
    """Create async SQLAlchemy engine with connection pooling.

    Args:
        settings: Application settings. Uses global settings if not provided.

    Returns:
        Configured async engine instance.
    """
    if settings is None:
        settings = get_settings()

    db_settings = settings.database

    engine_kwargs: dict = {
        "echo": db_settings.echo,
        "connect_args": {
            "server_settings": {"application_name": "flowmap"},
            "command_timeout": db_settings.command_timeout,
        },
    }

    if settings.environment == "development":
        # NullPool doesn't accept pool configuration arguments
        engine_kwargs["poolclass"] = NullPool
    else:
        engine_kwargs["pool_size"] = db_settings.pool_size
        engine_kwargs["max_overflow"] = db_settings.max_overflow
        engine_kwargs["pool_timeout"] = db_settings.pool_timeout
        engine_kwargs["pool_recycle"] = db_settings.pool_recycle
        engine_kwargs["pool_pre_ping"] = True

    return create_async_engine(db_settings.async_url, **engine_kwargs)


async def check_database_connection(engine: AsyncEngine) -> bool:
    """Check if database connection is healthy.

    Returns:
        True if connection successful, False otherwise.
    """
    try:
        async with engine.connect() as conn:
            await conn.execute(text("SELECT 1"))
        return True
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Database health check failed", error=str(e))
        return False
