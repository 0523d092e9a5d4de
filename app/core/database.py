"""
Database connection and session management
Uses SQLAlchemy async engine (asyncpg for PostgreSQL)
Reference: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html
"""
import logging

from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import NullPool

from app.core.config import settings

logger = logging.getLogger(__name__)


# Validate DATABASE_URL is set
if not settings.DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is not set. "
        "Please set it in your .env file or environment variables."
    )


def _connect_args(database_url: str) -> dict:
    """
    Driver-specific connection arguments.

    Only asyncpg understands command_timeout/server_settings; other drivers
    (aiosqlite for local runs) get no extra arguments.
    Reference: https://magicstack.github.io/asyncpg/current/api/index.html#connection
    """
    if database_url.startswith("postgresql+asyncpg://"):
        return {
            "command_timeout": 60,
            "server_settings": {
                "application_name": "server_directory_api",
            },
        }
    return {}


# Each request gets a fresh connection; connection reuse across serverless
# invocations causes connection termination errors
# Reference: https://docs.sqlalchemy.org/en/20/core/pooling.html#switching-pool-implementations
engine = create_async_engine(
    settings.DATABASE_URL,
    echo=False,  # Set to True for SQL query logging (useful for debugging)
    poolclass=NullPool,
    connect_args=_connect_args(settings.DATABASE_URL),
)


# Reference: https://docs.sqlalchemy.org/en/20/orm/extensions/asyncio.html#session-basics
async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,  # Keep objects accessible after commit
    autocommit=False,
    autoflush=False,
)


class Base(DeclarativeBase):
    """Base class for SQLAlchemy declarative models"""
    pass


# Dependency to get database session
# Reference: https://fastapi.tiangolo.com/tutorial/dependencies/
async def get_db() -> AsyncSession:
    """
    Dependency function that provides a database session

    One request is one transaction:
    - Commits on success
    - Rolls back on error, so a raw-row write never outlives a failed
      aggregate write
    - Always closes the session
    """
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            try:
                await session.rollback()
            except Exception as rollback_error:
                # Connection is likely already closed
                logger.warning(f"Rollback failed: {rollback_error}")
            raise
        finally:
            await session.close()
