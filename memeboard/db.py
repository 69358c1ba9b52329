"""
Database engine and sessions (SQLAlchemy 2.0 async over asyncpg).
"""

import asyncio
import logging
import ssl
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from urllib.parse import urlparse

from sqlalchemy.exc import DBAPIError
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from memeboard.settings import settings

logger = logging.getLogger(__name__)

# Hosts that never get TLS in "auto" mode (local dev and docker-compose service names)
LOCAL_DB_HOSTS = {"localhost", "127.0.0.1", "::1", "db", "postgres"}


class Base(DeclarativeBase):
    """Declarative base shared by every memeboard model."""
    pass


def _use_ssl(database_url: str, mode: str) -> bool:
    if mode == "require":
        return True
    if mode == "disable":
        return False
    return urlparse(database_url).hostname not in LOCAL_DB_HOSTS


def _get_connect_args() -> dict:
    """asyncpg connect arguments; TLS without verification for hosted Postgres."""
    if not _use_ssl(settings.database_url, settings.database_ssl):
        return {}

    ssl_context = ssl.create_default_context()
    ssl_context.check_hostname = False
    ssl_context.verify_mode = ssl.CERT_NONE  # Hosted providers often use self-signed certs
    return {"ssl": ssl_context}


engine = create_async_engine(
    settings.database_url,
    pool_size=settings.database_pool_size,
    max_overflow=settings.database_max_overflow,
    echo=settings.debug,
    connect_args=_get_connect_args(),
    pool_pre_ping=True,
)

async_session_maker = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
    autoflush=False,
)


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session: committed on success, rolled back on error."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


@asynccontextmanager
async def get_db_context() -> AsyncGenerator[AsyncSession, None]:
    """Same unit of work as get_db, for scripts running outside a request."""
    async with async_session_maker() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


async def init_db() -> None:
    """Create any missing tables, retrying while the database comes up."""
    parsed = urlparse(settings.database_url)
    logger.info(
        "Connecting to database %s:%s%s (ssl=%s)",
        parsed.hostname, parsed.port, parsed.path, settings.database_ssl,
    )

    # Register every table on Base.metadata
    from memeboard.models import meme, reaction, template, user, user_session  # noqa: F401

    retries = settings.database_connect_retries
    for attempt in range(1, retries + 1):
        try:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (OSError, DBAPIError) as e:
            if attempt == retries:
                logger.error("Database unreachable after %d attempts", retries)
                raise
            logger.warning(
                "Database connection attempt %d/%d failed: %s; retrying in %.0fs",
                attempt, retries, e, settings.database_retry_delay_seconds,
            )
            await asyncio.sleep(settings.database_retry_delay_seconds)
        else:
            logger.info("Database ready")
            return


async def close_db() -> None:
    """Dispose of the connection pool."""
    await engine.dispose()
