"""FastAPI dependencies for the read API."""

from collections.abc import AsyncGenerator

import redis.asyncio as redis
from sqlalchemy.ext.asyncio import AsyncSession

from valueengine.config import get_settings
from valueengine.models.base import async_session_factory


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Read-only session; the API never writes, so nothing is committed."""
    async with async_session_factory() as session:
        try:
            yield session
        finally:
            await session.rollback()


async def get_redis() -> AsyncGenerator[redis.Redis, None]:
    """Client for the Celery broker, used by the readiness check."""
    client = redis.from_url(get_settings().redis_url, socket_connect_timeout=2)
    try:
        yield client
    finally:
        await client.aclose()
