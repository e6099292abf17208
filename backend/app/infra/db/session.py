"""Database session dependency."""
from typing import AsyncIterator

from sqlalchemy.ext.asyncio import AsyncSession

from app.infra.db import base


async def get_db() -> AsyncIterator[AsyncSession]:
    """Yield a session per request; roll back whatever the request left uncommitted."""
    if base.AsyncSessionLocal is None:
        raise RuntimeError("Database engine is not configured")
    async with base.AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise
