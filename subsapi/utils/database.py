"""
Database utilities and connection management
"""

import logging
from datetime import datetime, timezone
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker, AsyncSession
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase
from typing import AsyncGenerator

from subsapi.config import settings

logger = logging.getLogger(__name__)

def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        return {}
    return {"pool_pre_ping": True, "pool_recycle": 300, "pool_size": settings.DB_POOL_SIZE}

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG, **_engine_options(settings.DATABASE_URL))

# Session factory
AsyncSessionLocal = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False
)

class Base(DeclarativeBase):
    """Base class for all database models"""
    pass

def utcnow() -> datetime:
    """Timezone-aware current UTC time used for every timestamp we write"""
    return datetime.now(timezone.utc)

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session; anything left uncommitted by a failed request is rolled back"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise

async def create_tables():
    """Create missing tables at startup; schema changes go through alembic"""
    async with engine.begin() as conn:
        from subsapi import models  # noqa: F401
        await conn.run_sync(Base.metadata.create_all)

async def commit_side_effect(db: AsyncSession, what: str) -> bool:
    """Commit rows written by a best-effort side effect.

    A failure is logged and rolled back, never raised; the caller must refresh
    any instance it still needs because rollback expires the session.
    """
    try:
        await db.commit()
        return True
    except SQLAlchemyError as e:
        logger.error(f"Failed to persist {what}: {e}")
        await db.rollback()
        return False
