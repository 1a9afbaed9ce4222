# packages/database/session.py

from contextlib import asynccontextmanager
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.ext.asyncio.engine import AsyncEngine

from packages.classifier_lib.config import settings


def create_engine(url: str | None = None) -> AsyncEngine:
    """Creates an async engine for the results database (defaults to settings)."""
    return create_async_engine(url or settings.db.URL, echo=False)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(
        bind=engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@asynccontextmanager
async def get_db_session(session_factory: async_sessionmaker[AsyncSession]):
    """Provides a transactional scope around a series of operations."""
    session = session_factory()
    try:
        yield session
        await session.commit()
    except Exception:
        await session.rollback()
        raise
    finally:
        await session.close()
