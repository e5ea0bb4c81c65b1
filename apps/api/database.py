"""
Async SQLAlchemy engine, session factory and declarative base.
"""

from typing import AsyncGenerator

from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from config import settings


def _async_database_url(url: str) -> str:
    if url.startswith("postgresql://"):
        return url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if url.startswith("sqlite:///"):
        return url.replace("sqlite:///", "sqlite+aiosqlite:///", 1)
    return url


engine = create_async_engine(_async_database_url(settings.DATABASE_URL), pool_pre_ping=True)
async_session_maker = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield a database session per request."""
    async with async_session_maker() as session:
        yield session


def dialect_insert(session: AsyncSession, model):
    """Return an INSERT construct supporting ON CONFLICT for the session's dialect."""
    dialect_name = session.get_bind().dialect.name
    if dialect_name == "postgresql":
        return postgresql.insert(model)
    if dialect_name == "sqlite":
        return sqlite.insert(model)
    raise RuntimeError(f"Upserts are not supported on dialect '{dialect_name}'")
