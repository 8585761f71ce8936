"""
Async SQLAlchemy engine and session factory for the passport store.

PostgreSQL is reached through ``asyncpg``.  A ``sqlite+aiosqlite`` URL is
accepted for local runs; SQLite has no connection pool to size, so the
pool options only apply to server databases.
"""

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from carbon_passport.config import settings


def _engine_options(url: str) -> dict:
    if make_url(url).get_backend_name() == "sqlite":
        return {}
    return {"pool_size": 10, "max_overflow": 10, "pool_pre_ping": True}


engine = create_async_engine(
    settings.database_url, echo=False, **_engine_options(settings.database_url)
)

# Objects stay readable after commit; the submission flow commits twice
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)


class Base(DeclarativeBase):
    """Declarative base shared by the passport, route, station and survey models."""
