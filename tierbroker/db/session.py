"""Async Session Factory — raw session factory for code running outside FastAPI.

Invariants:
    - Returns sessions with expire_on_commit=False, same as DatabaseSessionManager

Design Decisions:
    - Kept apart from infrastructure/database.py: alembic, scripts, test fixtures
      and the SQL audit sink need a factory without the request-scoped manager
"""

from sqlalchemy.ext.asyncio import (
    AsyncEngine, AsyncSession, create_async_engine, async_sessionmaker,
)


def create_session_factory(
    database_url: str | None = None,
    engine: AsyncEngine | None = None,
) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to `engine`, or to a new engine for `database_url`."""
    if engine is None:
        if database_url is None:
            raise ValueError("database_url or engine is required")
        engine = create_async_engine(database_url, echo=False)
    return async_sessionmaker(
        engine, class_=AsyncSession, expire_on_commit=False,
    )
