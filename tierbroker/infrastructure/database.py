"""Database Session Manager — async connection pool, units of work and advisory locks.

Invariants:
    - A session that raises is rolled back before it is closed
    - Pooled connections are pinged before reuse and recycled hourly
    - Store exceptions are mapped to DatabaseError (core/errors.py); domain
      errors (TierBrokerError) pass through unchanged
    - unit_of_work commits exactly once or rolls back entirely

Design Decisions:
    - Module-level db_manager, created and disposed by the app lifespan
    - expire_on_commit=False: rows returned by a service stay readable after
      its unit of work commits, without an implicit async reload
    - Advisory locks only on PostgreSQL; other dialects (SQLite in tests) rely on
      the optimistic version column alone
"""

import hashlib
import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator, Iterable
from uuid import UUID

from sqlalchemy.ext.asyncio import (
    AsyncSession, create_async_engine, async_sessionmaker,
)
from sqlalchemy.exc import (
    IntegrityError, OperationalError, DBAPIError, SQLAlchemyError,
)
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import text

from tierbroker.core.errors import DatabaseError

logger = logging.getLogger(__name__)


def map_store_error(e: SQLAlchemyError) -> DatabaseError:
    """Translate a SQLAlchemy exception into the infrastructure error type."""
    if isinstance(e, IntegrityError):
        return DatabaseError("Integrity constraint violated", "commit")
    if isinstance(e, OperationalError):
        return DatabaseError("Connection or operational error", "execute")
    if isinstance(e, DBAPIError):
        return DatabaseError("Database driver error", "query")
    return DatabaseError("Database operation failed", "unknown")


class DatabaseSessionManager:
    """Owns the engine and hands out request-scoped sessions."""

    def __init__(
        self, database_url: str, pool_size: int = 20, max_overflow: int = 10,
    ):
        self.engine = create_async_engine(
            database_url,
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
        self._session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
        )

    @property
    def session_factory(self) -> async_sessionmaker[AsyncSession]:
        return self._session_factory

    @asynccontextmanager
    async def session(self) -> AsyncGenerator[AsyncSession, None]:
        """Request-scoped session; store errors surface as DatabaseError."""
        session = self._session_factory()
        try:
            yield session
        except SQLAlchemyError as e:
            await session.rollback()
            logger.error(f"DB error: {e}")
            raise map_store_error(e)
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()

    async def close(self) -> None:
        await self.engine.dispose()

    async def health_check(self) -> bool:
        """True when a trivial query round-trips."""
        try:
            async with self.session() as db:
                await db.execute(text("SELECT 1"))
            return True
        except Exception as e:
            logger.error(f"DB health check failed: {e}")
            return False


@asynccontextmanager
async def unit_of_work(db: AsyncSession) -> AsyncGenerator[AsyncSession, None]:
    """Commit once on success, roll back on any exception.

    StaleDataError is re-raised untouched so callers can retry optimistic
    conflicts; other store errors become DatabaseError.
    """
    try:
        yield db
        await db.commit()
    except StaleDataError:
        await db.rollback()
        raise
    except SQLAlchemyError as e:
        await db.rollback()
        logger.error(f"Unit of work failed: {e}")
        raise map_store_error(e)
    except Exception:
        await db.rollback()
        raise


def advisory_lock_key(root_id: UUID) -> int:
    """Stable signed 64-bit key for pg_advisory_xact_lock."""
    digest = hashlib.blake2b(root_id.bytes, digest_size=8).digest()
    return int.from_bytes(digest, "big", signed=True)


async def lock_roots(db: AsyncSession, root_ids: Iterable[UUID]) -> None:
    """Take transaction-scoped advisory locks for each root, in key order.

    Sorted acquisition keeps two re-parents that touch the same pair of trees
    from deadlocking. No-op outside PostgreSQL.
    """
    if db.bind is None or db.bind.dialect.name != "postgresql":
        return
    for key in sorted({advisory_lock_key(r) for r in root_ids}):
        await db.execute(
            text("SELECT pg_advisory_xact_lock(:key)"), {"key": key},
        )


# Set by init_db() in the application lifespan
db_manager: DatabaseSessionManager | None = None


def init_db(database_url: str, **kwargs):
    global db_manager
    db_manager = DatabaseSessionManager(database_url, **kwargs)


async def close_db() -> None:
    global db_manager
    if db_manager is not None:
        await db_manager.close()
        db_manager = None


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """FastAPI dependency yielding one session per request."""
    if not db_manager:
        raise RuntimeError("Database not initialized")
    async with db_manager.session() as session:
        yield session
