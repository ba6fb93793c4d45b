"""SQL Audit Sink — persists financial access decisions to financial_access_audit.

Invariants:
    - One row per AuditRecord, committed in the sink's own session
    - A failed audit write is logged and re-raised as DatabaseError

Design Decisions:
    - Own session (from a factory) instead of the caller's: an audit row must
      survive when the caller's unit of work rolls back, and must not commit
      the caller's pending changes early
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from sqlalchemy.exc import SQLAlchemyError

from tierbroker.core.financial_filter import AuditRecord
from tierbroker.infrastructure.database import map_store_error
from tierbroker.models.financial_access_audit import FinancialAccessAudit

logger = logging.getLogger(__name__)


class SqlAuditSink:
    """AuditSink implementation backed by the financial_access_audit table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    async def record(self, entry: AuditRecord) -> None:
        async with self._session_factory() as session:
            session.add(FinancialAccessAudit(
                viewer_id=entry.viewer_id,
                viewer_role=entry.viewer_role.value,
                permission=entry.permission,
                resource_id=entry.resource_id,
                resource_type=entry.resource_type,
                granted=entry.granted,
                created_at=entry.timestamp,
            ))
            try:
                await session.commit()
            except SQLAlchemyError as e:
                await session.rollback()
                logger.error(
                    f"Audit write failed: {e}",
                    extra={"actor_id": entry.viewer_id},
                )
                raise map_store_error(e)
        logger.info(
            f"Financial access {'granted' if entry.granted else 'denied'}: "
            f"{entry.permission} on {entry.resource_type}",
            extra={"actor_id": entry.viewer_id},
        )
