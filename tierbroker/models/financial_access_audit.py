"""FinancialAccessAudit ORM — one row per financial access decision.

Invariants:
    - Written for every filter/permission check, granted or not
    - Rows are never updated

Design Decisions:
    - resource_id stored as text: audited resources are jobs, summaries and
      codes, which do not share an id type
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, Boolean, DateTime
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from tierbroker.db.base import Base


class FinancialAccessAudit(Base):
    """Audit log entry for financial data access."""
    __tablename__ = "financial_access_audit"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    viewer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), nullable=False, index=True,
    )
    viewer_role: Mapped[str] = mapped_column(String(20), nullable=False)
    permission: Mapped[str] = mapped_column(String(50), nullable=False)
    resource_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    resource_type: Mapped[str | None] = mapped_column(
        String(30), nullable=True,
    )
    granted: Mapped[bool] = mapped_column(Boolean, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
