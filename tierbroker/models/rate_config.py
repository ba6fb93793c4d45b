"""RateConfig ORM — an issuer's custom pricing tier and its history ledger.

Invariants:
    - At most one current RateConfig per issuer (issuer_id unique)
    - Every update snapshots the prior row into rate_config_history first,
      in the same unit of work — no store-side triggers involved
    - History rows are append-only; superseded_at marks when the snapshot stopped applying

Design Decisions:
    - Numeric columns: money and percentages round-trip as Decimal
    - History is a full copy rather than a diff: any past quote can be
      re-derived from one row
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import Integer, Numeric, Text, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from tierbroker.db.base import Base


class RateConfig(Base):
    """Current custom tier for one issuer."""
    __tablename__ = "rate_configs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    issuer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"),
        nullable=False, unique=True,
    )
    min_words: Mapped[int] = mapped_column(Integer, nullable=False)
    max_words: Mapped[int] = mapped_column(Integer, nullable=False)
    rate_per_500_words: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False,
    )
    issuer_fee_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False,
    )
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )


class RateConfigHistory(Base):
    """Snapshot of a RateConfig row as it was before an update."""
    __tablename__ = "rate_config_history"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    rate_config_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("rate_configs.id"), nullable=False,
    )
    issuer_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=False, index=True,
    )
    min_words: Mapped[int] = mapped_column(Integer, nullable=False)
    max_words: Mapped[int] = mapped_column(Integer, nullable=False)
    rate_per_500_words: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False,
    )
    issuer_fee_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False,
    )
    effective_from: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    updated_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    change_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    changed_by: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    superseded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
