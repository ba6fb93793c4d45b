"""Job ORM — a unit of outsourced work with its embedded pricing.

Invariants:
    - Up to five actor slots: client, fulfiller, issuer, sub_fulfiller, sub_issuer
    - Pricing columns are written at creation and only rewritten by an explicit re-quote
    - priced_by_id is NULL under default pricing; otherwise the issuer whose tier applied
    - status transitions: pending -> in_progress -> completed | cancelled

Design Decisions:
    - Pricing denormalized onto the job (rate, fee percent): fee distribution
      reuses the tier in force when the job was quoted, even after the issuer
      changes their rates
    - effective word count = adjusted_word_count when set, else word_count
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import String, Integer, Numeric, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from tierbroker.core.domain_types import UrgencyLevel
from tierbroker.core.pricing import PricingBreakdown
from tierbroker.db.base import Base


class Job(Base):
    """Job entity — slots, word count, deadline and pricing breakdown."""
    __tablename__ = "jobs"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )

    # Actor slots
    client_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True, index=True,
    )
    fulfiller_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True, index=True,
    )
    issuer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True, index=True,
    )
    sub_fulfiller_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True,
    )
    sub_issuer_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True,
    )

    word_count: Mapped[int] = mapped_column(Integer, nullable=False)
    adjusted_word_count: Mapped[int | None] = mapped_column(
        Integer, nullable=True,
    )
    deadline: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default="pending",
    )

    # Pricing (embedded PricingBreakdown)
    base_units: Mapped[int] = mapped_column(Integer, nullable=False)
    base_cost: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    urgency_surcharge: Mapped[Decimal] = mapped_column(
        Numeric(10, 2), nullable=False,
    )
    total: Mapped[Decimal] = mapped_column(Numeric(10, 2), nullable=False)
    urgency_level: Mapped[str] = mapped_column(String(20), nullable=False)
    priced_by_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), nullable=True,
    )
    rate_per_500_words: Mapped[Decimal | None] = mapped_column(
        Numeric(10, 2), nullable=True,
    )
    issuer_fee_percent: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0"),
    )
    quoted_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False,
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    completed_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True,
    )

    def apply_pricing(self, breakdown: PricingBreakdown, quoted_at: datetime) -> None:
        self.base_units = breakdown.base_units
        self.base_cost = breakdown.base_cost
        self.urgency_surcharge = breakdown.urgency_surcharge
        self.total = breakdown.total
        self.urgency_level = breakdown.urgency_level.value
        self.priced_by_id = breakdown.priced_by
        self.rate_per_500_words = breakdown.rate_per_500_words
        self.issuer_fee_percent = breakdown.issuer_fee_percent
        self.quoted_at = quoted_at

    def pricing(self) -> PricingBreakdown:
        return PricingBreakdown(
            base_units=self.base_units,
            base_cost=Decimal(self.base_cost),
            urgency_surcharge=Decimal(self.urgency_surcharge),
            total=Decimal(self.total),
            urgency_level=UrgencyLevel(self.urgency_level),
            priced_by=self.priced_by_id,
            rate_per_500_words=(
                Decimal(self.rate_per_500_words)
                if self.rate_per_500_words is not None else None
            ),
            issuer_fee_percent=Decimal(self.issuer_fee_percent or 0),
        )
