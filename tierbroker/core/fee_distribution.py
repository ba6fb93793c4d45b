"""Fee Distribution — split of a job's total among fulfiller, pricing issuer and root.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - total == fulfiller_fee + issuer_fee + root_net for every breakdown (root_net
      absorbs rounding, so nothing leaks or is lost across the split)
    - fulfiller_fee = ceil(effective_word_count / 500) × FULFILLER_RATE_PER_500_WORDS
    - issuer_fee > 0 only when the job was priced under a custom tier, and it
      belongs to the issuer that set that tier (breakdown.priced_by)
    - Under a custom tier the job's issuer slot is the tier owner (fee_issuer_slot)

Design Decisions:
    - Issuer fee = base_cost × issuer_fee_percent: the percentage-of-base-cost
      definition is the contract; the price-difference variant is not implemented
    - root_net may be negative on cheap custom tiers — reported, not clamped
"""

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import Role, FULFILLER_RATE_PER_500_WORDS
from tierbroker.core.errors import FeeIssuerMismatchError
from tierbroker.core.pricing import PricingBreakdown, as_utc, base_units, money
from tierbroker.core.repository_protocols import JobLike


@dataclass(frozen=True)
class FeeBreakdown:
    """One job's money split."""
    job_id: UUID
    word_units: int
    total: Decimal
    fulfiller_fee: Decimal
    issuer_fee: Decimal
    root_net: Decimal
    fee_issuer_id: UUID | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "job_id": str(self.job_id),
            "word_units": self.word_units,
            "total": str(self.total),
            "fulfiller_fee": str(self.fulfiller_fee),
            "issuer_fee": str(self.issuer_fee),
            "root_net": str(self.root_net),
            "fee_issuer_id": str(self.fee_issuer_id) if self.fee_issuer_id else None,
        }


def effective_word_count(job: JobLike) -> int:
    return job.adjusted_word_count or job.word_count


def fee_issuer_slot(
    requested: UUID | None, breakdown: PricingBreakdown,
) -> UUID | None:
    """Issuer slot for a job quoted with `breakdown`.

    Under a custom tier the tier owner fills the slot, so the issuer earning
    the fee is also the one the rollup and the financial filter recognise.
    """
    if breakdown.priced_by is None:
        return requested
    if requested is not None and requested != breakdown.priced_by:
        raise FeeIssuerMismatchError(str(requested), str(breakdown.priced_by))
    return breakdown.priced_by


def distribute(job: JobLike, breakdown: PricingBreakdown) -> FeeBreakdown:
    units = base_units(effective_word_count(job))
    fulfiller_fee = money(units * FULFILLER_RATE_PER_500_WORDS)
    if breakdown.is_custom_tier:
        issuer_fee = money(breakdown.base_cost * breakdown.issuer_fee_percent / 100)
    else:
        issuer_fee = money(0)
    total = money(breakdown.total)

    return FeeBreakdown(
        job_id=job.id,
        word_units=units,
        total=total,
        fulfiller_fee=fulfiller_fee,
        issuer_fee=issuer_fee,
        root_net=total - fulfiller_fee - issuer_fee,
        fee_issuer_id=breakdown.priced_by,
    )


# --- Rollups ------------------------------------------------------------------

@dataclass(frozen=True)
class Period:
    """Inclusive time window."""
    start: datetime
    end: datetime

    def contains(self, moment: datetime | None) -> bool:
        if moment is None:
            return False
        return as_utc(self.start) <= as_utc(moment) <= as_utc(self.end)


def role_share(actor_id: UUID, role: Role, fees: FeeBreakdown) -> Decimal:
    """The part of one job's split that an actor in `role` earns (or, for clients, pays)."""
    if role == Role.ROOT:
        return fees.root_net
    if role == Role.ISSUER:
        return fees.issuer_fee if fees.fee_issuer_id == actor_id else money(0)
    if role in (Role.SUBISSUER, Role.FULFILLER):
        return fees.fulfiller_fee
    return fees.total


@dataclass
class EarningsSummary:
    """Aggregate of distribute() results for one actor over a period."""
    actor_id: UUID
    role: Role
    period: Period
    jobs: list[FeeBreakdown] = field(default_factory=list)
    gross_total: Decimal = Decimal("0.00")
    fulfiller_fees: Decimal = Decimal("0.00")
    issuer_fees: Decimal = Decimal("0.00")
    root_net: Decimal = Decimal("0.00")
    earned: Decimal = Decimal("0.00")

    @property
    def job_count(self) -> int:
        return len(self.jobs)

    @property
    def margin_percent(self) -> Decimal:
        if not self.gross_total:
            return money(0)
        return money(self.earned / self.gross_total * 100)

    @property
    def average_per_job(self) -> Decimal:
        if not self.jobs:
            return money(0)
        return money(self.earned / len(self.jobs))

    def to_dict(self) -> dict[str, Any]:
        return {
            "actor_id": str(self.actor_id),
            "role": self.role.value,
            "period": {
                "start": self.period.start.isoformat(),
                "end": self.period.end.isoformat(),
            },
            "job_count": self.job_count,
            "gross_total": str(self.gross_total),
            "fulfiller_fees": str(self.fulfiller_fees),
            "issuer_fees": str(self.issuer_fees),
            "root_net": str(self.root_net),
            "earned": str(self.earned),
            "margin_percent": str(self.margin_percent),
            "average_per_job": str(self.average_per_job),
            "jobs": [j.to_dict() for j in self.jobs],
        }


def summarize(
    actor_id: UUID, role: Role, period: Period, fees: list[FeeBreakdown],
) -> EarningsSummary:
    summary = EarningsSummary(actor_id, role, period, jobs=list(fees))
    for f in fees:
        summary.gross_total += f.total
        summary.fulfiller_fees += f.fulfiller_fee
        summary.issuer_fees += f.issuer_fee
        summary.root_net += f.root_net
        summary.earned += role_share(actor_id, role, f)
    return summary
