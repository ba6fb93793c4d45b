"""Pricing Rules — base price table, urgency surcharges, quotes and rate validation.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - All money is Decimal quantized to 0.01 (ROUND_HALF_UP)
    - base_units = ceil(word_count / 500); word counts <= 0 price at 0
    - Default pricing accepts 1..MAX_WORD_COUNT words; a custom tier accepts
      exactly [min_words, max_words]
    - total == base_cost + urgency_surcharge, always

Design Decisions:
    - Tables as ordered tuples scanned first-match: mirrors how the price list is
      published (ascending buckets) and keeps lookups obvious
    - Breakdown records which issuer's tier priced it (priced_by) and the fee
      percent in force, so fee distribution later uses the same resolution
"""

import math
from dataclasses import dataclass
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import (
    UrgencyLevel, MONEY_QUANTUM, WORDS_PER_UNIT,
    MAX_WORD_COUNT, MIN_CUSTOM_WORD_COUNT,
)
from tierbroker.core.errors import RateConfigInvalidError, WordCountOutOfRangeError
from tierbroker.core.repository_protocols import RateConfigLike

# (max words, price): ≤500→45 … ≤3000→100, then +10 per 500 words up to 20000
BASE_PRICE_TABLE: tuple[tuple[int, Decimal], ...] = (
    (500, Decimal("45")),
    (1000, Decimal("55")),
    (1500, Decimal("65")),
    (2000, Decimal("70")),
    (2500, Decimal("85")),
    (3000, Decimal("100")),
) + tuple(
    (max_words, Decimal(100 + 10 * step))
    for step, max_words in enumerate(range(3500, MAX_WORD_COUNT + 1, 500), start=1)
)

# (max days until deadline, surcharge, level); anything later is NORMAL / 0
DEADLINE_SURCHARGES: tuple[tuple[int, Decimal, UrgencyLevel], ...] = (
    (1, Decimal("30"), UrgencyLevel.RUSH),
    (2, Decimal("10"), UrgencyLevel.URGENT),
    (6, Decimal("5"), UrgencyLevel.MODERATE),
)

SECONDS_PER_DAY = 86_400


def money(value: Decimal | int | float | str) -> Decimal:
    return Decimal(str(value)).quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def base_units(word_count: int) -> int:
    if word_count <= 0:
        return 0
    return math.ceil(word_count / WORDS_PER_UNIT)


def base_price(word_count: int) -> Decimal:
    """Default-table price; above the top bucket uses the top price."""
    if word_count <= 0:
        return money(0)
    for max_words, price in BASE_PRICE_TABLE:
        if word_count <= max_words:
            return money(price)
    return money(BASE_PRICE_TABLE[-1][1])


def as_utc(moment: datetime) -> datetime:
    """Naive datetimes (e.g. read back from SQLite) are taken to be UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=timezone.utc)
    return moment


def days_until(deadline: datetime, now: datetime) -> int:
    seconds = (as_utc(deadline) - as_utc(now)).total_seconds()
    return math.ceil(seconds / SECONDS_PER_DAY)


def urgency_for(deadline: datetime, now: datetime) -> tuple[Decimal, UrgencyLevel]:
    days = days_until(deadline, now)
    for max_days, surcharge, level in DEADLINE_SURCHARGES:
        if days <= max_days:
            return money(surcharge), level
    return money(0), UrgencyLevel.NORMAL


@dataclass(frozen=True)
class PricingBreakdown:
    """Quote result — embedded into a Job, never persisted on its own."""
    base_units: int
    base_cost: Decimal
    urgency_surcharge: Decimal
    total: Decimal
    urgency_level: UrgencyLevel
    priced_by: UUID | None = None
    rate_per_500_words: Decimal | None = None
    issuer_fee_percent: Decimal = Decimal("0")

    @property
    def is_custom_tier(self) -> bool:
        return self.priced_by is not None

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_units": self.base_units,
            "base_cost": str(self.base_cost),
            "urgency_surcharge": str(self.urgency_surcharge),
            "total": str(self.total),
            "urgency_level": self.urgency_level.value,
            "priced_by": str(self.priced_by) if self.priced_by else None,
            "rate_per_500_words": (
                str(self.rate_per_500_words)
                if self.rate_per_500_words is not None else None
            ),
            "issuer_fee_percent": str(self.issuer_fee_percent),
        }


def check_word_count(word_count: int, rate: RateConfigLike | None) -> None:
    if rate is None:
        low, high = 1, MAX_WORD_COUNT
    else:
        low, high = rate.min_words, rate.max_words
    if word_count < low or word_count > high:
        raise WordCountOutOfRangeError(word_count, low, high)


def compute_quote(
    word_count: int,
    deadline: datetime,
    now: datetime,
    rate: RateConfigLike | None,
) -> PricingBreakdown:
    """Price word_count under rate (None = default table) for the given deadline."""
    check_word_count(word_count, rate)
    units = base_units(word_count)
    if rate is None:
        base_cost = base_price(word_count)
    else:
        base_cost = money(units * Decimal(str(rate.rate_per_500_words)))
    surcharge, level = urgency_for(deadline, now)

    return PricingBreakdown(
        base_units=units,
        base_cost=base_cost,
        urgency_surcharge=surcharge,
        total=money(base_cost + surcharge),
        urgency_level=level,
        priced_by=rate.issuer_id if rate is not None else None,
        rate_per_500_words=(
            money(rate.rate_per_500_words) if rate is not None else None
        ),
        issuer_fee_percent=(
            Decimal(str(rate.issuer_fee_percent)) if rate is not None
            else Decimal("0")
        ),
    )


# --- Rate configuration -------------------------------------------------------

@dataclass(frozen=True)
class RateConfigValues:
    """Proposed custom tier for an issuer, before validation."""
    min_words: int
    max_words: int
    rate_per_500_words: Decimal
    issuer_fee_percent: Decimal


def validate_rate_config(values: RateConfigValues) -> None:
    """Collect every bound violation, then raise once."""
    problems = []
    if values.min_words < MIN_CUSTOM_WORD_COUNT:
        problems.append(f"min_words must be at least {MIN_CUSTOM_WORD_COUNT}")
    if values.max_words > MAX_WORD_COUNT:
        problems.append(f"max_words cannot exceed {MAX_WORD_COUNT}")
    if values.min_words >= values.max_words:
        problems.append("min_words must be less than max_words")
    if Decimal(str(values.rate_per_500_words)) <= 0:
        problems.append("rate_per_500_words must be positive")
    percent = Decimal(str(values.issuer_fee_percent))
    if percent < 0 or percent > 100:
        problems.append("issuer_fee_percent must be between 0 and 100")
    if problems:
        raise RateConfigInvalidError(problems)


def rate_config_warnings(values: RateConfigValues) -> list[str]:
    """Advisory notes for unusual but valid tiers."""
    warnings = []
    rate = Decimal(str(values.rate_per_500_words))
    if rate < Decimal("5.00"):
        warnings.append("rate_per_500_words is unusually low (below 5.00)")
    if rate > Decimal("15.00"):
        warnings.append("rate_per_500_words is unusually high (above 15.00)")
    if Decimal(str(values.issuer_fee_percent)) > Decimal("25"):
        warnings.append("issuer_fee_percent is unusually high (above 25%)")
    return warnings
