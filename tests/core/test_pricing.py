"""Pricing tests — base table, urgency bands, quotes and rate configuration bounds."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from tierbroker.core.domain_types import UrgencyLevel
from tierbroker.core.errors import RateConfigInvalidError, WordCountOutOfRangeError
from tierbroker.core.pricing import (
    RateConfigValues,
    base_price,
    base_units,
    compute_quote,
    days_until,
    rate_config_warnings,
    urgency_for,
    validate_rate_config,
)

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)


@dataclass
class FakeRate:
    issuer_id: UUID
    min_words: int = 500
    max_words: int = 10_000
    rate_per_500_words: Decimal = Decimal("7.50")
    issuer_fee_percent: Decimal = Decimal("18")
    effective_from: datetime = NOW


# --- base_price -----------------------------------------------------------------

@pytest.mark.parametrize("words,price", [
    (0, "0.00"), (-5, "0.00"), (1, "45.00"), (500, "45.00"), (501, "55.00"),
    (1500, "65.00"), (2000, "70.00"), (2500, "85.00"), (3000, "100.00"),
    (3001, "110.00"), (3500, "110.00"), (4000, "120.00"), (20_000, "440.00"),
    (25_000, "440.00"),
])
def test_base_price_table(words, price):
    assert base_price(words) == Decimal(price)


def test_base_units_round_up():
    assert base_units(1) == 1
    assert base_units(500) == 1
    assert base_units(501) == 2
    assert base_units(0) == 0


# --- urgency --------------------------------------------------------------------

@pytest.mark.parametrize("delta,surcharge,level", [
    (timedelta(hours=-3), "30.00", UrgencyLevel.RUSH),
    (timedelta(days=1), "30.00", UrgencyLevel.RUSH),
    (timedelta(hours=36), "10.00", UrgencyLevel.URGENT),
    (timedelta(days=5), "5.00", UrgencyLevel.MODERATE),
    (timedelta(days=6), "5.00", UrgencyLevel.MODERATE),
    (timedelta(days=6, seconds=1), "0.00", UrgencyLevel.NORMAL),
    (timedelta(days=10), "0.00", UrgencyLevel.NORMAL),
])
def test_urgency_bands(delta, surcharge, level):
    assert urgency_for(NOW + delta, NOW) == (Decimal(surcharge), level)


def test_days_until_accepts_naive_datetimes_as_utc():
    naive_deadline = (NOW + timedelta(days=2)).replace(tzinfo=None)
    assert days_until(naive_deadline, NOW) == 2


# --- compute_quote --------------------------------------------------------------

def test_custom_tier_rush_quote():
    issuer = uuid4()
    quote = compute_quote(1500, NOW + timedelta(days=1), NOW, FakeRate(issuer))
    assert quote.base_units == 3
    assert quote.base_cost == Decimal("22.50")
    assert quote.urgency_surcharge == Decimal("30.00")
    assert quote.total == Decimal("52.50")
    assert quote.urgency_level == UrgencyLevel.RUSH
    assert quote.priced_by == issuer
    assert quote.issuer_fee_percent == Decimal("18")


def test_custom_tier_normal_quote():
    quote = compute_quote(1500, NOW + timedelta(days=10), NOW, FakeRate(uuid4()))
    assert quote.total == Decimal("22.50")
    assert quote.urgency_level == UrgencyLevel.NORMAL


def test_default_quote_uses_bucket_price():
    quote = compute_quote(1200, NOW + timedelta(days=3), NOW, None)
    assert quote.base_cost == Decimal("65.00")
    assert quote.total == Decimal("70.00")
    assert quote.priced_by is None
    assert not quote.is_custom_tier


def test_total_is_always_base_plus_surcharge():
    for words in (1, 499, 2750, 19_999):
        q = compute_quote(words, NOW + timedelta(hours=30), NOW, None)
        assert q.total == q.base_cost + q.urgency_surcharge


def test_default_range_rejects_zero_and_oversize():
    with pytest.raises(WordCountOutOfRangeError):
        compute_quote(0, NOW, NOW, None)
    with pytest.raises(WordCountOutOfRangeError):
        compute_quote(20_001, NOW, NOW, None)


def test_custom_range_is_enforced():
    rate = FakeRate(uuid4(), min_words=1000, max_words=5000)
    with pytest.raises(WordCountOutOfRangeError) as exc:
        compute_quote(800, NOW, NOW, rate)
    assert exc.value.min_words == 1000
    compute_quote(1000, NOW, NOW, rate)
    compute_quote(5000, NOW, NOW, rate)


def test_breakdown_serializes_money_as_strings():
    data = compute_quote(1500, NOW + timedelta(days=10), NOW, FakeRate(uuid4())).to_dict()
    assert data["total"] == "22.50"
    assert data["urgency_level"] == "normal"


# --- rate configuration ---------------------------------------------------------

def _values(**overrides) -> RateConfigValues:
    base = dict(
        min_words=500, max_words=10_000,
        rate_per_500_words=Decimal("7.50"), issuer_fee_percent=Decimal("18"),
    )
    base.update(overrides)
    return RateConfigValues(**base)


def test_valid_rate_config_passes():
    validate_rate_config(_values())


@pytest.mark.parametrize("overrides", [
    {"min_words": 400},
    {"max_words": 20_001},
    {"min_words": 5000, "max_words": 5000},
    {"rate_per_500_words": Decimal("0")},
    {"issuer_fee_percent": Decimal("-1")},
    {"issuer_fee_percent": Decimal("100.01")},
])
def test_invalid_rate_config_rejected(overrides):
    with pytest.raises(RateConfigInvalidError):
        validate_rate_config(_values(**overrides))


def test_rate_config_collects_every_problem():
    with pytest.raises(RateConfigInvalidError) as exc:
        validate_rate_config(_values(min_words=100, rate_per_500_words=Decimal("-2")))
    assert len(exc.value.problems) == 2


def test_rate_config_warnings():
    assert rate_config_warnings(_values()) == []
    warnings = rate_config_warnings(
        _values(rate_per_500_words=Decimal("4"), issuer_fee_percent=Decimal("30")),
    )
    assert len(warnings) == 2
