"""Fee distribution tests — per-job splits and per-role earnings summaries."""

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from uuid import UUID, uuid4

import pytest

from tierbroker.core.domain_types import Role
from tierbroker.core.fee_distribution import (
    Period, distribute, effective_word_count, fee_issuer_slot, role_share,
    summarize,
)
from tierbroker.core.errors import FeeIssuerMismatchError
from tierbroker.core.pricing import compute_quote

NOW = datetime(2026, 3, 2, 12, 0, tzinfo=timezone.utc)
ISSUER = uuid4()


@dataclass
class FakeRate:
    issuer_id: UUID = ISSUER
    min_words: int = 500
    max_words: int = 10_000
    rate_per_500_words: Decimal = Decimal("7.50")
    issuer_fee_percent: Decimal = Decimal("18")
    effective_from: datetime = NOW


@dataclass
class FakeJob:
    word_count: int
    adjusted_word_count: int | None = None
    id: UUID = None
    client_id: UUID | None = None
    fulfiller_id: UUID | None = None
    issuer_id: UUID | None = None
    sub_fulfiller_id: UUID | None = None
    sub_issuer_id: UUID | None = None

    def __post_init__(self):
        self.id = self.id or uuid4()


def _split(words, rate=None, days=1, adjusted=None):
    job = FakeJob(words, adjusted)
    quote = compute_quote(words, NOW + timedelta(days=days), NOW, rate)
    return distribute(job, quote)


def test_custom_tier_split():
    fees = _split(1500, FakeRate())
    assert fees.total == Decimal("52.50")
    assert fees.fulfiller_fee == Decimal("18.75")
    assert fees.issuer_fee == Decimal("4.05")
    assert fees.root_net == Decimal("29.70")
    assert fees.fee_issuer_id == ISSUER


def test_default_tier_has_no_issuer_fee():
    fees = _split(1200, None, days=3)
    assert fees.issuer_fee == Decimal("0.00")
    assert fees.fulfiller_fee == Decimal("18.75")
    assert fees.root_net == Decimal("51.25")
    assert fees.fee_issuer_id is None


def test_split_sums_to_total_exactly():
    for percent in ("12.5", "33.33", "7.77"):
        rate = FakeRate(issuer_fee_percent=Decimal(percent))
        for words in (501, 1499, 4321):
            fees = _split(words, rate)
            assert fees.fulfiller_fee + fees.issuer_fee + fees.root_net == fees.total


def test_adjusted_word_count_drives_fulfiller_fee():
    fees = _split(1500, None, adjusted=2600)
    assert fees.word_units == 6
    assert fees.fulfiller_fee == Decimal("37.50")


def test_effective_word_count_falls_back_to_initial():
    assert effective_word_count(FakeJob(900)) == 900
    assert effective_word_count(FakeJob(900, 1100)) == 1100


def test_root_net_can_go_negative_on_cheap_tier():
    fees = _split(2000, FakeRate(rate_per_500_words=Decimal("1.00")), days=10)
    assert fees.total == Decimal("4.00")
    assert fees.root_net == Decimal("-21.72")


# --- rollups --------------------------------------------------------------------

PERIOD = Period(NOW - timedelta(days=30), NOW)


def test_period_is_inclusive_and_tolerates_naive():
    assert PERIOD.contains(NOW)
    assert PERIOD.contains((NOW - timedelta(days=30)).replace(tzinfo=None))
    assert not PERIOD.contains(NOW + timedelta(seconds=1))
    assert not PERIOD.contains(None)


def test_role_share_per_role():
    fees = _split(1500, FakeRate())
    assert role_share(uuid4(), Role.ROOT, fees) == fees.root_net
    assert role_share(ISSUER, Role.ISSUER, fees) == fees.issuer_fee
    assert role_share(uuid4(), Role.ISSUER, fees) == Decimal("0.00")
    assert role_share(uuid4(), Role.FULFILLER, fees) == fees.fulfiller_fee
    assert role_share(uuid4(), Role.SUBISSUER, fees) == fees.fulfiller_fee
    assert role_share(uuid4(), Role.CLIENT, fees) == fees.total


def test_summarize_aggregates_jobs():
    jobs = [_split(1500, FakeRate()), _split(1200, None, days=3)]
    summary = summarize(ISSUER, Role.ISSUER, PERIOD, jobs)
    assert summary.job_count == 2
    assert summary.gross_total == Decimal("122.50")
    assert summary.issuer_fees == Decimal("4.05")
    assert summary.earned == Decimal("4.05")
    assert summary.margin_percent == Decimal("3.31")
    assert summary.average_per_job == Decimal("2.03")


def test_summarize_empty_period():
    summary = summarize(uuid4(), Role.ROOT, PERIOD, [])
    assert summary.job_count == 0
    assert summary.margin_percent == Decimal("0.00")
    assert summary.to_dict()["jobs"] == []


# --- issuer slot --------------------------------------------------------------

def test_tier_owner_fills_empty_issuer_slot():
    quote = compute_quote(1500, NOW + timedelta(days=10), NOW, FakeRate())
    assert fee_issuer_slot(None, quote) == ISSUER
    assert fee_issuer_slot(ISSUER, quote) == ISSUER


def test_conflicting_issuer_slot_is_rejected():
    quote = compute_quote(1500, NOW + timedelta(days=10), NOW, FakeRate())
    with pytest.raises(FeeIssuerMismatchError):
        fee_issuer_slot(uuid4(), quote)


def test_default_pricing_keeps_requested_issuer():
    quote = compute_quote(1500, NOW + timedelta(days=10), NOW, None)
    other = uuid4()
    assert fee_issuer_slot(other, quote) == other
    assert fee_issuer_slot(None, quote) is None
