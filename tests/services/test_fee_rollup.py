"""Fee Rollup — per-actor earnings over completed jobs in a period.

Invariants:
    - Only completed jobs with completed_at inside the period count
    - Each role reads its own slots and earns its own share of the split
    - An issuer is credited for jobs priced under its tier whether or not the
      caller named it when creating the job
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from tierbroker.core.domain_types import Role
from tierbroker.core.fee_distribution import Period
from tierbroker.core.pricing import RateConfigValues
from tierbroker.models.job import Job
from tierbroker.services.fee_distribution import FeeDistributionService
from tierbroker.services.job_pricing import JobPricingService
from tierbroker.services.pricing_engine import PricingEngine

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)
PERIOD = Period(NOW, NOW + timedelta(days=30))


@pytest.fixture
async def ledger(test_db, tree):
    """Issuer-tier job and default-tier job completed in PERIOD, plus noise."""
    await PricingEngine(test_db).update_rate_config(
        tree.issuer,
        RateConfigValues(
            min_words=1000, max_words=10_000,
            rate_per_500_words=Decimal("7.50"), issuer_fee_percent=Decimal("10"),
        ),
        changed_by=tree.issuer,
    )
    service = JobPricingService(test_db)
    deadline = NOW + timedelta(days=10)

    tiered = await service.create_job(
        tree.client, 1500, deadline, now=NOW, fulfiller_id=tree.fulfiller,
        issuer_id=tree.issuer, sub_fulfiller_id=tree.subissuer,
    )
    default = await service.create_job(
        tree.direct_client, 1200, deadline, now=NOW, fulfiller_id=tree.fulfiller,
    )
    late = await service.create_job(tree.client, 1500, deadline, now=NOW)
    await service.create_job(tree.client, 1500, deadline, now=NOW)

    await service.complete_job(tiered.id, completed_at=NOW + timedelta(days=1))
    await service.complete_job(default.id, completed_at=NOW + timedelta(days=2))
    await service.complete_job(late.id, completed_at=NOW + timedelta(days=60))
    return SimpleNamespace(tiered=tiered.id, default=default.id)


async def _rollup(db, actor_id, role):
    return await FeeDistributionService(db).rollup(actor_id, role, PERIOD)


async def test_root_earns_net_of_every_job_in_tree(test_db, tree, ledger):
    summary = await _rollup(test_db, tree.root, Role.ROOT)

    assert summary.job_count == 2
    assert summary.gross_total == Decimal("87.50")
    assert summary.earned == Decimal("47.75")
    assert summary.issuer_fees == Decimal("2.25")


async def test_issuer_earns_fee_on_jobs_it_priced(test_db, tree, ledger):
    summary = await _rollup(test_db, tree.issuer, Role.ISSUER)

    assert [j.job_id for j in summary.jobs] == [ledger.tiered]
    assert summary.earned == Decimal("2.25")


async def test_issuer_credited_without_explicit_slot(test_db, tree, ledger):
    service = JobPricingService(test_db)
    job = await service.create_job(
        tree.client, 1500, NOW + timedelta(days=10), now=NOW,
    )
    job_id = job.id
    await service.complete_job(job_id, completed_at=NOW + timedelta(days=3))

    summary = await _rollup(test_db, tree.issuer, Role.ISSUER)

    assert [j.job_id for j in summary.jobs] == [ledger.tiered, job_id]
    assert summary.earned == Decimal("4.50")


async def test_issuer_rollup_matches_tier_owner_column(test_db, tree, ledger):
    job = await test_db.get(Job, ledger.tiered)
    job.issuer_id = None
    await test_db.commit()

    summary = await _rollup(test_db, tree.issuer, Role.ISSUER)

    assert [j.job_id for j in summary.jobs] == [ledger.tiered]
    assert summary.earned == Decimal("2.25")


async def test_subissuer_earns_from_sub_fulfiller_slot(test_db, tree, ledger):
    summary = await _rollup(test_db, tree.subissuer, Role.SUBISSUER)

    assert summary.job_count == 1
    assert summary.earned == Decimal("18.75")


async def test_fulfiller_earns_per_unit_fee(test_db, tree, ledger):
    summary = await _rollup(test_db, tree.fulfiller, Role.FULFILLER)

    assert [j.job_id for j in summary.jobs] == [ledger.tiered, ledger.default]
    assert summary.earned == Decimal("37.50")
    assert summary.average_per_job == Decimal("18.75")


async def test_client_total_excludes_open_and_out_of_period_jobs(test_db, tree, ledger):
    summary = await _rollup(test_db, tree.client, Role.CLIENT)

    assert summary.job_count == 1
    assert summary.earned == Decimal("22.50")


async def test_empty_period(test_db, tree, ledger):
    summary = await FeeDistributionService(test_db).rollup(
        tree.root, Role.ROOT,
        Period(NOW - timedelta(days=30), NOW - timedelta(days=1)),
    )

    assert summary.job_count == 0
    assert summary.margin_percent == Decimal("0.00")


async def test_period_bounds_are_inclusive(test_db, tree, ledger):
    summary = await FeeDistributionService(test_db).rollup(
        tree.root, Role.ROOT,
        Period(NOW + timedelta(days=1), NOW + timedelta(days=2)),
    )

    assert [j.job_id for j in summary.jobs] == [ledger.tiered, ledger.default]
