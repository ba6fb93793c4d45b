"""Financial Data Filter with the SQL audit sink — redaction plus one audit row per decision."""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy import select

from tierbroker.core.domain_types import Role
from tierbroker.core.financial_filter import FinancialPermission, VIEW_FINANCIAL_FIELDS
from tierbroker.core.pricing import RateConfigValues
from tierbroker.infrastructure.audit_sink import SqlAuditSink
from tierbroker.models.financial_access_audit import FinancialAccessAudit
from tierbroker.services.fee_distribution import FeeDistributionService
from tierbroker.services.financial_filter import FinancialDataFilter
from tierbroker.services.job_pricing import JobPricingService, job_record
from tierbroker.services.pricing_engine import PricingEngine

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


async def _record(db, tree):
    job = await JobPricingService(db).create_job(
        tree.client, 1200, NOW + timedelta(days=10), now=NOW,
        fulfiller_id=tree.fulfiller,
    )
    return job_record(job, FeeDistributionService.distribute(job))


async def _audit_rows(db) -> list[FinancialAccessAudit]:
    result = await db.execute(
        select(FinancialAccessAudit).order_by(FinancialAccessAudit.created_at)
    )
    return list(result.scalars().all())


async def test_each_view_is_redacted_and_audited(test_db, test_session_factory, tree):
    record = await _record(test_db, tree)
    data_filter = FinancialDataFilter(SqlAuditSink(test_session_factory))

    as_root = await data_filter.filter(record, Role.ROOT, tree.root)
    as_client = await data_filter.filter(record, Role.CLIENT, tree.client)
    as_fulfiller = await data_filter.filter(record, Role.FULFILLER, tree.fulfiller)

    assert as_root["root_net"] == record["root_net"]
    assert as_client["total"] == "65.00"
    assert "root_net" not in as_client
    assert "fulfiller_fee" not in as_client
    assert "pricing_breakdown" not in as_fulfiller
    assert as_fulfiller["word_count"] == 1200

    rows = await _audit_rows(test_db)
    assert [(r.viewer_role, r.granted) for r in rows] == [
        ("root", True), ("client", True), ("fulfiller", False),
    ]
    assert {r.permission for r in rows} == {VIEW_FINANCIAL_FIELDS}
    assert {r.resource_id for r in rows} == {record["id"]}
    assert {r.resource_type for r in rows} == {"job"}


async def test_filter_many_audits_every_record(test_db, test_session_factory, tree):
    records = [await _record(test_db, tree), await _record(test_db, tree)]
    data_filter = FinancialDataFilter(SqlAuditSink(test_session_factory))

    redacted = await data_filter.filter_many(records, Role.ISSUER, tree.issuer)

    assert all("total" not in r for r in redacted)
    assert len(await _audit_rows(test_db)) == 2


async def test_permission_checks_are_audited(test_db, test_session_factory, tree):
    data_filter = FinancialDataFilter(SqlAuditSink(test_session_factory))

    granted = await data_filter.check_permission(
        tree.subissuer, Role.SUBISSUER, FinancialPermission.VIEW_FULFILLER_PAYMENTS,
    )
    denied = await data_filter.check_permission(
        tree.subissuer, Role.SUBISSUER, FinancialPermission.VIEW_PROFIT_DATA,
        resource_type="earnings_summary",
    )

    assert granted is True
    assert denied is False
    rows = await _audit_rows(test_db)
    assert [(r.permission, r.granted) for r in rows] == [
        ("view_fulfiller_payments", True), ("view_profit_data", False),
    ]
    assert rows[1].resource_type == "earnings_summary"


async def test_tier_owner_sees_fees_on_jobs_it_priced(test_db, test_session_factory, tree):
    await PricingEngine(test_db).update_rate_config(
        tree.issuer,
        RateConfigValues(
            min_words=1000, max_words=10_000,
            rate_per_500_words=Decimal("7.50"), issuer_fee_percent=Decimal("18"),
        ),
        changed_by=tree.issuer,
    )
    record = await _record(test_db, tree)
    data_filter = FinancialDataFilter(SqlAuditSink(test_session_factory))

    as_issuer = await data_filter.filter(record, Role.ISSUER, tree.issuer)

    assert record["issuer_id"] == str(tree.issuer)
    assert as_issuer["total"] == record["total"]
    assert as_issuer["issuer_fee"] == record["issuer_fee"]
    assert "root_net" not in as_issuer
    [row] = await _audit_rows(test_db)
    assert row.granted is True
