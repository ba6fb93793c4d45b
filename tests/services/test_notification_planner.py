"""Notification Planner — intents for a stored job, delivered through the sink.

Invariants:
    - Each target lands in exactly one intent with the fields it may see
    - Every target's field decision is written to the audit sink
"""

from datetime import datetime, timedelta, timezone

from sqlalchemy import select

from tierbroker.core.financial_filter import (
    FINANCIAL_FIELDS, PRICING_FIELDS, VIEW_FINANCIAL_FIELDS,
)
from tierbroker.infrastructure.audit_sink import SqlAuditSink
from tierbroker.models.financial_access_audit import FinancialAccessAudit
from tierbroker.services.job_pricing import JobPricingService
from tierbroker.services.notification_planner import NotificationPlanner

NOW = datetime(2026, 3, 2, 9, 0, tzinfo=timezone.utc)


class RecordingSink:
    def __init__(self):
        self.emitted = []

    async def emit(self, intent):
        self.emitted.append(intent)


async def _notify(db, session_factory, tree):
    job = await JobPricingService(db).create_job(
        tree.client, 1200, NOW + timedelta(days=10), now=NOW,
        fulfiller_id=tree.fulfiller,
    )
    sink = RecordingSink()
    planner = NotificationPlanner(db, sink, SqlAuditSink(session_factory))
    intents = await planner.notify_job_event(job, "Job completed", "Your job is done")
    return job, sink, intents


async def test_job_event_reaches_occupants_parent_and_root(
    test_db, test_session_factory, tree,
):
    _, sink, intents = await _notify(test_db, test_session_factory, tree)

    assert sink.emitted == intents
    by_fields = {i.financial_fields_allowed: set(i.target_actor_ids) for i in intents}
    assert by_fields == {
        PRICING_FIELDS: {tree.client},
        frozenset(): {tree.fulfiller, tree.issuer},
        FINANCIAL_FIELDS: {tree.root},
    }
    assert all(i.title == "Job completed" for i in intents)


async def test_every_target_decision_is_audited(test_db, test_session_factory, tree):
    job, _, _ = await _notify(test_db, test_session_factory, tree)

    result = await test_db.execute(select(FinancialAccessAudit))
    rows = list(result.scalars().all())

    assert {(r.viewer_id, r.viewer_role, r.granted) for r in rows} == {
        (tree.client, "client", True),
        (tree.fulfiller, "fulfiller", False),
        (tree.issuer, "issuer", False),
        (tree.root, "root", True),
    }
    assert {r.permission for r in rows} == {VIEW_FINANCIAL_FIELDS}
    assert {r.resource_id for r in rows} == {str(job.id)}
    assert {r.resource_type for r in rows} == {"job"}
