"""Notification Planner — turns a job event into intents for the notification sink.

Invariants:
    - The planner decides WHO and WHICH financial fields; the sink delivers
    - Every per-target field decision reaches the audit sink before any intent
      is emitted, granted when at least one financial field survives
    - Intents are emitted in planning order, one sink call per intent
"""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.core.financial_filter import VIEW_FINANCIAL_FIELDS, AuditRecord
from tierbroker.core.notifications import (
    NotificationIntent, group_intents, target_field_sets,
)
from tierbroker.core.repository_protocols import AuditSink, NotificationSink
from tierbroker.models.job import Job
from tierbroker.services.hierarchy_store import HierarchyStore
from tierbroker.services.job_pricing import job_record

logger = logging.getLogger(__name__)


class NotificationPlanner:
    def __init__(
        self, db: AsyncSession, sink: NotificationSink, audit_sink: AuditSink,
    ):
        self.db = db
        self.sink = sink
        self.audit_sink = audit_sink
        self.store = HierarchyStore(db)

    async def notify_job_event(
        self, job: Job, title: str, body: str,
    ) -> list[NotificationIntent]:
        snapshot = await self.store.load_snapshot()
        decisions = target_field_sets(snapshot, job_record(job))
        for target, role, allowed in decisions:
            await self.audit_sink.record(AuditRecord(
                viewer_id=target,
                viewer_role=role,
                permission=VIEW_FINANCIAL_FIELDS,
                resource_id=str(job.id),
                resource_type="job",
                granted=bool(allowed),
            ))

        intents = group_intents(decisions, title, body)
        for intent in intents:
            await self.sink.emit(intent)
        logger.info(
            f"Planned {len(intents)} notification intents",
            extra={"job_id": job.id},
        )
        return intents
