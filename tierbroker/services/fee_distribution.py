"""Fee Distribution Service — per-job money splits and per-actor earnings rollups.

Invariants:
    - distribute() uses the breakdown stored on the job (the tier in force when
      it was quoted), never a fresh quote
    - rollup() counts completed jobs only, with completed_at inside the period
    - The slots a rollup reads depend on the actor's role: root any slot in its
      tree, issuer issuer/sub-issuer slots or jobs priced under its tier,
      subissuer sub-fulfiller, fulfiller fulfiller, client client
    - The period is filtered in SQL; Period.contains re-checks each row so
      timezone-naive values read back from SQLite cannot slip through
"""

import logging
from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from tierbroker.core import fee_distribution
from tierbroker.core.domain_types import Role, JobSlot, JobStatus
from tierbroker.core.fee_distribution import EarningsSummary, FeeBreakdown, Period
from tierbroker.models.job import Job
from tierbroker.services.hierarchy_store import HierarchyStore

logger = logging.getLogger(__name__)

ROLLUP_SLOTS: dict[Role, tuple[JobSlot, ...]] = {
    Role.ROOT: tuple(JobSlot),
    Role.ISSUER: (JobSlot.ISSUER, JobSlot.SUB_ISSUER),
    Role.SUBISSUER: (JobSlot.SUB_FULFILLER,),
    Role.FULFILLER: (JobSlot.FULFILLER,),
    Role.CLIENT: (JobSlot.CLIENT,),
}


class FeeDistributionService:
    """Splits completed jobs' totals and aggregates them per actor."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = HierarchyStore(db)

    @staticmethod
    def distribute(job: Job) -> FeeBreakdown:
        return fee_distribution.distribute(job, job.pricing())

    async def _slot_clause(self, actor_id: UUID, role: Role) -> ColumnElement[bool]:
        if role == Role.ROOT:
            members = list((await self.store.load_snapshot(root_id=actor_id)).edges)
            return or_(*[
                getattr(Job, slot.value).in_(members) for slot in ROLLUP_SLOTS[role]
            ])
        clauses = [
            getattr(Job, slot.value) == actor_id for slot in ROLLUP_SLOTS[role]
        ]
        if role == Role.ISSUER:
            clauses.append(Job.priced_by_id == actor_id)
        return or_(*clauses)

    async def rollup(
        self, actor_id: UUID, role: Role, period: Period,
    ) -> EarningsSummary:
        result = await self.db.execute(
            select(Job)
            .where(Job.status == JobStatus.COMPLETED.value)
            .where(Job.completed_at.between(period.start, period.end))
            .where(await self._slot_clause(actor_id, role))
            .order_by(Job.completed_at)
        )
        fees = [
            self.distribute(job) for job in result.scalars().all()
            if period.contains(job.completed_at)
        ]
        summary = fee_distribution.summarize(actor_id, role, period, fees)
        logger.info(
            f"Rolled up {summary.job_count} jobs, earned {summary.earned}",
            extra={"actor_id": actor_id},
        )
        return summary
