"""Access Control Service — answers access questions against stored hierarchy edges.

Invariants:
    - Decisions come from core/access_policy.py; this module only loads the
      edges those pure functions need
    - Job listings are filtered in SQL by the same JobScope that answers in memory

Design Decisions:
    - can_access/can_access_job load only the edges they touch; job listing loads
      the requester's own tree once (every actor a scope can name shares its root)
"""

import logging
from uuid import UUID

from sqlalchemy import false, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql.elements import ColumnElement

from tierbroker.core import access_policy
from tierbroker.core.access_policy import JobScope, job_occupants
from tierbroker.core.domain_types import Role, JobSlot, JobStatus
from tierbroker.core.repository_protocols import JobLike
from tierbroker.models.job import Job
from tierbroker.services.hierarchy_store import HierarchyStore

logger = logging.getLogger(__name__)


def scope_clause(scope: JobScope) -> ColumnElement[bool]:
    """Compile a JobScope to a WHERE clause over the jobs table."""
    conditions = [getattr(Job, slot.value) == scope.requester_id for slot in JobSlot]
    for slot, allowed in scope.related.items():
        if allowed:
            conditions.append(getattr(Job, slot.value).in_(allowed))
    return or_(*conditions) if conditions else false()


class AccessControlService:
    """Hierarchy-based access decisions for actors and jobs."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = HierarchyStore(db)

    async def can_access(
        self, requester_id: UUID, requester_role: Role, target_id: UUID,
    ) -> bool:
        snapshot = await self.store.load_edges([target_id])
        allowed = access_policy.can_access(
            snapshot, requester_id, requester_role, target_id,
        )
        if not allowed:
            logger.warning(
                "Actor access denied",
                extra={"requester_id": requester_id, "actor_id": target_id},
            )
        return allowed

    async def can_access_job(
        self, requester_id: UUID, requester_role: Role, job: JobLike,
    ) -> bool:
        snapshot = await self.store.load_edges(job_occupants(job))
        allowed = access_policy.can_access_job(
            snapshot, requester_id, requester_role, job,
        )
        if not allowed:
            logger.warning(
                "Job access denied",
                extra={"requester_id": requester_id, "job_id": job.id},
            )
        return allowed

    async def accessible_jobs(
        self, requester_id: UUID, requester_role: Role,
    ) -> JobScope:
        if requester_role in (Role.FULFILLER, Role.CLIENT):
            return JobScope(requester_id, requester_role)
        edge = await self.store.get_edge(requester_id)
        if edge is None:
            return JobScope(requester_id, requester_role)
        snapshot = await self.store.load_snapshot(root_id=edge.root_id)
        return access_policy.build_job_scope(snapshot, requester_id, requester_role)

    async def accessible_jobs_predicate(
        self, requester_id: UUID, requester_role: Role,
    ) -> ColumnElement[bool]:
        return scope_clause(await self.accessible_jobs(requester_id, requester_role))

    async def list_accessible_jobs(
        self,
        requester_id: UUID,
        requester_role: Role,
        status: JobStatus | None = None,
        limit: int = 50,
        offset: int = 0,
    ) -> list[Job]:
        query = select(Job).where(
            await self.accessible_jobs_predicate(requester_id, requester_role),
        )
        if status is not None:
            query = query.where(Job.status == status.value)
        result = await self.db.execute(
            query.order_by(Job.created_at.desc()).limit(limit).offset(offset)
        )
        return list(result.scalars().all())
