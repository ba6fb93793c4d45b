"""Job Pricing — create jobs with a quote, re-quote on request, complete them.

Invariants:
    - create_job quotes and inserts in ONE unit of work, so the rate read and the
      stored breakdown agree
    - Pricing columns change only through requote()
    - Under a custom tier the issuer slot holds the tier owner; an explicit
      issuer that disagrees is rejected with FeeIssuerMismatchError
    - Only pending/in_progress jobs can be re-quoted or completed

Design Decisions:
    - job_record() is the single serializer handed to the financial filter and
      the notification planner; it nests the breakdown so redaction is tested
      against the same shape callers receive
"""

import logging
from datetime import datetime, timezone
from typing import Any
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.core.domain_types import Role, JobSlot, JobStatus
from tierbroker.core.errors import (
    ErrorContext, InvalidJobStateError, ResourceNotFoundError, UnauthorizedError,
)
from tierbroker.core.fee_distribution import (
    FeeBreakdown, effective_word_count, fee_issuer_slot,
)
from tierbroker.infrastructure.database import unit_of_work
from tierbroker.models.job import Job
from tierbroker.services.access_control import AccessControlService
from tierbroker.services.hierarchy_store import HierarchyStore
from tierbroker.services.pricing_engine import PricingEngine

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (JobStatus.PENDING.value, JobStatus.IN_PROGRESS.value)


def job_record(job: Job, fees: FeeBreakdown | None = None) -> dict[str, Any]:
    """Plain-dict view of a job, including every financial field it carries."""
    breakdown = job.pricing()
    record: dict[str, Any] = {
        "id": str(job.id),
        **{
            slot.value: str(getattr(job, slot.value))
            if getattr(job, slot.value) is not None else None
            for slot in JobSlot
        },
        "word_count": job.word_count,
        "adjusted_word_count": job.adjusted_word_count,
        "deadline": job.deadline.isoformat(),
        "status": job.status,
        "urgency_level": breakdown.urgency_level.value,
        "base_units": breakdown.base_units,
        "base_cost": str(breakdown.base_cost),
        "urgency_surcharge": str(breakdown.urgency_surcharge),
        "total": str(breakdown.total),
        "rate_per_500_words": (
            str(breakdown.rate_per_500_words)
            if breakdown.rate_per_500_words is not None else None
        ),
        "issuer_fee_percent": str(breakdown.issuer_fee_percent),
        "pricing_breakdown": breakdown.to_dict(),
    }
    if fees is not None:
        record["fulfiller_fee"] = str(fees.fulfiller_fee)
        record["issuer_fee"] = str(fees.issuer_fee)
        record["root_net"] = str(fees.root_net)
    return record


class JobPricingService:
    """Job lifecycle operations that touch pricing."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.pricing = PricingEngine(db)
        self.store = HierarchyStore(db)

    async def get_job(self, job_id: UUID) -> Job:
        job = await self.db.get(Job, job_id)
        if job is None:
            raise ResourceNotFoundError("Job", str(job_id))
        return job

    async def create_job(
        self,
        client_id: UUID,
        word_count: int,
        deadline: datetime,
        now: datetime | None = None,
        fulfiller_id: UUID | None = None,
        issuer_id: UUID | None = None,
        sub_fulfiller_id: UUID | None = None,
        sub_issuer_id: UUID | None = None,
    ) -> Job:
        now = now or datetime.now(timezone.utc)
        async with unit_of_work(self.db):
            client = await self.store.get_actor(client_id)
            if client.role_enum != Role.CLIENT:
                raise UnauthorizedError(
                    f"Only clients can request jobs, not '{client.role}'",
                    ErrorContext(requester_id=str(client_id)),
                )
            breakdown = await self.pricing.quote(word_count, deadline, client_id, now)
            job = Job(
                client_id=client_id,
                fulfiller_id=fulfiller_id,
                issuer_id=fee_issuer_slot(issuer_id, breakdown),
                sub_fulfiller_id=sub_fulfiller_id,
                sub_issuer_id=sub_issuer_id,
                word_count=word_count,
                deadline=deadline,
                status=JobStatus.PENDING.value,
            )
            job.apply_pricing(breakdown, now)
            self.db.add(job)
            await self.db.flush()
        logger.info(
            f"Created job priced at {breakdown.total}",
            extra={"job_id": job.id, "actor_id": client_id},
        )
        return job

    async def requote(
        self,
        job_id: UUID,
        requester_id: UUID,
        requester_role: Role,
        now: datetime | None = None,
    ) -> Job:
        """Re-price an open job from its effective word count and current rates."""
        now = now or datetime.now(timezone.utc)
        async with unit_of_work(self.db):
            job = await self.get_job(job_id)
            allowed = await AccessControlService(self.db).can_access_job(
                requester_id, requester_role, job,
            )
            if not allowed:
                raise UnauthorizedError(
                    "Requester cannot re-quote this job",
                    ErrorContext(requester_id=str(requester_id), resource_id=str(job_id)),
                )
            if job.status not in _OPEN_STATUSES:
                raise InvalidJobStateError(str(job_id), job.status)
            breakdown = await self.pricing.quote(
                effective_word_count(job), job.deadline, job.client_id, now,
            )
            # a slot filled from the previous tier follows the new one
            explicit = None if job.issuer_id == job.priced_by_id else job.issuer_id
            job.issuer_id = fee_issuer_slot(explicit, breakdown)
            job.apply_pricing(breakdown, now)
            await self.db.flush()
        logger.info(
            f"Re-quoted job at {breakdown.total}",
            extra={"job_id": job_id, "requester_id": requester_id},
        )
        return job

    async def complete_job(
        self, job_id: UUID, completed_at: datetime | None = None,
    ) -> Job:
        async with unit_of_work(self.db):
            job = await self.get_job(job_id)
            if job.status == JobStatus.COMPLETED.value:
                return job
            if job.status not in _OPEN_STATUSES:
                raise InvalidJobStateError(str(job_id), job.status)
            job.status = JobStatus.COMPLETED.value
            job.completed_at = completed_at or datetime.now(timezone.utc)
        logger.info("Job completed", extra={"job_id": job_id})
        return job
