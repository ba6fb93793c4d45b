"""Access Policy — hierarchy-based read/act decisions for actors and jobs.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Self-access is always granted
    - Root requesters reach exactly the actors whose root_id is their own id
    - Non-root requesters reach direct children only (never grandchildren)
    - A JobScope is the authorization boundary for every job listing: the same
      object answers in memory (matches) and compiles to SQL in the shell

Design Decisions:
    - JobScope as data (slot → allowed actor ids) rather than a callable: the shell
      can translate it to a WHERE clause without re-implementing the policy
    - Unknown requester/target edges deny rather than raise: access checks are
      yes/no questions, missing data is simply "no"
"""

from dataclasses import dataclass, field
from uuid import UUID

from tierbroker.core.domain_types import Role, JobSlot
from tierbroker.core.hierarchy_tree import HierarchySnapshot
from tierbroker.core.repository_protocols import JobLike


def job_occupants(job: JobLike) -> list[UUID]:
    """Actor ids filling the job's slots (empty slots skipped)."""
    return [
        actor_id for actor_id in (getattr(job, slot.value) for slot in JobSlot)
        if actor_id is not None
    ]


def can_access(
    snapshot: HierarchySnapshot,
    requester_id: UUID,
    requester_role: Role,
    target_id: UUID,
) -> bool:
    if requester_id == target_id:
        return True
    target = snapshot.edge(target_id)
    if target is None:
        return False
    if requester_role == Role.ROOT:
        return target.root_id == requester_id
    return target.parent_id == requester_id


def can_access_job(
    snapshot: HierarchySnapshot,
    requester_id: UUID,
    requester_role: Role,
    job: JobLike,
) -> bool:
    occupants = job_occupants(job)
    if requester_id in occupants:
        return True

    if requester_role == Role.ROOT:
        return any(snapshot.root_of(a) == requester_id for a in occupants)
    if requester_role == Role.ISSUER:
        return (
            job.client_id is not None
            and snapshot.parent_of(job.client_id) == requester_id
        )
    if requester_role == Role.SUBISSUER:
        return any(
            worker is not None and snapshot.parent_of(worker) == requester_id
            for worker in (job.fulfiller_id, job.sub_fulfiller_id)
        )
    return False


@dataclass(frozen=True)
class JobScope:
    """Which jobs a requester may list.

    A job matches when the requester fills any slot, or when the actor in one of
    the `related` slots belongs to that slot's allowed id set.
    """
    requester_id: UUID
    role: Role
    related: dict[JobSlot, frozenset[UUID]] = field(default_factory=dict)

    def matches(self, job: JobLike) -> bool:
        if self.requester_id in job_occupants(job):
            return True
        for slot, allowed in self.related.items():
            actor_id = getattr(job, slot.value)
            if actor_id is not None and actor_id in allowed:
                return True
        return False


def build_job_scope(
    snapshot: HierarchySnapshot, requester_id: UUID, requester_role: Role,
) -> JobScope:
    """Per-role listing policy.

    root: any slot under its tree; issuer: slot or client is a direct child;
    subissuer: slot or fulfiller anywhere below it; fulfiller/client: slot only.
    """
    if requester_role == Role.ROOT:
        members = frozenset(
            e.actor_id for e in snapshot.edges.values()
            if e.root_id == requester_id
        )
        return JobScope(
            requester_id, requester_role,
            {slot: members for slot in JobSlot},
        )
    if requester_role == Role.ISSUER:
        return JobScope(
            requester_id, requester_role,
            {JobSlot.CLIENT: frozenset(snapshot.children(requester_id))},
        )
    if requester_role == Role.SUBISSUER:
        return JobScope(
            requester_id, requester_role,
            {JobSlot.FULFILLER: frozenset(snapshot.descendants(requester_id))},
        )
    return JobScope(requester_id, requester_role)
