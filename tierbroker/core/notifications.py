"""Notification Planning — who hears about a job event and which money fields they may see.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Targets are the job's slot occupants plus the client's parent and tree root
    - Each target appears in exactly one intent; targets are grouped by their
      allowed financial field set, so one intent never over-shares
    - Delivery, retry and transport are outside this module entirely
    - target_field_sets() exposes each per-target field decision so the shell
      can audit it before grouping

Design Decisions:
    - Intent value objects instead of fire-and-forget calls: the sink owns async
      delivery, the core only owns eligibility and payload shaping
    - Actors with unknown roles get the fulfiller treatment (no financial fields)
"""

from dataclasses import dataclass
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import Role, JobSlot
from tierbroker.core.financial_filter import allowed_fields
from tierbroker.core.hierarchy_tree import HierarchySnapshot


@dataclass(frozen=True)
class NotificationIntent:
    """What the notification collaborator receives."""
    target_actor_ids: tuple[UUID, ...]
    title: str
    body: str
    financial_fields_allowed: frozenset[str]


def _as_uuid(value: Any) -> UUID | None:
    if value is None or isinstance(value, UUID):
        return value
    return UUID(str(value))


def notification_targets(
    snapshot: HierarchySnapshot, record: dict[str, Any],
) -> list[UUID]:
    """Slot occupants, then the client's parent and root — first occurrence wins."""
    targets: list[UUID] = []
    for slot in JobSlot:
        actor_id = _as_uuid(record.get(slot.value))
        if actor_id is not None:
            targets.append(actor_id)

    client_id = _as_uuid(record.get(JobSlot.CLIENT.value))
    if client_id is not None:
        targets.append(snapshot.parent_of(client_id))
        targets.append(snapshot.root_of(client_id))

    seen: set[UUID] = set()
    ordered = []
    for t in targets:
        if t is not None and t not in seen:
            seen.add(t)
            ordered.append(t)
    return ordered


def target_field_sets(
    snapshot: HierarchySnapshot, record: dict[str, Any],
) -> list[tuple[UUID, Role, frozenset[str]]]:
    """(target, role, allowed financial fields) per notification target."""
    decisions = []
    for target in notification_targets(snapshot, record):
        role = snapshot.role(target) or Role.FULFILLER
        decisions.append((target, role, allowed_fields(record, role, target)))
    return decisions


def group_intents(
    decisions: list[tuple[UUID, Role, frozenset[str]]], title: str, body: str,
) -> list[NotificationIntent]:
    groups: dict[frozenset[str], list[UUID]] = {}
    for target, _, allowed in decisions:
        groups.setdefault(allowed, []).append(target)

    return [
        NotificationIntent(tuple(ids), title, body, allowed)
        for allowed, ids in groups.items()
    ]


def plan_job_notification(
    snapshot: HierarchySnapshot,
    record: dict[str, Any],
    title: str,
    body: str,
) -> list[NotificationIntent]:
    return group_intents(target_field_sets(snapshot, record), title, body)
