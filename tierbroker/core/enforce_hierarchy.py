"""Hierarchy Enforcement — placement validation and integrity scanning.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Placement checks raise typed errors; the shell aborts the whole unit of work
    - Role→level table is authoritative: a placed actor's level is ROLE_LEVELS[role]
    - A parent always sits strictly above its child (level(parent) + 1 <= level(child))
    - scan_integrity is advisory: it reports, never repairs

Design Decisions:
    - Raise instead of returning error dicts: callers are services, not an agent
      loop, and every failure here must abort a transaction
    - validate_placement chains checks in a fixed order — first error wins, so
      a self-parenting request reports CircularHierarchy before any level issue
"""

from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import (
    Role, CodePurpose, IntegrityIssueKind,
    ROLE_LEVELS, PURPOSE_ROLES, MAX_HIERARCHY_DEPTH,
)
from tierbroker.core.errors import (
    CircularHierarchyError, HierarchyLevelMismatchError, ResourceNotFoundError,
)
from tierbroker.core.hierarchy_tree import EdgeView, HierarchySnapshot


# --- Placement checks ---------------------------------------------------------

def check_not_self_parent(actor_id: UUID, parent_id: UUID) -> None:
    if actor_id == parent_id:
        raise CircularHierarchyError(str(actor_id), str(parent_id))


def check_parent_exists(snapshot: HierarchySnapshot, parent_id: UUID) -> EdgeView:
    parent = snapshot.edge(parent_id)
    if parent is None:
        raise ResourceNotFoundError("HierarchyEdge", str(parent_id))
    return parent


def check_no_cycle(
    snapshot: HierarchySnapshot, actor_id: UUID, parent_id: UUID,
    max_depth: int = MAX_HIERARCHY_DEPTH,
) -> None:
    """Walk up from parent_id; actor_id on that path means a cycle.

    A walk that neither reaches a root nor finishes within max_depth is
    treated as circular too: the tree is already corrupted above the parent.
    """
    if actor_id in snapshot.path_to_root(parent_id, max_depth):
        raise CircularHierarchyError(str(actor_id), str(parent_id))
    if not snapshot.walk_reaches_root(parent_id, max_depth):
        raise CircularHierarchyError(str(actor_id), str(parent_id))


def check_role_matches_purpose(role: Role, purpose: CodePurpose) -> None:
    expected = PURPOSE_ROLES[purpose]
    if role != expected:
        raise HierarchyLevelMismatchError(
            f"Code purpose '{purpose.value}' admits role '{expected.value}', "
            f"not '{role.value}'",
        )


def resolve_level(role: Role, parent: EdgeView) -> int:
    """Level for role under parent; parent must sit strictly above it."""
    level = ROLE_LEVELS[role]
    if parent.level + 1 > level:
        raise HierarchyLevelMismatchError(
            f"Role '{role.value}' (level {level}) cannot be placed under a "
            f"level-{parent.level} parent",
        )
    return level


def validate_placement(
    snapshot: HierarchySnapshot,
    actor_id: UUID,
    role: Role,
    parent_id: UUID,
    max_depth: int = MAX_HIERARCHY_DEPTH,
) -> EdgeView:
    """Validate moving actor_id under parent_id. Returns the edge to write."""
    check_not_self_parent(actor_id, parent_id)
    parent = check_parent_exists(snapshot, parent_id)
    check_no_cycle(snapshot, actor_id, parent_id, max_depth)
    level = resolve_level(role, parent)
    return EdgeView(
        actor_id=actor_id,
        parent_id=parent_id,
        root_id=parent.root_id,
        level=level,
    )


# --- Integrity scan -----------------------------------------------------------

@dataclass(frozen=True)
class IntegrityIssue:
    """One finding of the integrity scan."""
    kind: IntegrityIssueKind
    actor_ids: tuple[UUID, ...]
    detail: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind.value,
            "actor_ids": [str(a) for a in self.actor_ids],
            "detail": self.detail,
        }


@dataclass
class IntegrityReport:
    """Result of a full hierarchy integrity scan."""
    issues: list[IntegrityIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.issues

    def count(self, kind: IntegrityIssueKind) -> int:
        return sum(1 for i in self.issues if i.kind == kind)

    def to_dict(self) -> dict[str, Any]:
        return {
            "valid": self.valid,
            "issue_count": len(self.issues),
            "issues": [i.to_dict() for i in self.issues],
        }


def _scan_cycles(snapshot: HierarchySnapshot, max_depth: int) -> list[IntegrityIssue]:
    issues = []
    reported: set[frozenset[UUID]] = set()
    for actor_id in snapshot.edges:
        cycle = snapshot.find_cycle(actor_id, max_depth)
        if cycle and frozenset(cycle) not in reported:
            reported.add(frozenset(cycle))
            issues.append(IntegrityIssue(
                IntegrityIssueKind.CIRCULAR_REFERENCE, tuple(cycle),
                f"Cycle of length {len(cycle)}",
            ))
    return issues


def _scan_orphans(snapshot: HierarchySnapshot) -> list[IntegrityIssue]:
    return [
        IntegrityIssue(
            IntegrityIssueKind.ORPHANED_ACTOR, (actor_id,),
            f"Actor with role '{role.value}' has no hierarchy edge",
        )
        for actor_id, role in snapshot.roles.items()
        if actor_id not in snapshot.edges
    ]


def _scan_edge(snapshot: HierarchySnapshot, edge: EdgeView) -> list[IntegrityIssue]:
    issues = []
    role = snapshot.role(edge.actor_id)
    if role is not None and ROLE_LEVELS[role] != edge.level:
        issues.append(IntegrityIssue(
            IntegrityIssueKind.LEVEL_MISMATCH, (edge.actor_id,),
            f"Role '{role.value}' expects level {ROLE_LEVELS[role]}, "
            f"edge has {edge.level}",
        ))

    if edge.parent_id is None:
        if edge.root_id != edge.actor_id:
            issues.append(IntegrityIssue(
                IntegrityIssueKind.ROOT_MISMATCH, (edge.actor_id,),
                "Parentless edge must be its own root",
            ))
        return issues

    parent = snapshot.edge(edge.parent_id)
    if parent is None:
        issues.append(IntegrityIssue(
            IntegrityIssueKind.DANGLING_PARENT, (edge.actor_id, edge.parent_id),
            "Parent has no hierarchy edge",
        ))
        return issues
    if parent.level >= edge.level:
        issues.append(IntegrityIssue(
            IntegrityIssueKind.LEVEL_MISMATCH, (edge.actor_id, edge.parent_id),
            f"Level {edge.level} is not below parent level {parent.level}",
        ))
    if parent.root_id != edge.root_id:
        issues.append(IntegrityIssue(
            IntegrityIssueKind.ROOT_MISMATCH, (edge.actor_id, edge.parent_id),
            "Root differs from parent's root",
        ))
    return issues


def scan_integrity(
    snapshot: HierarchySnapshot, max_depth: int = MAX_HIERARCHY_DEPTH,
) -> IntegrityReport:
    """Report cycles, orphans, level mismatches, dangling parents, root drift."""
    issues = _scan_cycles(snapshot, max_depth)
    issues.extend(_scan_orphans(snapshot))
    for edge in snapshot.edges.values():
        issues.extend(_scan_edge(snapshot, edge))
    return IntegrityReport(issues)
