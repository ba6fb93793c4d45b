"""Hierarchy Tree — in-memory snapshot of the actor tree with bounded traversals.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Every upward walk is bounded by MAX_HIERARCHY_DEPTH and never revisits an actor
    - path_to_root is ordered nearest-first and excludes the starting actor
    - descendants never includes the starting actor, even on corrupted (cyclic) data

Design Decisions:
    - Iterative parent-pointer walks over recursive SQL: portable to any store
      and testable without a database (ADR: functional core)
    - Snapshot is built once per unit of work by the shell; validation then reads
      only the snapshot, so checks and writes see the same tree
"""

from collections import deque
from dataclasses import dataclass, field
from uuid import UUID

from tierbroker.core.domain_types import Role, MAX_HIERARCHY_DEPTH


@dataclass(frozen=True)
class EdgeView:
    """One actor's position in the tree."""
    actor_id: UUID
    parent_id: UUID | None
    root_id: UUID
    level: int


@dataclass
class HierarchySnapshot:
    """Edges and roles read in one pass — the tree as validation sees it."""

    edges: dict[UUID, EdgeView] = field(default_factory=dict)
    roles: dict[UUID, Role] = field(default_factory=dict)

    @classmethod
    def from_edges(
        cls, edges: list[EdgeView], roles: dict[UUID, Role] | None = None,
    ) -> "HierarchySnapshot":
        return cls(
            edges={e.actor_id: e for e in edges},
            roles=dict(roles or {}),
        )

    def edge(self, actor_id: UUID) -> EdgeView | None:
        return self.edges.get(actor_id)

    def role(self, actor_id: UUID) -> Role | None:
        return self.roles.get(actor_id)

    def parent_of(self, actor_id: UUID) -> UUID | None:
        edge = self.edges.get(actor_id)
        return edge.parent_id if edge else None

    def root_of(self, actor_id: UUID) -> UUID | None:
        edge = self.edges.get(actor_id)
        return edge.root_id if edge else None

    def path_to_root(
        self, actor_id: UUID, max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> list[UUID]:
        """Ancestors of actor_id, nearest first. Stops on revisit or depth bound."""
        path: list[UUID] = []
        seen = {actor_id}
        current = self.parent_of(actor_id)
        while current is not None and len(path) < max_depth:
            if current in seen:
                break
            path.append(current)
            seen.add(current)
            current = self.parent_of(current)
        return path

    def children(self, actor_id: UUID) -> list[UUID]:
        return [
            e.actor_id for e in self.edges.values()
            if e.parent_id == actor_id and e.actor_id != actor_id
        ]

    def descendants(self, actor_id: UUID) -> set[UUID]:
        """Whole subtree below actor_id (breadth-first, cycle-safe)."""
        by_parent: dict[UUID, list[UUID]] = {}
        for e in self.edges.values():
            if e.parent_id is not None:
                by_parent.setdefault(e.parent_id, []).append(e.actor_id)

        found: set[UUID] = set()
        queue = deque(by_parent.get(actor_id, []))
        while queue:
            current = queue.popleft()
            if current == actor_id or current in found:
                continue
            found.add(current)
            queue.extend(by_parent.get(current, []))
        return found

    def is_ancestor(self, ancestor_id: UUID, actor_id: UUID) -> bool:
        return ancestor_id in self.path_to_root(actor_id)

    def walk_reaches_root(
        self, actor_id: UUID, max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> bool:
        """True when the upward walk ends at a parentless edge within the bound."""
        seen = {actor_id}
        current = actor_id
        for _ in range(max_depth + 1):
            parent = self.parent_of(current)
            if parent is None:
                return current in self.edges
            if parent in seen:
                return False
            seen.add(parent)
            current = parent
        return False

    def find_cycle(
        self, actor_id: UUID, max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> list[UUID] | None:
        """Return the looping segment reachable upward from actor_id, if any."""
        order: list[UUID] = [actor_id]
        index = {actor_id: 0}
        current = actor_id
        for _ in range(max_depth):
            parent = self.parent_of(current)
            if parent is None:
                return None
            if parent in index:
                return order[index[parent]:]
            index[parent] = len(order)
            order.append(parent)
            current = parent
        return None
