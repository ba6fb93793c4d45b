"""Hierarchy Store — read-only access to the actor tree.

Invariants:
    - Never writes: edges change only through HierarchyAssignmentService
    - Traversals are iterative, one query per tree level, bounded by MAX_HIERARCHY_DEPTH
    - path_to_root is nearest-first and excludes the starting actor

Design Decisions:
    - Level-by-level queries instead of recursive CTEs: same SQL on PostgreSQL
      and SQLite, and the depth bound is enforced in Python where it is visible
    - load_snapshot feeds the pure validators in core/; traversal helpers here
      serve read paths that should not pull the whole tree
"""

import logging
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.core.domain_types import Role, MAX_HIERARCHY_DEPTH
from tierbroker.core.errors import ResourceNotFoundError
from tierbroker.core.hierarchy_tree import HierarchySnapshot
from tierbroker.models.actor import Actor
from tierbroker.models.hierarchy_edge import HierarchyEdge

logger = logging.getLogger(__name__)


class HierarchyStore:
    """Queries over actors and hierarchy edges."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_actor(self, actor_id: UUID) -> Actor:
        actor = await self.db.get(Actor, actor_id)
        if actor is None:
            raise ResourceNotFoundError("Actor", str(actor_id))
        return actor

    async def get_edge(self, actor_id: UUID) -> HierarchyEdge | None:
        result = await self.db.execute(
            select(HierarchyEdge).where(HierarchyEdge.actor_id == actor_id)
        )
        return result.scalar_one_or_none()

    async def load_snapshot(self, root_id: UUID | None = None) -> HierarchySnapshot:
        """Edges and roles of the whole tree set, or of one root's tree.

        With root_id None, every actor's role is loaded (so orphans show up);
        with a root_id, only members of that tree.
        """
        edge_query = select(HierarchyEdge)
        if root_id is not None:
            edge_query = edge_query.where(HierarchyEdge.root_id == root_id)
        edges = (await self.db.execute(edge_query)).scalars().all()

        role_query = select(Actor.id, Actor.role)
        if root_id is not None:
            role_query = role_query.where(
                Actor.id.in_([e.actor_id for e in edges]),
            )
        roles = {
            actor_id: Role(role)
            for actor_id, role in (await self.db.execute(role_query)).all()
        }
        return HierarchySnapshot.from_edges([e.to_view() for e in edges], roles)

    async def load_edges(self, actor_ids: list[UUID]) -> HierarchySnapshot:
        """Snapshot of just the given actors' edges — enough for one-hop checks."""
        ids = [a for a in actor_ids if a is not None]
        if not ids:
            return HierarchySnapshot()
        result = await self.db.execute(
            select(HierarchyEdge).where(HierarchyEdge.actor_id.in_(ids))
        )
        return HierarchySnapshot.from_edges(
            [e.to_view() for e in result.scalars().all()],
        )

    async def path_to_root(
        self, actor_id: UUID, max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> list[UUID]:
        path: list[UUID] = []
        seen = {actor_id}
        edge = await self.get_edge(actor_id)
        current = edge.parent_id if edge else None
        while current is not None and len(path) < max_depth:
            if current in seen:
                logger.warning(
                    "Cycle met while walking to root", extra={"actor_id": actor_id},
                )
                break
            path.append(current)
            seen.add(current)
            edge = await self.get_edge(current)
            current = edge.parent_id if edge else None
        return path

    async def children(self, actor_id: UUID) -> list[UUID]:
        result = await self.db.execute(
            select(HierarchyEdge.actor_id)
            .where(HierarchyEdge.parent_id == actor_id)
            .where(HierarchyEdge.actor_id != actor_id)
        )
        return list(result.scalars().all())

    async def descendants(
        self, actor_id: UUID, max_depth: int = MAX_HIERARCHY_DEPTH,
    ) -> set[UUID]:
        """Breadth-first, one query per level; the starting actor is never included."""
        found: set[UUID] = set()
        frontier = [actor_id]
        for _ in range(max_depth):
            if not frontier:
                break
            result = await self.db.execute(
                select(HierarchyEdge.actor_id)
                .where(HierarchyEdge.parent_id.in_(frontier))
            )
            next_level = [
                a for a in result.scalars().all()
                if a != actor_id and a not in found
            ]
            found.update(next_level)
            frontier = next_level
        return found

    async def network(self, actor_id: UUID) -> list[dict]:
        """Every actor below actor_id with role, parent and level, shallowest first."""
        members = await self.descendants(actor_id)
        if not members:
            return []
        result = await self.db.execute(
            select(HierarchyEdge, Actor.role, Actor.display_name)
            .join(Actor, Actor.id == HierarchyEdge.actor_id)
            .where(HierarchyEdge.actor_id.in_(members))
            .order_by(HierarchyEdge.level, Actor.display_name)
        )
        return [
            {
                "actor_id": str(edge.actor_id),
                "display_name": display_name,
                "role": role,
                "parent_id": str(edge.parent_id) if edge.parent_id else None,
                "level": edge.level,
            }
            for edge, role, display_name in result.all()
        ]
