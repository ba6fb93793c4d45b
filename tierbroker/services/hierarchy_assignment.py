"""Hierarchy Assignment Service — the only writer of hierarchy edges.

Invariants:
    - assign/reparent/register_root each run in ONE unit of work: the edge, any
      descendant root updates, the actor's redemption record and the change-log
      row commit together or not at all
    - Placement is re-validated against a snapshot read inside the transaction
      (after advisory locks), never against state read earlier
    - reparent requires access to both the moved actor and the new parent, so a
      requester never grafts actors into a tree it cannot reach
    - A move (reparent, or re-redeeming a code) propagates the new root_id to
      the whole moved subtree
    - Optimistic conflicts (edge version) are retried up to reparent_max_retries,
      then surface as ConcurrencyConflictError

Design Decisions:
    - Per-root advisory locks taken in sorted key order on PostgreSQL, plus the
      version column everywhere: SQLite tests still exercise the retry path
    - Upsert on assign: re-redeeming moves an already-placed actor rather than
      failing on the unique actor_id
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy import select

from tierbroker.config import get_settings
from tierbroker.core.access_policy import can_access
from tierbroker.core.domain_types import Role, PURPOSE_ROLES, ROLE_LEVELS
from tierbroker.core.enforce_hierarchy import (
    IntegrityReport, check_no_cycle, check_not_self_parent,
    check_role_matches_purpose, scan_integrity, validate_placement,
)
from tierbroker.core.errors import (
    ConcurrencyConflictError, ErrorContext, HierarchyLevelMismatchError,
    InvalidOrInactiveCodeError, ResourceNotFoundError, UnauthorizedError,
)
from tierbroker.core.hierarchy_tree import EdgeView, HierarchySnapshot
from tierbroker.infrastructure.database import lock_roots, unit_of_work
from tierbroker.models.hierarchy_change import HierarchyChange
from tierbroker.models.hierarchy_edge import HierarchyEdge
from tierbroker.services.hierarchy_store import HierarchyStore
from tierbroker.services.reference_code_registry import ReferenceCodeRegistry

logger = logging.getLogger(__name__)


class HierarchyAssignmentService:
    """Places, moves and audits actors in the hierarchy."""

    def __init__(self, db: AsyncSession, max_retries: int | None = None):
        self.db = db
        self.store = HierarchyStore(db)
        self.max_retries = max_retries or get_settings().reparent_max_retries

    # --- Roots ----------------------------------------------------------------

    async def register_root(
        self, actor_id: UUID, changed_by: UUID | None = None,
    ) -> HierarchyEdge:
        async with unit_of_work(self.db):
            actor = await self.store.get_actor(actor_id)
            if actor.role_enum != Role.ROOT:
                raise HierarchyLevelMismatchError(
                    f"Only root actors can be registered as roots, not '{actor.role}'",
                )
            edge = await self.store.get_edge(actor_id)
            if edge is None or edge.parent_id is not None or edge.root_id != actor_id:
                placed = EdgeView(actor_id, None, actor_id, ROLE_LEVELS[Role.ROOT])
                edge = await self._write_edge(
                    edge, placed, changed_by, "register_root", None,
                )
                logger.info("Registered root", extra={"actor_id": actor_id})
        return edge

    # --- Assignment -----------------------------------------------------------

    async def assign(
        self, new_actor_id: UUID, code: str, changed_by: UUID | None = None,
    ) -> HierarchyEdge:
        """Redeem `code` for new_actor_id: parent = code owner, level from role."""
        async with unit_of_work(self.db):
            validation = await ReferenceCodeRegistry(self.db).validate(code)
            if validation is None:
                logger.warning(
                    "Invalid reference code redeemed",
                    extra={"actor_id": new_actor_id},
                )
                raise InvalidOrInactiveCodeError(
                    ErrorContext(actor_id=str(new_actor_id)),
                )

            check_not_self_parent(new_actor_id, validation.owner_id)
            actor = await self.store.get_actor(new_actor_id)

            owner_edge = await self.store.get_edge(validation.owner_id)
            if owner_edge is None:
                raise ResourceNotFoundError("HierarchyEdge", str(validation.owner_id))
            existing = await self.store.get_edge(new_actor_id)
            await lock_roots(self.db, _roots(owner_edge, existing))

            snapshot = await self.store.load_snapshot()
            check_no_cycle(snapshot, new_actor_id, validation.owner_id)
            check_role_matches_purpose(actor.role_enum, validation.purpose)
            placed = validate_placement(
                snapshot, new_actor_id, PURPOSE_ROLES[validation.purpose],
                validation.owner_id,
            )
            edge = await self._write_edge(
                existing, placed, changed_by, "assign",
                f"Redeemed {validation.code}",
            )
            await self._propagate_root(snapshot, new_actor_id, placed.root_id)

            actor.reference_code_used = validation.code
            actor.recruited_at = datetime.now(timezone.utc)
            logger.info(
                f"Assigned actor under {validation.owner_id}",
                extra={
                    "actor_id": new_actor_id, "root_id": placed.root_id,
                    "code_purpose": validation.purpose.value,
                },
            )
        return edge

    async def place_under(
        self,
        actor_id: UUID,
        parent_id: UUID,
        requester_id: UUID,
        change_reason: str | None = None,
    ) -> HierarchyEdge:
        """First placement without a code (subissuers have no recruitment purpose).

        The requester must be able to access the parent; already placed actors
        move through reparent() instead.
        """
        async with unit_of_work(self.db):
            requester = await self.store.get_actor(requester_id)
            actor = await self.store.get_actor(actor_id)
            if await self.store.get_edge(actor_id) is not None:
                raise HierarchyLevelMismatchError(
                    f"Actor '{actor_id}' is already placed; use reparent",
                )
            parent_edge = await self.store.get_edge(parent_id)
            if parent_edge is None:
                raise ResourceNotFoundError("HierarchyEdge", str(parent_id))

            access = HierarchySnapshot.from_edges([parent_edge.to_view()])
            if not can_access(access, requester_id, requester.role_enum, parent_id):
                logger.warning(
                    "Direct placement denied",
                    extra={"actor_id": actor_id, "requester_id": requester_id},
                )
                raise UnauthorizedError(
                    "Requester cannot place actors under this parent",
                    ErrorContext(
                        actor_id=str(actor_id), requester_id=str(requester_id),
                    ),
                )
            await lock_roots(self.db, _roots(parent_edge))

            snapshot = await self.store.load_snapshot()
            placed = validate_placement(
                snapshot, actor_id, actor.role_enum, parent_id,
            )
            edge = await self._write_edge(
                None, placed, requester_id, "place", change_reason,
            )
            logger.info(
                f"Placed actor under {parent_id}",
                extra={"actor_id": actor_id, "root_id": placed.root_id},
            )
        return edge

    # --- Re-parenting ---------------------------------------------------------

    async def reparent(
        self,
        actor_id: UUID,
        new_parent_id: UUID,
        requester_id: UUID,
        change_reason: str | None = None,
    ) -> HierarchyEdge:
        for attempt in range(1, self.max_retries + 1):
            try:
                return await self._reparent_once(
                    actor_id, new_parent_id, requester_id, change_reason,
                )
            except StaleDataError:
                logger.warning(
                    "Concurrent hierarchy update, retrying re-parent",
                    extra={"actor_id": actor_id, "attempt": attempt},
                )
        raise ConcurrencyConflictError(
            f"Re-parenting '{actor_id}' kept conflicting after "
            f"{self.max_retries} attempts",
            ErrorContext(actor_id=str(actor_id), requester_id=str(requester_id)),
        )

    async def _reparent_once(
        self,
        actor_id: UUID,
        new_parent_id: UUID,
        requester_id: UUID,
        change_reason: str | None,
    ) -> HierarchyEdge:
        async with unit_of_work(self.db):
            requester = await self.store.get_actor(requester_id)
            actor = await self.store.get_actor(actor_id)
            edge = await self.store.get_edge(actor_id)
            if edge is None:
                raise ResourceNotFoundError("HierarchyEdge", str(actor_id))

            access = HierarchySnapshot.from_edges([edge.to_view()])
            if not can_access(access, requester_id, requester.role_enum, actor_id):
                logger.warning(
                    "Re-parent denied",
                    extra={"actor_id": actor_id, "requester_id": requester_id},
                )
                raise UnauthorizedError(
                    "Requester cannot manage this actor",
                    ErrorContext(
                        actor_id=str(actor_id), requester_id=str(requester_id),
                    ),
                )

            parent_edge = await self.store.get_edge(new_parent_id)
            if parent_edge is None:
                raise ResourceNotFoundError("HierarchyEdge", str(new_parent_id))
            access = HierarchySnapshot.from_edges([parent_edge.to_view()])
            if not can_access(access, requester_id, requester.role_enum, new_parent_id):
                logger.warning(
                    "Re-parent target denied",
                    extra={"actor_id": actor_id, "requester_id": requester_id},
                )
                raise UnauthorizedError(
                    "Requester cannot place actors under the new parent",
                    ErrorContext(
                        actor_id=str(actor_id), requester_id=str(requester_id),
                    ),
                )
            await lock_roots(self.db, _roots(edge, parent_edge))

            snapshot = await self.store.load_snapshot()
            placed = validate_placement(
                snapshot, actor_id, actor.role_enum, new_parent_id,
            )
            edge = await self._write_edge(
                edge, placed, requester_id, "reparent", change_reason,
            )
            await self._propagate_root(snapshot, actor_id, placed.root_id)
            logger.info(
                f"Re-parented actor under {new_parent_id}",
                extra={
                    "actor_id": actor_id, "requester_id": requester_id,
                    "root_id": placed.root_id,
                },
            )
        return edge

    # --- Writes ---------------------------------------------------------------

    async def _write_edge(
        self,
        edge: HierarchyEdge | None,
        placed: EdgeView,
        changed_by: UUID | None,
        change_type: str,
        change_reason: str | None,
    ) -> HierarchyEdge:
        old_parent = edge.parent_id if edge else None
        old_level = edge.level if edge else None
        if edge is None:
            edge = HierarchyEdge(actor_id=placed.actor_id)
            self.db.add(edge)
        edge.parent_id = placed.parent_id
        edge.root_id = placed.root_id
        edge.level = placed.level

        self.db.add(HierarchyChange(
            actor_id=placed.actor_id,
            old_parent_id=old_parent,
            new_parent_id=placed.parent_id,
            old_level=old_level,
            new_level=placed.level,
            change_type=change_type,
            changed_by=changed_by,
            change_reason=change_reason,
        ))
        await self.db.flush()
        return edge

    async def _propagate_root(
        self, snapshot: HierarchySnapshot, actor_id: UUID, root_id: UUID,
    ) -> None:
        moved = [
            a for a in snapshot.descendants(actor_id)
            if snapshot.root_of(a) != root_id
        ]
        if not moved:
            return
        result = await self.db.execute(
            select(HierarchyEdge).where(HierarchyEdge.actor_id.in_(moved))
        )
        for descendant in result.scalars().all():
            descendant.root_id = root_id
        await self.db.flush()
        logger.info(
            f"Propagated root to {len(moved)} descendants",
            extra={"actor_id": actor_id, "root_id": root_id},
        )

    # --- Reads ----------------------------------------------------------------

    async def integrity_check(self) -> IntegrityReport:
        report = scan_integrity(await self.store.load_snapshot())
        if not report.valid:
            logger.warning(f"Hierarchy integrity check found {len(report.issues)} issues")
        return report

    async def path_to_root(self, actor_id: UUID) -> list[UUID]:
        return await self.store.path_to_root(actor_id)

    async def descendants(self, actor_id: UUID) -> set[UUID]:
        return await self.store.descendants(actor_id)

    async def children(self, actor_id: UUID) -> list[UUID]:
        return await self.store.children(actor_id)

    async def network(self, actor_id: UUID) -> list[dict]:
        return await self.store.network(actor_id)


def _roots(*edges: HierarchyEdge | None) -> list[UUID]:
    return [e.root_id for e in edges if e is not None]
