"""HierarchyEdge ORM — one actor's position in the tree (parent, root, level).

Invariants:
    - actor_id is unique: at most one edge per actor, upserted on re-assignment
    - A root edge has parent_id NULL and root_id == actor_id
    - level agrees with the actor's role (ROLE_LEVELS) and exceeds the parent's level
    - Edges are never deleted; re-parenting overwrites parent/root/level together

Design Decisions:
    - version column drives SQLAlchemy optimistic locking (version_id_col): a
      concurrent re-parent of the same row raises StaleDataError at flush, and
      the assignment service retries a bounded number of times
    - root_id denormalized: root-scoped access checks need no tree walk
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import Integer, DateTime, ForeignKey
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.dialects.postgresql import UUID

from tierbroker.core.hierarchy_tree import EdgeView
from tierbroker.db.base import Base


class HierarchyEdge(Base):
    """Parent/root/level record for one actor."""
    __tablename__ = "hierarchy_edges"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    actor_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"),
        nullable=False, unique=True,
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=True, index=True,
    )
    root_id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), ForeignKey("actors.id"), nullable=False, index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False)
    version: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    __mapper_args__ = {"version_id_col": version}

    def to_view(self) -> EdgeView:
        return EdgeView(
            actor_id=self.actor_id,
            parent_id=self.parent_id,
            root_id=self.root_id,
            level=self.level,
        )
