"""Actor ORM — a participant in the brokerage hierarchy.

Invariants:
    - id is UUID primary key
    - role is one of Role values and never changes after creation
    - reference_code_used/recruited_at are set by hierarchy assignment, not registration

Design Decisions:
    - Role immutability enforced in the ORM (validates hook): every write path
      goes through the mapper, so no service can silently re-role an actor
    - No relationships: services query edges/codes explicitly, avoiding lazy
      loads in async sessions
"""

import uuid
from datetime import datetime, timezone

from sqlalchemy import String, DateTime
from sqlalchemy.orm import Mapped, mapped_column, validates
from sqlalchemy.dialects.postgresql import UUID

from tierbroker.core.domain_types import Role
from tierbroker.db.base import Base


class Actor(Base):
    """Actor entity — identity plus immutable role."""
    __tablename__ = "actors"

    id: Mapped[uuid.UUID] = mapped_column(
        UUID(as_uuid=True), primary_key=True, default=uuid.uuid4,
    )
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    display_name: Mapped[str] = mapped_column(
        String(200), nullable=False, default="",
    )
    reference_code_used: Mapped[str | None] = mapped_column(
        String(32), nullable=True, index=True,
    )
    recruited_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    @validates("role")
    def _validate_role(self, key: str, value: str) -> str:
        value = Role(value).value
        current = self.__dict__.get("role")
        if current is not None and current != value:
            raise ValueError("Actor role is immutable once set")
        return value

    @property
    def role_enum(self) -> Role:
        return Role(self.role)
