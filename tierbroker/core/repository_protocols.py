"""Boundary Protocols — contracts between core and shell.

Invariants:
    - Core NEVER imports from shell — dependency arrows point inward only
    - All IO operations accessed through Protocol types
    - Implementations provided by shell via dependency injection

Design Decisions:
    - Protocol over ABC: structural subtyping, ORM rows and test doubles both fit
    - Async in Protocol: sinks do IO, but core pure functions that shape their
      payloads are never async themselves — the shell awaits around the pure logic
"""

from datetime import datetime
from decimal import Decimal
from typing import Protocol, TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from tierbroker.core.financial_filter import AuditRecord
    from tierbroker.core.notifications import NotificationIntent


class JobLike(Protocol):
    """Structural contract for Job objects passed to access, pricing and fee logic.

    Avoids coupling the pure core to the ORM model while giving mypy
    real type information (unlike Any).
    """
    id: UUID
    client_id: UUID | None
    fulfiller_id: UUID | None
    issuer_id: UUID | None
    sub_fulfiller_id: UUID | None
    sub_issuer_id: UUID | None
    word_count: int
    adjusted_word_count: int | None


class RateConfigLike(Protocol):
    """Structural contract for an issuer's custom pricing tier."""
    issuer_id: UUID
    min_words: int
    max_words: int
    rate_per_500_words: Decimal
    issuer_fee_percent: Decimal
    effective_from: datetime


class AuditSink(Protocol):
    """Receives one record per financial access decision — implemented by shell."""
    async def record(self, entry: "AuditRecord") -> None: ...


class NotificationSink(Protocol):
    """Receives notification intents; delivery and retry belong to the sink."""
    async def emit(self, intent: "NotificationIntent") -> None: ...
