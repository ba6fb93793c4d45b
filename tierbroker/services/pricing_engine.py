"""Pricing Engine — rate resolution, quotes and rate configuration with history.

Invariants:
    - effective_rate resolves the NEAREST ancestor (path_to_root order) owning a
      RateConfig; None means default pricing
    - Only issuers own RateConfigs; the changer is the issuer or someone who can
      access the issuer in the hierarchy
    - Every update writes the prior row to rate_config_history in the same unit
      of work as the new values

Design Decisions:
    - Explicit read-old / write-history / write-new instead of store triggers:
      the ledger is visible in code and identical on every dialect
    - quote() never writes; job creation wraps it in its own transaction
"""

import logging
from datetime import datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.core import pricing
from tierbroker.core.domain_types import Role
from tierbroker.core.errors import (
    ErrorContext, RateConfigInvalidError, UnauthorizedError,
)
from tierbroker.core.pricing import PricingBreakdown, RateConfigValues
from tierbroker.infrastructure.database import unit_of_work
from tierbroker.models.rate_config import RateConfig, RateConfigHistory
from tierbroker.services.access_control import AccessControlService
from tierbroker.services.hierarchy_store import HierarchyStore

logger = logging.getLogger(__name__)


class PricingEngine:
    """Quotes and issuer rate configuration."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.store = HierarchyStore(db)

    @staticmethod
    def base_price(word_count: int) -> Decimal:
        return pricing.base_price(word_count)

    @staticmethod
    def rate_config_warnings(values: RateConfigValues) -> list[str]:
        return pricing.rate_config_warnings(values)

    async def get_rate_config(self, issuer_id: UUID) -> RateConfig | None:
        result = await self.db.execute(
            select(RateConfig).where(RateConfig.issuer_id == issuer_id)
        )
        return result.scalar_one_or_none()

    async def effective_rate(self, client_id: UUID) -> RateConfig | None:
        path = await self.store.path_to_root(client_id)
        if not path:
            return None
        result = await self.db.execute(
            select(RateConfig).where(RateConfig.issuer_id.in_(path))
        )
        by_issuer = {rc.issuer_id: rc for rc in result.scalars().all()}
        for ancestor in path:
            if ancestor in by_issuer:
                return by_issuer[ancestor]
        return None

    async def quote(
        self,
        word_count: int,
        deadline: datetime,
        client_id: UUID | None,
        now: datetime | None = None,
    ) -> PricingBreakdown:
        rate = await self.effective_rate(client_id) if client_id else None
        return pricing.compute_quote(
            word_count, deadline, now or datetime.now(timezone.utc), rate,
        )

    async def update_rate_config(
        self,
        issuer_id: UUID,
        values: RateConfigValues,
        changed_by: UUID,
        change_reason: str | None = None,
    ) -> RateConfig:
        pricing.validate_rate_config(values)

        async with unit_of_work(self.db):
            issuer = await self.store.get_actor(issuer_id)
            if issuer.role_enum != Role.ISSUER:
                raise RateConfigInvalidError(
                    [f"rate configurations belong to issuers, not '{issuer.role}'"],
                )
            if changed_by != issuer_id:
                changer = await self.store.get_actor(changed_by)
                allowed = await AccessControlService(self.db).can_access(
                    changed_by, changer.role_enum, issuer_id,
                )
                if not allowed:
                    raise UnauthorizedError(
                        "Requester cannot change this issuer's rates",
                        ErrorContext(
                            actor_id=str(issuer_id), requester_id=str(changed_by),
                        ),
                    )

            now = datetime.now(timezone.utc)
            current = await self.get_rate_config(issuer_id)
            if current is None:
                current = RateConfig(issuer_id=issuer_id)
                self.db.add(current)
            else:
                self.db.add(_history_row(current, changed_by, change_reason, now))

            current.min_words = values.min_words
            current.max_words = values.max_words
            current.rate_per_500_words = pricing.money(values.rate_per_500_words)
            current.issuer_fee_percent = Decimal(str(values.issuer_fee_percent))
            current.effective_from = now
            current.updated_at = now
            current.updated_by = changed_by
            await self.db.flush()

        for warning in pricing.rate_config_warnings(values):
            logger.warning(warning, extra={"actor_id": issuer_id})
        logger.info(
            "Rate configuration updated",
            extra={"actor_id": issuer_id, "requester_id": changed_by},
        )
        return current

    async def rate_history(
        self, issuer_id: UUID, limit: int = 50, offset: int = 0,
    ) -> list[RateConfigHistory]:
        result = await self.db.execute(
            select(RateConfigHistory)
            .where(RateConfigHistory.issuer_id == issuer_id)
            .order_by(RateConfigHistory.superseded_at.desc())
            .limit(limit)
            .offset(offset)
        )
        return list(result.scalars().all())


def _history_row(
    current: RateConfig,
    changed_by: UUID,
    change_reason: str | None,
    superseded_at: datetime,
) -> RateConfigHistory:
    return RateConfigHistory(
        rate_config_id=current.id,
        issuer_id=current.issuer_id,
        min_words=current.min_words,
        max_words=current.max_words,
        rate_per_500_words=current.rate_per_500_words,
        issuer_fee_percent=current.issuer_fee_percent,
        effective_from=current.effective_from,
        updated_at=current.updated_at,
        updated_by=current.updated_by,
        change_reason=change_reason,
        changed_by=changed_by,
        superseded_at=superseded_at,
    )
