"""Reference Code Registry — issue, validate, deactivate and report on recruitment codes.

Invariants:
    - A code is unique across active AND inactive rows (never reused)
    - validate() only ever resolves active codes, to exactly one (owner, purpose)
    - Only the owner may deactivate a code or read its usage
    - Generation retries collisions up to code_generation_max_attempts, then fails

Design Decisions:
    - Suffix generator injected: tests force collisions deterministically
    - Malformed input short-circuits to None before touching the store
    - issue/issue_for_actor/deactivate commit their own unit of work; validate is
      read-only so it can run inside a caller's transaction (assign)
"""

import logging
from datetime import datetime, timezone
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.config import get_settings
from tierbroker.core.domain_types import CodePurpose
from tierbroker.core.errors import (
    CodeGenerationExhaustedError, NotOwnerError, ResourceNotFoundError,
)
from tierbroker.core.reference_codes import (
    CodeUsageStats, CodeValidation, SuffixGenerator,
    build_code, compute_usage_stats, eligible_purposes, is_well_formed,
    normalize_code, prefix_for, random_suffix,
)
from tierbroker.infrastructure.database import unit_of_work
from tierbroker.models.actor import Actor
from tierbroker.models.reference_code import ReferenceCode
from tierbroker.services.hierarchy_store import HierarchyStore

logger = logging.getLogger(__name__)


class ReferenceCodeRegistry:
    """Owns the reference_codes table."""

    def __init__(
        self,
        db: AsyncSession,
        suffix_generator: SuffixGenerator = random_suffix,
        max_attempts: int | None = None,
    ):
        self.db = db
        self.store = HierarchyStore(db)
        self.suffix_generator = suffix_generator
        self.max_attempts = max_attempts or get_settings().code_generation_max_attempts

    async def issue(self, owner_id: UUID, purpose: CodePurpose) -> ReferenceCode:
        async with unit_of_work(self.db):
            owner = await self.store.get_actor(owner_id)
            code = await self._issue(owner, purpose)
        return code

    async def issue_for_actor(self, owner_id: UUID) -> list[ReferenceCode]:
        """One code per purpose the owner's role may issue (possibly none)."""
        async with unit_of_work(self.db):
            owner = await self.store.get_actor(owner_id)
            codes = [
                await self._issue(owner, purpose)
                for purpose in eligible_purposes(owner.role_enum)
            ]
        return codes

    async def _issue(self, owner: Actor, purpose: CodePurpose) -> ReferenceCode:
        prefix = prefix_for(owner.role_enum, purpose)
        for attempt in range(1, self.max_attempts + 1):
            candidate = build_code(prefix, self.suffix_generator())
            if not await self._exists(candidate):
                code = ReferenceCode(
                    code=candidate, owner_id=owner.id,
                    purpose=purpose.value, active=True,
                )
                self.db.add(code)
                await self.db.flush()
                logger.info(
                    f"Issued reference code {candidate}",
                    extra={"actor_id": owner.id, "code_purpose": purpose.value},
                )
                return code
            logger.warning(
                f"Reference code collision on {candidate}",
                extra={"attempt": attempt, "actor_id": owner.id},
            )
        raise CodeGenerationExhaustedError(self.max_attempts)

    async def _exists(self, code: str) -> bool:
        result = await self.db.execute(
            select(ReferenceCode.id).where(ReferenceCode.code == code)
        )
        return result.first() is not None

    async def validate(self, code: str) -> CodeValidation | None:
        normalized = normalize_code(code or "")
        if not is_well_formed(normalized):
            return None
        result = await self.db.execute(
            select(ReferenceCode)
            .where(ReferenceCode.code == normalized)
            .where(ReferenceCode.active.is_(True))
        )
        row = result.scalar_one_or_none()
        if row is None:
            return None
        return CodeValidation(
            code_id=row.id, code=row.code,
            owner_id=row.owner_id, purpose=CodePurpose(row.purpose),
        )

    async def _get_owned(self, code_id: UUID, requester_id: UUID) -> ReferenceCode:
        code = await self.db.get(ReferenceCode, code_id)
        if code is None:
            raise ResourceNotFoundError("ReferenceCode", str(code_id))
        if code.owner_id != requester_id:
            logger.warning(
                "Reference code access by non-owner",
                extra={"requester_id": requester_id, "actor_id": code.owner_id},
            )
            raise NotOwnerError(str(code_id))
        return code

    async def deactivate(self, code_id: UUID, requester_id: UUID) -> ReferenceCode:
        async with unit_of_work(self.db):
            code = await self._get_owned(code_id, requester_id)
            if code.active:
                code.active = False
                code.deactivated_at = datetime.now(timezone.utc)
                logger.info(
                    f"Deactivated reference code {code.code}",
                    extra={"requester_id": requester_id},
                )
        return code

    async def list_for_owner(self, owner_id: UUID) -> list[ReferenceCode]:
        result = await self.db.execute(
            select(ReferenceCode)
            .where(ReferenceCode.owner_id == owner_id)
            .order_by(ReferenceCode.created_at.desc())
        )
        return list(result.scalars().all())

    async def usage_stats(
        self, code_id: UUID, requester_id: UUID, now: datetime | None = None,
    ) -> CodeUsageStats:
        code = await self._get_owned(code_id, requester_id)
        result = await self.db.execute(
            select(Actor.recruited_at).where(Actor.reference_code_used == code.code)
        )
        return compute_usage_stats(
            list(result.scalars().all()),
            now or datetime.now(timezone.utc),
            get_settings().code_recent_use_days,
        )
