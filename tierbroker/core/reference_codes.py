"""Reference Code Rules — code format, normalization and role eligibility.

Invariants:
    - Codes are stored and compared upper-case with surrounding whitespace removed
    - Format is <PREFIX>-<8 upper-case hex chars>; prefix encodes owner role + purpose
    - Only root, issuer and subissuer own codes (ROLE_CODE_PREFIXES)
    - Usage is derived from the actors that redeemed a code, never stored as a counter
"""

import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable
from uuid import UUID

from tierbroker.core.domain_types import Role, CodePurpose, ROLE_CODE_PREFIXES
from tierbroker.core.errors import UnauthorizedError
from tierbroker.core.pricing import as_utc

SUFFIX_BYTES = 4
_CODE_PATTERN = re.compile(r"^[A-Z]+(-[A-Z]+)*-[0-9A-F]{8}$")

SuffixGenerator = Callable[[], str]


def normalize_code(raw: str) -> str:
    return raw.strip().upper()


def is_well_formed(code: str) -> bool:
    return bool(_CODE_PATTERN.match(code))


def random_suffix() -> str:
    return secrets.token_hex(SUFFIX_BYTES).upper()


def eligible_purposes(role: Role) -> list[CodePurpose]:
    return list(ROLE_CODE_PREFIXES.get(role, {}))


def prefix_for(role: Role, purpose: CodePurpose) -> str:
    """Code prefix for (role, purpose); raises when the role may not issue it."""
    prefix = ROLE_CODE_PREFIXES.get(role, {}).get(purpose)
    if prefix is None:
        raise UnauthorizedError(
            f"Role '{role.value}' cannot issue '{purpose.value}' codes",
        )
    return prefix


def build_code(prefix: str, suffix: str) -> str:
    return normalize_code(f"{prefix}-{suffix}")


@dataclass(frozen=True)
class CodeValidation:
    """Result of redeeming a code string: whose code it is and what it admits."""
    code_id: UUID
    code: str
    owner_id: UUID
    purpose: CodePurpose


@dataclass(frozen=True)
class CodeUsageStats:
    total_uses: int
    recent_uses: int
    last_used: datetime | None

    def to_dict(self) -> dict:
        return {
            "total_uses": self.total_uses,
            "recent_uses": self.recent_uses,
            "last_used": self.last_used.isoformat() if self.last_used else None,
        }


def compute_usage_stats(
    redeemed_at: list[datetime | None], now: datetime, recent_days: int,
) -> CodeUsageStats:
    """Usage counts from the recruitment timestamps of actors who redeemed a code."""
    moments = [as_utc(m) for m in redeemed_at if m is not None]
    cutoff = as_utc(now) - timedelta(days=recent_days)
    return CodeUsageStats(
        total_uses=len(redeemed_at),
        recent_uses=sum(1 for m in moments if m >= cutoff),
        last_used=max(moments) if moments else None,
    )
