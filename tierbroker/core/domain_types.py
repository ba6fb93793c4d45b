"""Domain Types — rich types that replace bare primitives across the codebase.

Invariants:
    - ActorId, JobId, CodeId wrap UUIDs — never use bare UUID in domain logic
    - Role and level always agree through ROLE_LEVELS (root=1 … fulfiller=4)
    - Every recruitment purpose admits exactly one target role (PURPOSE_ROLES)
    - Money is Decimal quantized to 2 places (MONEY_QUANTUM)
    - All valid states encoded as Enums — no raw string matching

Design Decisions:
    - NewType over dataclass wrappers: zero runtime cost, full type-checker support
    - str Enums: persist as plain strings and serialize to JSON without custom encoders
    - Lookup tables live beside the enums they key: single source of truth for
      the assignment, pricing and access modules
"""

from decimal import Decimal
from enum import Enum
from typing import NewType
from uuid import UUID


# ─── Identity Types ──────────────────────────────────────────────

ActorId = NewType("ActorId", UUID)
JobId = NewType("JobId", UUID)
CodeId = NewType("CodeId", UUID)


# ─── Enums ───────────────────────────────────────────────────────

class Role(str, Enum):
    """The five hierarchy roles. Immutable once an actor is created."""
    ROOT = "root"
    ISSUER = "issuer"
    SUBISSUER = "subissuer"
    FULFILLER = "fulfiller"
    CLIENT = "client"


class CodePurpose(str, Enum):
    """Which slot a reference code admits when redeemed."""
    ISSUER_RECRUITMENT = "issuer_recruitment"
    CLIENT_RECRUITMENT = "client_recruitment"
    FULFILLER_RECRUITMENT = "fulfiller_recruitment"


class UrgencyLevel(str, Enum):
    """Deadline urgency bands — drive the surcharge table."""
    NORMAL = "normal"
    MODERATE = "moderate"
    URGENT = "urgent"
    RUSH = "rush"


class JobStatus(str, Enum):
    """Job lifecycle states — maps to DB `status` column."""
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class JobSlot(str, Enum):
    """The five actor slots a job can reference — values are column names."""
    CLIENT = "client_id"
    FULFILLER = "fulfiller_id"
    ISSUER = "issuer_id"
    SUB_FULFILLER = "sub_fulfiller_id"
    SUB_ISSUER = "sub_issuer_id"


class IntegrityIssueKind(str, Enum):
    """Categories reported by the hierarchy integrity scan."""
    CIRCULAR_REFERENCE = "circular_reference"
    ORPHANED_ACTOR = "orphaned_actor"
    LEVEL_MISMATCH = "level_mismatch"
    DANGLING_PARENT = "dangling_parent"
    ROOT_MISMATCH = "root_mismatch"


# ─── Hierarchy Tables ────────────────────────────────────────────

ROLE_LEVELS: dict[Role, int] = {
    Role.ROOT: 1,
    Role.ISSUER: 2,
    Role.SUBISSUER: 2,
    Role.CLIENT: 3,
    Role.FULFILLER: 4,
}

PURPOSE_ROLES: dict[CodePurpose, Role] = {
    CodePurpose.ISSUER_RECRUITMENT: Role.ISSUER,
    CodePurpose.CLIENT_RECRUITMENT: Role.CLIENT,
    CodePurpose.FULFILLER_RECRUITMENT: Role.FULFILLER,
}

# Purposes each role receives codes for, with the code prefix used for each
ROLE_CODE_PREFIXES: dict[Role, dict[CodePurpose, str]] = {
    Role.ROOT: {
        CodePurpose.ISSUER_RECRUITMENT: "RT-ISS",
        CodePurpose.CLIENT_RECRUITMENT: "RT-CLI",
    },
    Role.ISSUER: {CodePurpose.CLIENT_RECRUITMENT: "ISS-CLI"},
    Role.SUBISSUER: {CodePurpose.FULFILLER_RECRUITMENT: "SUB-FUL"},
}

MAX_HIERARCHY_DEPTH = 10


# ─── Money & Pricing Constants ───────────────────────────────────

MONEY_QUANTUM = Decimal("0.01")
WORDS_PER_UNIT = 500
MAX_WORD_COUNT = 20_000
MIN_CUSTOM_WORD_COUNT = 500
FULFILLER_RATE_PER_500_WORDS = Decimal("6.25")
