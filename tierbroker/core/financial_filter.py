"""Financial Field Redaction — per-role allow-lists over job records.

Invariants:
    - All functions are PURE: no IO, no async, no DB, no side effects
    - Root viewers see every field; fulfillers never see any financial field
    - System profit fields (PROFIT_FIELDS) reach root viewers only
    - Clients see pricing totals on their own record only
    - Redaction recurses into nested dicts/lists, so an embedded breakdown
      cannot carry a stripped field past the filter
    - Every decision produces an AuditRecord; emitting it is the shell's job

Design Decisions:
    - Allow-lists (what a role keeps) rather than deny-lists: a new financial
      field is hidden from everyone but root until a rule admits it
    - Records are plain dicts: the filter sits at the edge where ORM rows have
      already been serialized for the caller
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import Role, JobSlot

PRICING_FIELDS = frozenset({
    "total", "base_cost", "urgency_surcharge", "base_units",
    "rate_per_500_words", "pricing_breakdown",
})
FEE_FIELDS = frozenset({"issuer_fee", "issuer_fee_percent"})
FULFILLER_PAYMENT_FIELDS = frozenset({"fulfiller_fee", "fulfiller_payment"})
PROFIT_FIELDS = frozenset({
    "profit", "profit_margin", "root_net", "system_profit", "root_share",
})
FINANCIAL_FIELDS = (
    PRICING_FIELDS | FEE_FIELDS | FULFILLER_PAYMENT_FIELDS | PROFIT_FIELDS
)

VIEW_FINANCIAL_FIELDS = "view_financial_fields"


class FinancialPermission(str, Enum):
    """Coarse financial capabilities, checked by role."""
    VIEW_ALL_FINANCIALS = "view_all_financials"
    VIEW_PROFIT_DATA = "view_profit_data"
    VIEW_PAYMENT_DISTRIBUTION = "view_payment_distribution"
    VIEW_ISSUER_FEES = "view_issuer_fees"
    VIEW_FULFILLER_PAYMENTS = "view_fulfiller_payments"
    VIEW_CLIENT_PRICING = "view_client_pricing"
    MODIFY_PRICING = "modify_pricing"
    VIEW_SYSTEM_PROFITS = "view_system_profits"


ROLE_FINANCIAL_PERMISSIONS: dict[Role, frozenset[FinancialPermission]] = {
    Role.ROOT: frozenset(FinancialPermission),
    Role.ISSUER: frozenset({
        FinancialPermission.VIEW_ISSUER_FEES,
        FinancialPermission.VIEW_CLIENT_PRICING,
        FinancialPermission.MODIFY_PRICING,
    }),
    Role.SUBISSUER: frozenset({
        FinancialPermission.VIEW_PAYMENT_DISTRIBUTION,
        FinancialPermission.VIEW_FULFILLER_PAYMENTS,
    }),
    Role.FULFILLER: frozenset(),
    Role.CLIENT: frozenset({FinancialPermission.VIEW_CLIENT_PRICING}),
}


@dataclass(frozen=True)
class AuditRecord:
    """One financial access decision, as handed to the audit sink."""
    viewer_id: UUID
    viewer_role: Role
    permission: str
    resource_id: str | None
    resource_type: str | None
    granted: bool
    timestamp: datetime = field(
        default_factory=lambda: datetime.now(timezone.utc),
    )


def has_permission(role: Role, permission: FinancialPermission) -> bool:
    return permission in ROLE_FINANCIAL_PERMISSIONS.get(role, frozenset())


def _slot_matches(record: dict[str, Any], slot: JobSlot, viewer_id: UUID) -> bool:
    value = record.get(slot.value)
    return value is not None and str(value) == str(viewer_id)


def allowed_fields(
    record: dict[str, Any], viewer_role: Role, viewer_id: UUID,
) -> frozenset[str]:
    """Financial fields viewer may keep on this record."""
    if viewer_role == Role.ROOT:
        return FINANCIAL_FIELDS
    if viewer_role == Role.ISSUER:
        own = (
            _slot_matches(record, JobSlot.ISSUER, viewer_id)
            or _slot_matches(record, JobSlot.SUB_ISSUER, viewer_id)
        )
        return FINANCIAL_FIELDS - PROFIT_FIELDS if own else frozenset()
    if viewer_role == Role.SUBISSUER:
        return PRICING_FIELDS | FULFILLER_PAYMENT_FIELDS
    if viewer_role == Role.CLIENT:
        if _slot_matches(record, JobSlot.CLIENT, viewer_id):
            return PRICING_FIELDS
        return frozenset()
    return frozenset()


def _redact(value: Any, stripped: frozenset[str]) -> Any:
    if isinstance(value, dict):
        return {
            k: _redact(v, stripped) for k, v in value.items()
            if k not in stripped
        }
    if isinstance(value, list):
        return [_redact(v, stripped) for v in value]
    return value


def filter_record(
    record: dict[str, Any], viewer_role: Role, viewer_id: UUID,
) -> tuple[dict[str, Any], bool]:
    """Return (redacted copy, granted). granted is False when nothing financial survives."""
    allowed = allowed_fields(record, viewer_role, viewer_id)
    return _redact(record, FINANCIAL_FIELDS - allowed), bool(allowed)
