"""Financial Data Filter — redacts job records per viewer and audits every decision.

Invariants:
    - Every filter() and check_permission() call emits exactly one AuditRecord,
      granted or denied, before returning
    - The input record is never mutated; callers get a redacted copy
"""

import logging
from typing import Any
from uuid import UUID

from tierbroker.core.domain_types import Role
from tierbroker.core.financial_filter import (
    VIEW_FINANCIAL_FIELDS, AuditRecord, FinancialPermission,
    filter_record, has_permission,
)
from tierbroker.core.repository_protocols import AuditSink

logger = logging.getLogger(__name__)


class FinancialDataFilter:
    """Role- and relationship-based redaction of financial fields."""

    def __init__(self, audit_sink: AuditSink):
        self.audit_sink = audit_sink

    async def filter(
        self,
        record: dict[str, Any],
        viewer_role: Role,
        viewer_id: UUID,
        resource_type: str = "job",
    ) -> dict[str, Any]:
        redacted, granted = filter_record(record, viewer_role, viewer_id)
        resource_id = record.get("id")
        await self.audit_sink.record(AuditRecord(
            viewer_id=viewer_id,
            viewer_role=viewer_role,
            permission=VIEW_FINANCIAL_FIELDS,
            resource_id=str(resource_id) if resource_id is not None else None,
            resource_type=resource_type,
            granted=granted,
        ))
        return redacted

    async def filter_many(
        self,
        records: list[dict[str, Any]],
        viewer_role: Role,
        viewer_id: UUID,
        resource_type: str = "job",
    ) -> list[dict[str, Any]]:
        return [
            await self.filter(r, viewer_role, viewer_id, resource_type)
            for r in records
        ]

    async def check_permission(
        self,
        viewer_id: UUID,
        viewer_role: Role,
        permission: FinancialPermission,
        resource_id: str | None = None,
        resource_type: str | None = None,
    ) -> bool:
        granted = has_permission(viewer_role, permission)
        await self.audit_sink.record(AuditRecord(
            viewer_id=viewer_id,
            viewer_role=viewer_role,
            permission=permission.value,
            resource_id=resource_id,
            resource_type=resource_type,
            granted=granted,
        ))
        if not granted:
            logger.warning(
                f"Financial permission {permission.value} denied",
                extra={"actor_id": viewer_id},
            )
        return granted
