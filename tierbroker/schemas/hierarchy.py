"""Hierarchy Schemas — Pydantic models for hierarchy health responses.

Invariants:
    - `type` values correspond to IntegrityIssueKind values
    - actor_ids serialized as strings (UUIDs) for JSON clients
"""

from typing import Literal

from pydantic import BaseModel

from tierbroker.core.enforce_hierarchy import IntegrityReport


class IntegrityIssueResponse(BaseModel):
    """One integrity finding."""
    type: Literal[
        "circular_reference", "orphaned_actor", "level_mismatch",
        "dangling_parent", "root_mismatch",
    ]
    actor_ids: list[str]
    detail: str


class IntegrityReportResponse(BaseModel):
    """Full integrity scan result."""
    status: Literal["healthy", "unhealthy"]
    valid: bool
    issue_count: int
    issues: list[IntegrityIssueResponse] = []

    @classmethod
    def from_report(cls, report: IntegrityReport) -> "IntegrityReportResponse":
        data = report.to_dict()
        return cls(
            status="healthy" if report.valid else "unhealthy",
            valid=data["valid"],
            issue_count=data["issue_count"],
            issues=[IntegrityIssueResponse(**i) for i in data["issues"]],
        )
