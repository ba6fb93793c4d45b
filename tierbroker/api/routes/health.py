"""Health Probes — liveness, readiness and hierarchy integrity.

Invariants:
    - GET /health/ answers 200 whenever the process can serve requests
    - GET /health/ready answers 503 while the store is unreachable
    - GET /health/hierarchy answers 200 for a consistent tree, 503 with every
      integrity issue otherwise

Design Decisions:
    - Integrity is a probe of its own, outside readiness: a corrupted edge
      needs an operator, while pulling replicas out of rotation would not fix it
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tierbroker.infrastructure import database
from tierbroker.infrastructure.database import get_db
from tierbroker.schemas.hierarchy import IntegrityReportResponse
from tierbroker.services.hierarchy_assignment import HierarchyAssignmentService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "tierbroker"


def _unavailable(content: dict) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content=content,
    )


@router.get("/")
async def liveness():
    return {"status": "healthy", "service": SERVICE_NAME}


@router.get("/ready")
async def readiness():
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        logger.warning("Readiness probe failed: store unreachable")
        return _unavailable({"status": "not_ready", "reason": "database_unavailable"})
    return {"status": "ready", "checks": {"database": "healthy"}}


@router.get("/hierarchy", response_model=IntegrityReportResponse)
async def hierarchy_integrity(db: AsyncSession = Depends(get_db)):
    """Scan the actor tree for cycles, orphans, dangling parents and level/root drift."""
    report = await HierarchyAssignmentService(db).integrity_check()
    body = IntegrityReportResponse.from_report(report)
    if not report.valid:
        return _unavailable(body.model_dump())
    return body
