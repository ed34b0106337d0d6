"""Health & Readiness Probes: liveness and readiness of the instance API.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 until the database answers AND the document
      store schema exists; the reason names the first failing check
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

import cmdb_core.infrastructure.database as database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])


def _not_ready(reason: str) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"status": "not_ready", "reason": reason},
    )


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "cmdb-instance-core",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check():
    """Readiness probe: database connectivity, then the documents/sequences schema."""
    manager = database.db_manager
    if manager is None or not await manager.health_check():
        return _not_ready("database_unavailable")
    if not await manager.schema_ready():
        return _not_ready("schema_missing")
    return {"status": "ready", "checks": {"database": "healthy", "schema": "ready"}}
