"""Health & Readiness Probes — liveness and readiness for container orchestration.

Invariants:
    - GET /health/ always returns 200 if the process is up (liveness)
    - GET /health/ready returns 503 unless the relationship table is queryable (readiness)
    - The AI classifier is reported but never gates readiness: suggestions degrade without it

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from the
      load balancer (ADR: production readiness)
"""

import logging
from fastapi import APIRouter, status
from fastapi.responses import JSONResponse

from familygraph.api import dependencies
from familygraph.infrastructure import database

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/health", tags=["health"])

SERVICE_NAME = "content-family-graph"
SERVICE_VERSION = "1.0.0"


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Liveness probe."""
    return {
        "status": "healthy",
        "service": SERVICE_NAME,
        "version": SERVICE_VERSION,
    }


@router.get("/ready")
async def readiness_check():
    manager = database.db_manager
    if manager is None:
        checks = {"database": "not_initialized", "schema": "unknown"}
    else:
        checks = await manager.check()
    checks["classifier"] = "enabled" if dependencies.classifier else "disabled"

    if checks["database"] != "healthy" or checks["schema"] != "healthy":
        logger.warning("Readiness check failed", extra={"operation": checks["schema"]})
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "not_ready", "checks": checks},
        )
    return {"status": "ready", "checks": checks}
