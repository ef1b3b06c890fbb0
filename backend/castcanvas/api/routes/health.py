"""Health & Readiness Probes — liveness and readiness endpoints.

Invariants:
    - GET /health/ always returns 200 if process is up (liveness)
    - GET /health/ready returns 503 if a configured database is unreachable
    - In-memory backends have no external dependency to probe: always ready

Design Decisions:
    - Separate liveness/readiness: liveness restarts, readiness removes from the
      load balancer
    - The chain RPC is NOT part of readiness: an RPC outage only degrades
      purchases, placements keep working
"""

import logging

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from castcanvas.api.dependencies import get_services
from castcanvas.services.container import CanvasServices

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/health", tags=["health"])


@router.get("/", status_code=status.HTTP_200_OK)
async def health_check():
    """Basic liveness probe. Returns 200 if the process is up."""
    return {
        "status": "healthy",
        "service": "castcanvas-api",
        "version": "1.0.0",
    }


@router.get("/ready")
async def readiness_check(services: CanvasServices = Depends(get_services)):
    """Readiness probe — includes database connectivity when SQL-backed."""
    checks = {
        "store": services.settings.store_backend.value,
        "ledger": services.settings.ledger_backend.value,
    }
    if services.db is None:
        return {"status": "ready", "checks": checks}

    if not await services.db.health_check():
        logger.warning("Readiness check failed: database unavailable")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "status": "not_ready",
                "reason": "database_unavailable",
            },
        )
    return {"status": "ready", "checks": {**checks, "database": "healthy"}}
