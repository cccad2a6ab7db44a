"""
app/api/health.py

Purpose: Service info and health checks

- /         name and version
- /health   record store and session table, 503 unless healthy
- /ready    traffic gate for the load balancer (store reachable)
- /live     process is up
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.logging import get_logger
from app.db.mongo import check_database_health
from app.flow.dispatcher import get_dispatcher
from app.schemas.response import HealthReport, ServiceInfo

logger = get_logger(__name__)
router = APIRouter()

APP_VERSION = "1.0.0"


async def store_status() -> str:
    if not settings.uses_mongo:
        return "in-memory"
    try:
        return "healthy" if await check_database_health() else "unhealthy"
    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return "unhealthy"


@router.get("/", response_model=ServiceInfo)
async def root():
    return ServiceInfo(version=APP_VERSION, environment=settings.ENVIRONMENT)


@router.get("/health")
async def health_check():
    report = HealthReport(
        timestamp=time.time(),
        environment=settings.ENVIRONMENT,
        version=APP_VERSION,
        checks={"sessions": len(get_dispatcher().services.sessions)},
    )

    database = await store_status()
    report.checks["database"] = database
    if database == "unhealthy":
        report.status = "degraded"

    return JSONResponse(content=report.model_dump(), status_code=report.http_status)


@router.get("/ready")
async def readiness_check():
    if await store_status() == "unhealthy":
        return JSONResponse(status_code=503, content={"status": "not_ready", "reason": "database_unavailable"})
    return {"status": "ready"}


@router.get("/live")
async def liveness_check():
    return {"status": "alive"}
