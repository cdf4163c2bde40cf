# eventrec/routes/health.py
"""
Liveness and readiness endpoints.
"""

import time

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from eventrec.config import settings
from eventrec.db.pool import db_pool
from eventrec.services.redis_client import fast_redis

router = APIRouter()


@router.get("/healthz")
async def healthz():
    """Basic health check - always returns 200 if app is running."""
    return {"status": "ok", "service": "event-recommendations"}


@router.get("/readyz")
async def readyz():
    """
    Readiness: Redis must answer. The history database is reported but only
    counts when history is enabled.
    """
    checks = {}

    t0 = time.time()
    redis_ok = await fast_redis.ping()
    checks["redis"] = {"ok": redis_ok, "latency_ms": round((time.time() - t0) * 1000, 1)}
    overall_ok = redis_ok

    if settings.HISTORY_ENABLED:
        db_health = await db_pool.health_check()
        checks["database"] = {
            "ok": db_health.get("healthy", False),
            "connection_time_ms": db_health.get("connection_time_ms"),
            "error": db_health.get("error"),
        }
        overall_ok = overall_ok and checks["database"]["ok"]
    else:
        checks["database"] = {"ok": True, "skipped": True}

    body = {"overall_ok": overall_ok, "checks": checks, "timestamp": time.time()}
    return JSONResponse(status_code=200 if overall_ok else 503, content=body)
