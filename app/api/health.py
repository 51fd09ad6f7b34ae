import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.dependencies import get_presence
from app.db import get_db
from app.services.presence import PresenceRegistry

log = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])


@router.get("/live")
async def liveness_check():
    """Simple endpoint to check if the API is alive."""
    return {"status": "alive"}


@router.get("/ready")
async def readiness_check(
    db: AsyncSession = Depends(get_db),
    presence: PresenceRegistry = Depends(get_presence),
):
    """
    Readiness probe that checks the database is reachable.
    Used by Kubernetes and other orchestrators to determine if traffic should be sent to this instance.
    """
    checks = {
        "status": "ready",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "checks": {},
        "online_users": await presence.online_count(),
    }
    try:
        await db.execute(text("SELECT 1"))
        checks["checks"]["database"] = "ok"
    except SQLAlchemyError as e:
        log.error(f"Readiness check failed: {e}")
        checks["status"] = "not_ready"
        checks["checks"]["database"] = f"error: {e.__class__.__name__}"
        return JSONResponse(status_code=503, content=checks)
    return checks
