"""
Health check endpoints
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from topup.infrastructure.database import get_db
from topup.infrastructure.redis_client import ping_redis
from topup.infrastructure.settings import get_settings
from topup.schemas.common import HealthResponse, ReadyResponse

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health():
    settings = get_settings()
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "environment": settings.ENV,
    }


@router.get("/ready", response_model=ReadyResponse)
def ready(db: Session = Depends(get_db)):
    """
    Readiness check

    The ledger and the rate limiter both need their stores, so the service
    is only ready when PostgreSQL answers and Redis responds to PING.
    Returns 503 with the failing component otherwise.
    """
    database = "connected"
    try:
        db.execute(text("SELECT 1"))
    except SQLAlchemyError as e:
        database = f"error: {e.__class__.__name__}"

    redis_state = "connected" if ping_redis() else "disconnected"

    ready_ok = database == "connected" and redis_state == "connected"
    return JSONResponse(
        status_code=200 if ready_ok else 503,
        content={
            "status": "ok" if ready_ok else "not_ready",
            "database": database,
            "redis": redis_state,
        },
    )
