import logging
import time
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from nivalus.api.schemas import envelope
from nivalus.core.database import get_db, ping

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

STARTED_AT = time.monotonic()


@router.get("")
async def health():
    """Liveness probe"""
    return envelope({
        "status": "OK",
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })


@router.get("/db")
async def database_health(db: Session = Depends(get_db)):
    """Readiness probe - runs a trivial query against the database"""
    try:
        ping(db)
    except SQLAlchemyError as exc:
        logger.error(f"Database health check failed: {exc}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database connection failed",
        )
    return envelope({
        "status": "Database connected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    })
