# dhakacart/api/routers/health.py
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from redis.exceptions import RedisError
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from dhakacart.data.database import get_db
from dhakacart.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(tags=["health"])


@router.get("/health")
def health(request: Request, db: Session = Depends(get_db)):
    try:
        db.execute(text("SELECT 1"))

        cache = getattr(request.app.state, "cache", None)
        cache_ok = cache.ping() if cache is not None else False
    except (SQLAlchemyError, RedisError) as e:
        logger.error(f"Health check failed: {e}")
        return JSONResponse(status_code=503, content={"status": "unhealthy", "error": str(e)})

    return {
        "status": "healthy",
        "database": "connected",
        "cache": "connected" if cache_ok else "disconnected",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
